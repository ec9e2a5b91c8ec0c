"""Tests for the tree-sitter engine and the syntax-tree bug detector."""

import pytest

from codehealth.detectors import BugDetectorAST
from codehealth.models import Severity
from codehealth.parsing import ASTEngine, language_for_path


@pytest.fixture(scope="module")
def engine():
    return ASTEngine()


class TestASTEngine:
    @pytest.mark.parametrize(
        ("path", "language"),
        [("a.tsx", "tsx"), ("a.ts", "typescript"), ("a.js", "javascript"), ("a.jsx", "javascript")],
    )
    def test_language_for_path(self, path, language):
        assert language_for_path(path) == language

    def test_unsupported_language(self, engine):
        with pytest.raises(ValueError, match="Unsupported language"):
            engine.parse("x", language="cobol")

    def test_function_definitions(self, engine):
        source = "async function load() {}\nconst save = (x) => x;\n"
        ast = engine.parse(source, language="typescript")

        definitions = engine.find_function_definitions(ast)

        assert sorted((d.name, d.is_async, d.line) for d in definitions) == [
            ("load", True, 1),
            ("save", False, 2),
        ]

    def test_function_expression_counted_once(self, engine):
        ast = engine.parse("const f = function () {};\n", language="javascript")

        definitions = engine.find_function_definitions(ast)

        assert [(d.name, d.is_async, d.line) for d in definitions] == [("f", False, 1)]

    def test_function_calls_with_receiver(self, engine):
        ast = engine.parse("items.map(f);\nrun();\n", language="javascript")
        calls = {(c.name, c.receiver) for c in engine.find_function_calls(ast)}
        assert calls == {("map", "items"), ("run", None)}

    def test_parse_errors_flagged(self, engine):
        assert engine.parse("function (", language="javascript").has_errors


class TestBugDetectorAST:
    @pytest.fixture
    def detector(self, engine):
        return BugDetectorAST(engine)

    def test_empty_catch(self, detector):
        source = "try {\n  run();\n} catch (e) {}\n"
        issues = detector.analyze("src/job.ts", source)
        assert [(i.category, i.line) for i in issues] == [("Error Handling", 3)]

    def test_catch_with_body_not_flagged(self, detector):
        source = "try {\n  run();\n} catch (e) {\n  report(e);\n}\n"
        assert detector.analyze("src/job.ts", source) == []

    def test_assignment_in_condition(self, detector):
        issues = detector.analyze("src/user.js", "if (user = getUser()) {\n  run(user);\n}\n")
        assert [(i.category, i.severity) for i in issues] == [("Logic Error", Severity.ERROR)]

    def test_arrow_in_condition_not_flagged(self, detector):
        source = "if (items.some((x) => x.ready)) {\n  run();\n}\n"
        assert detector.analyze("src/user.js", source) == []

    def test_async_foreach(self, detector):
        source = "items.forEach(async (item) => {\n  await save(item);\n});\n"
        issues = detector.analyze("src/sync.js", source)
        assert any("forEach" in i.message for i in issues)

    def test_eval(self, detector):
        issues = detector.analyze("src/run.js", "const value = eval(input);\n")
        assert [i.category for i in issues] == ["Security"]

    def test_interval_without_clear(self, detector):
        issues = detector.analyze("src/poll.js", "setInterval(tick, 1000);\n")
        assert [i.category for i in issues] == ["Resource Leak"]

    def test_interval_with_clear(self, detector):
        source = "const id = setInterval(tick, 1000);\nclearInterval(id);\n"
        assert detector.analyze("src/poll.js", source) == []

    def test_any_type(self, detector):
        issues = detector.analyze("src/models/user.ts", "let payload: any = null;\n")
        assert [(i.category, i.severity, i.line) for i in issues] == [
            ("Type Safety", Severity.INFO, 1),
        ]

    def test_any_type_ignored_in_loose_paths(self, detector):
        assert detector.analyze("src/lib/user.ts", "let payload: any = null;\n") == []

    def test_unhandled_async(self, detector):
        source = "async function load() {\n  const r = await fetch(url);\n  return r;\n}\n"
        issues = detector.analyze("src/load.ts", source)
        assert [i.message for i in issues] == ["Async function missing error handling"]

    def test_handled_async(self, detector):
        source = (
            "async function load() {\n"
            "  try {\n"
            "    return await fetch(url);\n"
            "  } catch (e) {\n"
            "    report(e);\n"
            "  }\n"
            "}\n"
        )
        assert detector.analyze("src/load.ts", source) == []
