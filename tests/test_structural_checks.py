"""Tests for structural checks and the project-level checks."""

import json

import pytest

from codehealth.detectors import (
    ComplexityDetector,
    DeadCodeDetector,
    LargeFileDetector,
    NamingDetector,
    OutdatedPatternDetector,
    TodoCommentDetector,
    check_directory_structure,
    check_package_health,
)
from codehealth.models import Severity


class TestDeadCodeDetector:
    def test_marked_unused_import(self):
        issues = DeadCodeDetector().analyze("src/a.ts", "import x from 'y'; // UNUSED\n")
        assert [(i.category, i.severity) for i in issues] == [("Dead Code", Severity.WARNING)]

    def test_debug_statements_above_allowance(self):
        source = "console.log(1);\nconsole.log(2);\nconsole.debug(3);\n"
        issues = DeadCodeDetector().analyze("src/a.ts", source)
        assert [i.line for i in issues] == [1, 2, 3]
        assert all(i.category == "Debug Statements" for i in issues)

    def test_debug_statements_within_allowance(self):
        assert DeadCodeDetector().analyze("src/a.ts", "console.log(1);\nconsole.log(2);\n") == []

    def test_debug_statements_capped_per_file(self):
        source = "\n".join("console.log(i);" for _ in range(25))
        assert len(DeadCodeDetector().analyze("src/a.ts", source)) == 10


class TestLargeFileDetector:
    def test_large(self):
        issues = LargeFileDetector().analyze("src/big.ts", "\n".join(["x"] * 1001))
        assert [(i.severity, i.line) for i in issues] == [(Severity.INFO, 0)]

    def test_very_large(self):
        issues = LargeFileDetector().analyze("src/big.ts", "\n".join(["x"] * 1501))
        assert issues[0].severity is Severity.WARNING

    def test_small(self):
        assert LargeFileDetector().analyze("src/small.ts", "x\n" * 10) == []


class TestComplexityDetector:
    def test_branchy_function(self):
        body = "\n".join(f"  if (x === {n}) {{ return {n}; }}" for n in range(12))
        source = f"function calc(x) {{\n{body}\n  return 0;\n}}\n"

        issues = ComplexityDetector().analyze("src/lib/calc.ts", source)

        assert len(issues) == 1
        assert issues[0].line == 1
        assert "calc" in issues[0].message
        assert issues[0].severity is Severity.WARNING

    def test_simple_function(self):
        source = "function add(a, b) {\n  return a + b;\n}\n"
        assert ComplexityDetector().analyze("src/lib/add.ts", source) == []


class TestTodoCommentDetector:
    def test_markers_map_to_severities(self):
        source = "// TODO: add paging\nrun(); // FIXME broken on empty input\n// HACK: patch around api bug\n"
        issues = TodoCommentDetector().analyze("src/a.ts", source)
        assert [(i.message, i.severity) for i in issues] == [
            ("TODO: add paging", Severity.INFO),
            ("FIXME: broken on empty input", Severity.WARNING),
            ("HACK: patch around api bug", Severity.ERROR),
        ]


class TestOutdatedPatternDetector:
    def test_var_in_typescript(self):
        issues = OutdatedPatternDetector().analyze("src/a.ts", "var count = 1;\n")
        assert [i.category for i in issues] == ["Outdated Pattern"]

    def test_javascript_ignored(self):
        assert OutdatedPatternDetector().analyze("src/a.js", "var count = 1;\n") == []


class TestNamingDetector:
    def test_pascal_case_variable(self):
        issues = NamingDetector().analyze("src/a.ts", "const UserName = 'bob';\n")
        assert issues[0].suggestion == "Use camelCase: userName"

    def test_constants_and_factories_allowed(self):
        source = "const MAX_SIZE = 10;\nconst Button = styled.div``;\nconst Schema = z.object({});\n"
        assert NamingDetector().analyze("src/a.ts", source) == []

    def test_jsx_skipped(self):
        assert NamingDetector().analyze("src/a.tsx", "const UserName = 'bob';\n") == []


class TestPackageHealth:
    def test_no_manifest(self, tmp_path):
        assert check_package_health(tmp_path) == []

    def test_invalid_manifest(self, tmp_path):
        (tmp_path / "package.json").write_text("{not json")
        assert check_package_health(tmp_path) == []

    def test_dependency_bloat_and_missing_lock(self, tmp_path):
        deps = {f"pkg-{n}": "^1.0.0" for n in range(61)}
        (tmp_path / "package.json").write_text(json.dumps({"dependencies": deps}))

        issues = check_package_health(tmp_path)

        assert [i.message for i in issues] == [
            "High number of dependencies (61)",
            "No lock file found",
        ]
        assert all(i.file == "package.json" for i in issues)
        assert all(i.detector == "package_health" for i in issues)

    def test_lock_file_present(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"dependencies": {"react": "18"}}))
        (tmp_path / "package-lock.json").write_text("{}")
        assert check_package_health(tmp_path) == []


class TestDirectoryStructure:
    def test_empty_directory_reported(self, tmp_path):
        (tmp_path / "src" / "unused").mkdir(parents=True)
        (tmp_path / "src" / "index.ts").write_text("export {};\n")

        issues = check_directory_structure(tmp_path)

        assert [i.file for i in issues] == ["src/unused"]
        assert issues[0].detector == "directory_structure"

    @pytest.mark.parametrize("name", ["node_modules", "public", ".git", "dist"])
    def test_protected_and_ignored_directories(self, tmp_path, name):
        (tmp_path / name).mkdir()
        assert check_directory_structure(tmp_path) == []

    def test_configured_ignore(self, tmp_path):
        (tmp_path / "legacy").mkdir()
        assert check_directory_structure(tmp_path, ["legacy"]) == []
