"""Tests for the auto-fixer and its fix generators."""

from pathlib import Path
from unittest.mock import patch

import pytest

from codehealth.autofix import (
    AutoFixer,
    classify_confidence,
    find_generator,
    fix_console_log,
    fix_empty_aria_label,
    fix_empty_catch,
    fix_import_organization,
    fix_keyboard_access,
    fix_marked_unused_import,
    fix_missing_alt,
    fix_placeholder_label,
    fix_positive_tab_index,
    line_terminator,
)
from codehealth.models import Severity


def _lines(source: str) -> list[str]:
    return source.split("\n")


class TestClassifyConfidence:
    @pytest.mark.parametrize(
        ("confidence", "tier"),
        [
            (100, "always_safe"),
            (99, "always_safe"),
            (98, "safe_with_review"),
            (90, "safe_with_review"),
            (89, "needs_confirmation"),
            (80, "needs_confirmation"),
            (79, "manual_only"),
            (0, "manual_only"),
        ],
    )
    def test_tiers(self, confidence, tier):
        assert classify_confidence(confidence) == tier


class TestGenerators:
    def test_marked_unused_import(self, make_issue):
        lines = _lines("import x from 'y'; // UNUSED\nconst a = 1;\n")
        candidate = fix_marked_unused_import(make_issue(category="Dead Code", line=1), lines)
        assert candidate.new_content == "const a = 1;\n"
        assert candidate.confidence == 99

    def test_unmarked_import_left_alone(self, make_issue):
        lines = _lines("import x from 'y';\n")
        assert fix_marked_unused_import(make_issue(category="Unused Imports", line=1), lines) is None

    def test_empty_aria_label(self, make_issue):
        lines = _lines('<button aria-label="">X</button>')
        candidate = fix_empty_aria_label(make_issue(category="ARIA", line=1), lines)
        assert candidate.new_content == "<button>X</button>"

    def test_positive_tab_index(self, make_issue):
        lines = _lines("<a href='/x' tabIndex={3}>X</a>")
        candidate = fix_positive_tab_index(make_issue(category="Focus Management", line=1), lines)
        assert candidate.new_content == "<a href='/x' tabIndex={0}>X</a>"

    def test_empty_catch(self, make_issue):
        lines = _lines("try {\n  run();\n} catch (e) {\n}")
        candidate = fix_empty_catch(make_issue(line=3), lines)
        assert candidate.new_content == (
            "try {\n  run();\n} catch (e) {\n  // Error intentionally ignored - safe to suppress\n}"
        )
        assert candidate.confidence == 96

    def test_empty_catch_requires_closing_brace(self, make_issue):
        lines = _lines("} catch (e) {\n  report(e);\n}")
        assert fix_empty_catch(make_issue(line=1), lines) is None

    def test_import_organization(self, make_issue):
        lines = _lines("import a from './a';\nimport c from '@/c';\nimport b from 'b';\n\nuse(a, b, c);")
        candidate = fix_import_organization(make_issue(category="Import Organization"), lines)
        assert candidate.new_content == (
            "import b from 'b';\nimport c from '@/c';\nimport a from './a';\n\nuse(a, b, c);"
        )

    def test_organized_imports_untouched(self, make_issue):
        lines = _lines("import b from 'b';\nimport a from './a';")
        assert fix_import_organization(make_issue(category="Import Organization"), lines) is None

    def test_keyboard_access(self, make_issue):
        lines = _lines("<div onClick={open}>Open</div>")
        candidate = fix_keyboard_access(make_issue(category="Keyboard", line=1), lines)
        assert candidate.new_content == (
            "<div role=\"button\" tabIndex={0} onClick={open}"
            " onKeyDown={(e) => e.key === 'Enter' && open(e)}>Open</div>"
        )

    def test_keyboard_access_needs_simple_handler(self, make_issue):
        lines = _lines("<div onClick={() => open(id)}>Open</div>")
        assert fix_keyboard_access(make_issue(category="Keyboard", line=1), lines) is None

    def test_console_log(self, make_issue):
        lines = _lines("run();\n  console.log('x');\ndone();")
        candidate = fix_console_log(make_issue(category="Code Cleanup", line=2), lines)
        assert candidate.new_content == "run();\ndone();"

    def test_console_log_inside_expression_kept(self, make_issue):
        lines = _lines("const r = console.log('x') || fallback;")
        assert fix_console_log(make_issue(category="Code Cleanup", line=1), lines) is None

    def test_missing_alt(self, make_issue):
        lines = _lines('<img src="/hero.png" />')
        candidate = fix_missing_alt(make_issue(category="Images", line=1), lines)
        assert candidate.new_content == '<img alt="TODO: Add descriptive alt text" src="/hero.png" />'
        assert candidate.confidence == 85

    def test_missing_alt_decorative(self, make_issue):
        lines = _lines('<img className="icon" src="/x.svg" />')
        candidate = fix_missing_alt(make_issue(category="Images", line=1), lines)
        assert candidate.new_content == '<img alt="" className="icon" src="/x.svg" />'

    def test_placeholder_label(self, make_issue):
        lines = _lines('  <input type="email" placeholder="Email Address" />')
        candidate = fix_placeholder_label(make_issue(category="Forms", line=1), lines)
        assert candidate.new_content == (
            '  <label htmlFor="input-email-address">Email Address</label>\n'
            '  <input id="input-email-address" type="email" placeholder="Email Address" />'
        )
        assert candidate.confidence == 75

    def test_line_out_of_range(self, make_issue):
        assert fix_console_log(make_issue(category="Code Cleanup", line=50), ["x"]) is None


class TestFindGenerator:
    def test_matches_category_and_message(self, make_issue):
        issue = make_issue(category="Focus Management", message="Positive tabIndex disrupts natural tab order")
        assert find_generator(issue) is fix_positive_tab_index

    def test_message_filter(self, make_issue):
        issue = make_issue(category="Forms", message="Input field missing label")
        assert find_generator(issue) is None

    def test_unknown_category(self, make_issue):
        assert find_generator(make_issue(category="Security", message="eval")) is None


class TestAutoFixer:
    @pytest.mark.asyncio
    async def test_applies_and_writes(self, write_project, make_issue):
        root = write_project({"src/a.ts": "run();\nconsole.log('x');\ndone();\n"})
        issue = make_issue(category="Code Cleanup", file="src/a.ts", line=2)
        fixer = AutoFixer(min_confidence=90, root=root)

        results = await fixer.fix_all({"quick": [issue]})

        assert results[0].fixes_applied == 1
        assert results[0].summary.safe_with_review == 1
        assert (root / "src/a.ts").read_text() == "run();\ndone();\n"
        assert fixer.get_summary() == "Fixed 1 issues across 1 files"

    @pytest.mark.asyncio
    async def test_bottom_up_keeps_line_numbers_valid(self, write_project, make_issue):
        root = write_project({"src/a.ts": "console.log(1);\nrun();\nconsole.log(2);\n"})
        issues = [
            make_issue(category="Code Cleanup", file="src/a.ts", line=1),
            make_issue(category="Code Cleanup", file="src/a.ts", line=3),
        ]

        results = await AutoFixer(min_confidence=90, root=root).fix_all({"quick": issues})

        assert results[0].fixes_applied == 2
        assert (root / "src/a.ts").read_text() == "run();\n"

    @pytest.mark.asyncio
    async def test_below_threshold_is_skipped(self, write_project, make_issue):
        source = '<input type="email" placeholder="Email" />\n'
        root = write_project({"src/Form.tsx": source})
        issue = make_issue(
            category="Forms", file="src/Form.tsx", line=1,
            message="Using placeholder as label (insufficient for accessibility)",
        )

        results = await AutoFixer(min_confidence=80, root=root).fix_all({"accessibility": [issue]})

        assert results[0].fixes_applied == 0
        assert [c.confidence for c in results[0].skipped] == [75]
        assert (root / "src/Form.tsx").read_text() == source

    @pytest.mark.asyncio
    async def test_dry_run_does_not_write(self, write_project, make_issue):
        source = "console.log('x');\n"
        root = write_project({"src/a.ts": source})
        issue = make_issue(category="Code Cleanup", file="src/a.ts", line=1)

        results = await AutoFixer(dry_run=True, min_confidence=90, root=root).fix_all({"quick": [issue]})

        assert results[0].fixes_applied == 1
        assert (root / "src/a.ts").read_text() == source

    @pytest.mark.asyncio
    async def test_crlf_line_endings_preserved(self, tmp_path, make_issue):
        (tmp_path / "src").mkdir()
        target = tmp_path / "src/a.ts"
        target.write_bytes(b"run();\r\nconsole.log('x');\r\ndone();\r\n")
        issue = make_issue(category="Code Cleanup", file="src/a.ts", line=2)

        results = await AutoFixer(min_confidence=90, root=tmp_path).fix_all({"quick": [issue]})

        assert results[0].fixes_applied == 1
        assert target.read_bytes() == b"run();\r\ndone();\r\n"

    @pytest.mark.parametrize(
        "content, expected",
        [
            ("a\nb\n", "\n"),
            ("a\r\nb\r\n", "\r\n"),
            ("a\r\nb\nc\n", "\n"),
            ("", "\n"),
        ],
    )
    def test_line_terminator(self, content, expected):
        assert line_terminator(content) == expected

    @pytest.mark.asyncio
    async def test_write_failure_excludes_file(self, write_project, make_issue):
        root = write_project({"src/a.ts": "console.log('x');\n", "src/b.ts": "console.log('y');\n"})
        issues = [
            make_issue(category="Code Cleanup", file="src/a.ts", line=1),
            make_issue(category="Code Cleanup", file="src/b.ts", line=1),
        ]
        original_write = Path.write_bytes

        def flaky_write(self, *args, **kwargs):
            if self.name == "a.ts":
                raise OSError("read-only file system")
            return original_write(self, *args, **kwargs)

        with patch.object(Path, "write_bytes", flaky_write):
            results = await AutoFixer(min_confidence=90, root=root).fix_all({"quick": issues})

        assert [result.file for result in results] == ["src/b.ts"]
        assert (root / "src/a.ts").read_text() == "console.log('x');\n"
        assert (root / "src/b.ts").read_text() == ""

    @pytest.mark.asyncio
    async def test_unreadable_file_skipped(self, tmp_path, make_issue):
        issue = make_issue(category="Code Cleanup", file="missing.ts", line=1)
        results = await AutoFixer(root=tmp_path).fix_all({"quick": [issue]})
        assert results == []

    @pytest.mark.asyncio
    async def test_files_without_generators_not_read(self, tmp_path, make_issue):
        issue = make_issue(category="Security", file="missing.ts", severity=Severity.ERROR)
        with patch("codehealth.autofix.read_source_file") as read:
            results = await AutoFixer(root=tmp_path).fix_all({"bugs": [issue]})
        read.assert_not_called()
        assert results == []

    def test_fix_content_is_pure(self, make_issue):
        issue = make_issue(category="ARIA", file="x.tsx", line=1, message="Empty aria-label provides no accessible name")
        result, content = AutoFixer(min_confidence=90).fix_content(
            "x.tsx", '<span aria-label="">i</span>', [issue]
        )
        assert content == "<span>i</span>"
        assert result.summary.always_safe == 1


class TestEmptyDirectoryRemoval:
    @staticmethod
    def _issue(make_issue, directory):
        return make_issue(
            category="Directory Structure", file=directory, line=0,
            message="Empty directory", severity=Severity.INFO, detector="directory_structure",
        )

    @pytest.mark.asyncio
    async def test_removes_empty_directory(self, tmp_path, make_issue):
        (tmp_path / "src/old").mkdir(parents=True)
        fixer = AutoFixer(root=tmp_path)

        results = await fixer.fix_all({"directory_structure": [self._issue(make_issue, "src/old")]})

        assert not (tmp_path / "src/old").exists()
        assert (tmp_path / "src").is_dir()
        assert results[0].file == "src/old"
        assert results[0].fixes_applied == 1
        assert results[0].summary.always_safe == 1
        assert results[0].changes[0].description == "Removed empty directory src/old"

    @pytest.mark.asyncio
    async def test_dry_run_keeps_directory(self, tmp_path, make_issue):
        (tmp_path / "src/old").mkdir(parents=True)

        results = await AutoFixer(dry_run=True, root=tmp_path).fix_all(
            {"directory_structure": [self._issue(make_issue, "src/old")]}
        )

        assert results[0].fixes_applied == 1
        assert (tmp_path / "src/old").is_dir()

    @pytest.mark.asyncio
    async def test_protected_directory_untouched(self, tmp_path, make_issue):
        (tmp_path / "public").mkdir()

        results = await AutoFixer(root=tmp_path).fix_all(
            {"directory_structure": [self._issue(make_issue, "public")]}
        )

        assert results == []
        assert (tmp_path / "public").is_dir()

    @pytest.mark.asyncio
    async def test_below_threshold_is_skipped(self, tmp_path, make_issue):
        (tmp_path / "src/old").mkdir(parents=True)

        results = await AutoFixer(min_confidence=100, root=tmp_path).fix_all(
            {"directory_structure": [self._issue(make_issue, "src/old")]}
        )

        assert results[0].fixes_applied == 0
        assert [c.confidence for c in results[0].skipped] == [99]
        assert (tmp_path / "src/old").is_dir()

    @pytest.mark.asyncio
    async def test_directory_with_new_contents_kept(self, tmp_path, make_issue):
        (tmp_path / "src/old").mkdir(parents=True)
        (tmp_path / "src/old/new.ts").write_text("export {};\n")

        results = await AutoFixer(root=tmp_path).fix_all(
            {"directory_structure": [self._issue(make_issue, "src/old")]}
        )

        assert results == []
        assert (tmp_path / "src/old/new.ts").exists()
