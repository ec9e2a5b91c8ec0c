"""Tests for configuration loading and file discovery."""

from pathlib import Path

import pytest

from codehealth.constants import DEFAULT_MIN_CONFIDENCE
from codehealth.core.config import HealthConfig, load_config
from codehealth.core import exceptions
from codehealth.core.exceptions import FileReadError, InvalidConfigError
from codehealth.core.file_discovery import (
    find_source_files,
    is_test_file,
    read_source_file,
    read_source_files,
    should_ignore,
)


class TestLoadConfig:
    def test_defaults_without_config(self, tmp_path):
        config = load_config(tmp_path)
        assert config == HealthConfig()
        assert config.checks.accessibility is False
        assert config.checks.bugs is True
        assert config.autofix.min_confidence == DEFAULT_MIN_CONFIDENCE
        assert config.thresholds.minimum == 70
        assert config.thresholds.target == 90

    def test_codehealth_toml(self, tmp_path):
        (tmp_path / ".codehealth.toml").write_text(
            'ignore = ["legacy/"]\n'
            "use_ast_bug_detector = true\n"
            "\n"
            "[checks]\n"
            "nextjs = false\n"
            "\n"
            "[autofix]\n"
            "min_confidence = 95\n"
            "dry_run = true\n"
            "\n"
            "[watcher]\n"
            "debounce_ms = 250\n"
        )

        config = load_config(tmp_path)

        assert config.ignore == ["legacy/"]
        assert config.use_ast_bug_detector is True
        assert config.checks.nextjs is False
        assert "nextjs" not in config.checks.enabled()
        assert config.autofix.min_confidence == 95
        assert config.autofix.dry_run is True
        assert config.watcher.debounce_ms == 250

    def test_pyproject_section(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "demo"\n\n[tool.codehealth]\nmax_files = 50\n'
        )
        assert load_config(tmp_path).max_files == 50

    def test_pyproject_without_section(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "demo"\n')
        assert load_config(tmp_path) == HealthConfig()

    def test_dedicated_file_wins(self, tmp_path):
        (tmp_path / ".codehealth.toml").write_text("max_files = 10\n")
        (tmp_path / "pyproject.toml").write_text("[tool.codehealth]\nmax_files = 50\n")
        assert load_config(tmp_path).max_files == 10

    def test_malformed_toml(self, tmp_path):
        (tmp_path / ".codehealth.toml").write_text("ignore = [unterminated\n")
        with pytest.raises(InvalidConfigError):
            load_config(tmp_path)

    def test_invalid_value(self, tmp_path):
        (tmp_path / ".codehealth.toml").write_text("[autofix]\nmin_confidence = 150\n")
        with pytest.raises(InvalidConfigError, match="Invalid configuration"):
            load_config(tmp_path)


class TestShouldIgnore:
    @pytest.mark.parametrize(
        "path",
        [
            "node_modules/react/index.js",
            "apps/web/.next/server/page.js",
            "public/vendor.min.js",
            "src/types/global.d.ts",
            "src/api.generated.ts",
            "scripts/maintenance/cleanup.ts",
        ],
    )
    def test_default_patterns(self, path):
        assert should_ignore(path)

    @pytest.mark.parametrize("path", ["src/app.ts", "src/builder/index.ts", "lib/distance.ts"])
    def test_regular_sources(self, path):
        assert not should_ignore(path)

    def test_custom_fragment(self):
        assert should_ignore("src/legacy/old.ts", ["legacy/"])
        assert not should_ignore("src/current/new.ts", ["legacy/"])

    def test_custom_component(self):
        assert should_ignore("src/gen/api.ts", ["gen"])
        assert not should_ignore("src/general.ts", ["gen"])


class TestIsTestFile:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("src/a.test.ts", True),
            ("src/a.spec.tsx", True),
            ("src/__tests__/a.ts", True),
            ("tests/unit/a.ts", True),
            ("src/testing.ts", False),
        ],
    )
    def test_detection(self, path, expected):
        assert is_test_file(path) is expected


class TestFindSourceFiles:
    def test_filters_extensions_and_ignored_dirs(self, write_project):
        root = write_project({
            "src/a.ts": "",
            "src/b.tsx": "",
            "src/readme.md": "",
            "node_modules/pkg/index.js": "",
            "dist/bundle.js": "",
        })

        files = find_source_files(root)

        assert [Path(f).relative_to(root).as_posix() for f in files] == ["src/a.ts", "src/b.tsx"]

    def test_max_files(self, write_project):
        root = write_project({"a.ts": "", "b.ts": "", "c.ts": ""})
        assert len(find_source_files(root, max_files=2)) == 2

    def test_extra_ignore_patterns(self, write_project):
        root = write_project({"src/a.ts": "", "src/gen/b.ts": ""})
        files = find_source_files(root, ignore_patterns=["gen"])
        assert [Path(f).name for f in files] == ["a.ts"]


class TestReadSourceFiles:
    @pytest.mark.asyncio
    async def test_read_missing_file(self, tmp_path):
        with pytest.raises(FileReadError) as exc_info:
            await read_source_file(tmp_path / "missing.ts")
        assert exc_info.value.path.endswith("missing.ts")

    @pytest.mark.asyncio
    async def test_read_many_skips_failures(self, write_project):
        root = write_project({"a.ts": "const a = 1;\n"})
        contents = await read_source_files([str(root / "a.ts"), str(root / "missing.ts")])
        assert contents == {str(root / "a.ts"): "const a = 1;\n"}

    @pytest.mark.asyncio
    async def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "binary.ts"
        path.write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(FileReadError):
            await read_source_file(path)

    @pytest.mark.asyncio
    async def test_newlines_folded_by_default(self, tmp_path):
        path = tmp_path / "a.ts"
        path.write_bytes(b"a();\r\nb();\r\n")
        assert await read_source_file(path) == "a();\nb();\n"

    @pytest.mark.asyncio
    async def test_preserve_newlines(self, tmp_path):
        path = tmp_path / "a.ts"
        path.write_bytes(b"a();\r\nb();\r\n")
        assert await read_source_file(path, preserve_newlines=True) == "a();\r\nb();\r\n"


class TestExceptionHierarchy:
    def test_every_error_derives_from_base(self):
        from codehealth.core import __all__ as exported

        errors = [getattr(exceptions, name) for name in exported if hasattr(exceptions, name)]
        assert errors
        assert all(issubclass(error, exceptions.CodeHealthError) for error in errors)

    def test_analysis_errors(self):
        assert exceptions.AnalysisError.__subclasses__() == [FileReadError]
