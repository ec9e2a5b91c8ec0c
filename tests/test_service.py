"""Tests for the service facade and report rendering."""

import json
from pathlib import Path

import pytest

from codehealth.core.config import HealthConfig
from codehealth.core.exceptions import WatcherStateError
from codehealth.models import FileFixResult, FixCandidate, HealthCheckResult, Severity
from codehealth.service import HealthService, format_fix_report, format_health_report


@pytest.fixture
def service(make_watcher):
    return HealthService(watcher_factory=lambda root, config: make_watcher(root))


class TestCheck:
    @pytest.mark.asyncio
    async def test_markdown_report(self, service, tmp_path):
        report = await service.check(str(tmp_path))
        assert report.startswith(f"# Code Health Report: {tmp_path}")
        assert "- Score: 100/100 (Healthy" in report

    @pytest.mark.asyncio
    async def test_json_report(self, service, tmp_path):
        report = json.loads(await service.check(str(tmp_path), output_format="json"))
        assert report["success"] is True
        assert report["healthScore"] == 100
        assert "bugIssues" in report["details"]

    @pytest.mark.asyncio
    async def test_failure_reported_as_summary(self, service, tmp_path):
        report = await service.check(str(tmp_path / "missing"))
        assert report.startswith("Health check failed:")


class TestFix:
    @pytest.mark.asyncio
    async def test_dry_run_reports_without_writing(self, service, write_project):
        source = "import x from 'y'; // UNUSED\nexport const a = 1;\n"
        root = write_project({"src/a.ts": source})

        report = await service.fix(str(root), dry_run=True, min_confidence=90)

        assert report.startswith("## Auto-Fix (dry run)")
        assert "- Minimum confidence: 90" in report
        assert "Removed unused import at line 1" in report
        assert (root / "src/a.ts").read_text() == source

    @pytest.mark.asyncio
    async def test_applies_when_not_dry_run(self, service, write_project):
        root = write_project({"src/a.ts": "import x from 'y'; // UNUSED\nexport const a = 1;\n"})

        report = await service.fix(str(root), dry_run=False, min_confidence=90)

        assert report.startswith("## Auto-Fix\n")
        assert (root / "src/a.ts").read_text() == "export const a = 1;\n"


class TestWatch:
    def test_live_status_without_watcher(self, service):
        with pytest.raises(WatcherStateError):
            service.live_status()

    @pytest.mark.asyncio
    async def test_stop_without_watcher(self, service):
        with pytest.raises(WatcherStateError):
            await service.watch_stop()

    @pytest.mark.asyncio
    async def test_start_status_stop(self, service, tmp_path):
        started = await service.watch_start(str(tmp_path))
        assert started.startswith("# File Watcher Started:")
        assert "- State: running" in started

        status = json.loads(service.live_status(output_format="json"))
        assert status["isRunning"] is True
        assert status["healthScore"] == 100

        assert "- Health: 100/100" in service.live_status()

        stopped = await service.watch_stop()
        assert stopped == f"Stopped watching {Path(tmp_path).resolve()} after 0 checks. Final score: 100/100"
        with pytest.raises(WatcherStateError):
            service.live_status()

    @pytest.mark.asyncio
    async def test_restart_replaces_watcher(self, service, tmp_path_factory):
        first_root = tmp_path_factory.mktemp("first")
        second_root = tmp_path_factory.mktemp("second")

        await service.watch_start(str(first_root))
        first = service.handle.require()
        await service.watch_start(str(second_root))
        try:
            assert first.is_running is False
            assert service.handle.require().root == second_root.resolve()
        finally:
            await service.watch_stop()


class TestRendering:
    def test_health_report_sections(self, make_issue):
        result = HealthCheckResult(
            success=True,
            health_score=65,
            recommendations=["[BUG] Fix 1 potential bug (1 error)"],
            summary="Health check completed in 5ms - Score: 65/100",
            details={"bugs": [make_issue(severity=Severity.ERROR, file="src/a.ts", line=4, message="eval")]},
            deductions={"bugs": 5, "naming": 0},
            files_analyzed=1,
        )

        report = format_health_report(Path("proj"), result, HealthConfig())

        assert "(Below minimum; target 90, minimum 70)" in report
        assert "## Deductions\n- bugs: -5\n" in report
        assert "- [error] src/a.ts:4: eval" in report
        assert "naming" not in report

    def test_fix_report(self):
        fixes = [
            FileFixResult(
                file="src/a.tsx",
                fixes_applied=1,
                changes=[FixCandidate(new_content="", description="Removed console.log at line 3", confidence=90)],
                skipped=[FixCandidate(new_content="", description="Added label for input at line 9", confidence=75)],
            )
        ]

        report = format_fix_report(fixes, dry_run=False, min_confidence=None)

        assert report.splitlines() == [
            "## Auto-Fix",
            "- Applied 1 fixes in 1 files",
            "- Skipped 1 low-confidence fixes",
            "",
            "### src/a.tsx",
            "- Removed console.log at line 3 (confidence 90)",
            "- Skipped: Added label for input at line 9 (confidence 75)",
        ]
