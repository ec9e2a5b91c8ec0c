"""Detector contract shared by every analysis family.

A detector is a bundle of *rules*. Each rule is a generator that receives a
:class:`FileContext` and yields :class:`~codehealth.models.Issue` objects.
:meth:`Detector.analyze` drives the rules one by one, so a rule that raises
only loses its own remaining findings; everything yielded before the failure
is kept.

Usage::

    detector = BugDetector()
    issues = detector.analyze("src/app.ts", source)
    counts = detector.get_severity_count()   # {"error": 1, "warning": 0, "info": 2}
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import ClassVar

from ..core.file_discovery import is_test_file
from ..models import STANDARD_SCALE, Issue, Severity

logger = logging.getLogger(__name__)


@dataclass
class FileContext:
    """Everything a rule may look at for one file.

    Attributes:
        path: Path as given by the caller.
        content: Full file text.
        lines: ``content`` split on newlines.
    """

    path: str
    content: str
    lines: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.lines:
            self.lines = self.content.split("\n")

    @property
    def posix(self) -> str:
        """Path with forward slashes, for substring heuristics."""
        return PurePosixPath(self.path.replace("\\", "/")).as_posix()

    @property
    def name(self) -> str:
        return PurePosixPath(self.posix).name

    @property
    def is_test(self) -> bool:
        return is_test_file(self.path)

    @property
    def is_jsx(self) -> bool:
        return self.path.endswith((".tsx", ".jsx"))


Rule = Callable[[FileContext], Iterator[Issue]]


class Detector(ABC):
    """Base class for all detectors.

    Subclasses set :attr:`name` and :attr:`severity_scale` and implement
    :meth:`rules`. Issues found by successive :meth:`analyze` calls are
    accumulated, so one instance should cover one analysis run.
    """

    name: ClassVar[str] = ""
    severity_scale: ClassVar[tuple[Severity, ...]] = STANDARD_SCALE

    def __init__(self) -> None:
        self._issues: list[Issue] = []

    @abstractmethod
    def rules(self) -> list[Rule]:
        """Return the rules this detector runs, in order."""

    def analyze(self, file_path: str, content: str) -> list[Issue]:
        """Run every rule over one file.

        Never raises: a failing rule is logged and skipped.

        Args:
            file_path: Path of the file, used for path heuristics only.
            content: Full text of the file.

        Returns:
            Issues found in this file.
        """
        ctx = FileContext(path=file_path, content=content)
        found: list[Issue] = []

        for rule in self.rules():
            try:
                for issue in rule(ctx):
                    found.append(issue)
            except Exception as e:
                logger.warning(
                    f"{type(self).__name__}.{getattr(rule, '__name__', 'rule')} "
                    f"failed on {file_path}: {e}"
                )

        self._issues.extend(found)
        return found

    def issue(
        self,
        ctx: FileContext,
        line: int,
        category: str,
        message: str,
        severity: Severity,
        suggestion: str = "",
    ) -> Issue:
        """Build an issue attributed to this detector."""
        return Issue(
            file=ctx.path,
            line=line,
            category=category,
            message=message,
            severity=severity,
            suggestion=suggestion,
            detector=self.name,
        )

    def get_issues(self) -> list[Issue]:
        return list(self._issues)

    def get_issues_by_category(self) -> dict[str, list[Issue]]:
        """Group accumulated issues by their category tag."""
        grouped: dict[str, list[Issue]] = defaultdict(list)
        for issue in self._issues:
            grouped[issue.category].append(issue)
        return dict(grouped)

    def get_severity_count(self) -> dict[str, int]:
        """Count accumulated issues per severity level of this detector's scale.

        Every level of the scale is present, zero-filled.
        """
        counts = {severity.value: 0 for severity in self.severity_scale}
        for issue in self._issues:
            counts[issue.severity.value] = counts.get(issue.severity.value, 0) + 1
        return counts

    def reset(self) -> None:
        self._issues.clear()


class ProjectDetector(Detector):
    """A detector that needs a whole-codebase pass before per-file analysis."""

    @abstractmethod
    def analyze_codebase(self, contents: Mapping[str, str]) -> list[Issue]:
        """Inspect all files together and return codebase-level issues.

        Args:
            contents: Mapping of file path to file text.
        """
