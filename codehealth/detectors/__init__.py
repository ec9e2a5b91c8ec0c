"""Pluggable detectors that turn source text into issues.

Every detector implements :class:`~codehealth.detectors.base.Detector`;
:class:`~codehealth.detectors.base.ProjectDetector` adds a whole-codebase
pass for detectors that compare files with each other.
"""

from .base import Detector, FileContext, ProjectDetector
from .bug_detector import BugDetector
from .bug_detector_ast import BugDetectorAST
from .consistency_detector import ConsistencyDetector
from .import_detector import ImportDetector
from .nextjs_detector import NextJSDetector
from .performance_detector import PerformanceDetector
from .quick_checks import QuickDetector
from .structural import (
    ComplexityDetector,
    DeadCodeDetector,
    LargeFileDetector,
    NamingDetector,
    OutdatedPatternDetector,
    TodoCommentDetector,
    check_directory_structure,
    check_package_health,
)
from .wcag_detector import AccessibilityDetector

__all__ = [
    "AccessibilityDetector",
    "BugDetector",
    "BugDetectorAST",
    "ComplexityDetector",
    "ConsistencyDetector",
    "DeadCodeDetector",
    "Detector",
    "FileContext",
    "ImportDetector",
    "LargeFileDetector",
    "NamingDetector",
    "NextJSDetector",
    "OutdatedPatternDetector",
    "PerformanceDetector",
    "ProjectDetector",
    "QuickDetector",
    "TodoCommentDetector",
    "check_directory_structure",
    "check_package_health",
]
