"""Constants and configuration values for codehealth.

This module centralizes magic numbers and configuration values
that are used across the codebase for easier maintenance.
"""

import os

# =============================================================================
# Score Bounds
# =============================================================================

MAX_SCORE = 100.0
MIN_SCORE = 0.0

# Score used when the watcher's baseline run fails
BASELINE_FALLBACK_SCORE = 50.0

# Scores within this distance of each other are reported as "stable"
TREND_STABILITY_THRESHOLD = 1.0


# =============================================================================
# Watcher Configuration
# =============================================================================

# Quiet window before pending file changes are analysed (milliseconds)
DEFAULT_DEBOUNCE_MS = int(os.environ.get("CODEHEALTH_DEBOUNCE_MS", 500))

# Ceiling on issues retained by the watcher
MAX_WATCHER_ISSUES = int(os.environ.get("CODEHEALTH_MAX_ISSUES", 1000))

# Number of issues included in a status snapshot
TOP_ISSUES_LIMIT = 10

# Extensions the watcher reacts to
WATCHED_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")

# Extensions that may contain JSX markup
JSX_EXTENSIONS = (".tsx", ".jsx")

# Per-issue point cost used by the incremental score, keyed by severity rank
INCREMENTAL_RANK_POINTS = {0: 0.5, 1: 0.3, 2: 0.1}


# =============================================================================
# Batch Scoring Caps
# =============================================================================

BUG_DEDUCTION_CAP = 20.0
PERFORMANCE_DEDUCTION_CAP = 15.0
CONSISTENCY_DEDUCTION_CAP = 10.0
IMPORT_DEDUCTION_CAP = 10.0
NEXTJS_DEDUCTION_CAP = 15.0
ACCESSIBILITY_DEDUCTION_CAP = 10.0
DEAD_CODE_DEDUCTION_CAP = 15.0
PACKAGE_HEALTH_DEDUCTION_CAP = 6.0
DIRECTORY_STRUCTURE_DEDUCTION_CAP = 8.0
LARGE_FILE_DEDUCTION_CAP = 8.0
COMPLEXITY_DEDUCTION_CAP = 8.0
TODO_DEDUCTION_CAP = 8.0
OUTDATED_PATTERN_DEDUCTION_CAP = 6.0
NAMING_DEDUCTION_CAP = 4.0

# Consistency issues cost one point per group of this many
CONSISTENCY_ISSUES_PER_POINT = 3

# Import deductions
UNUSED_IMPORT_POINTS = 0.5
OTHER_IMPORT_POINTS = 0.3

# Dead code: debug statements counted per file are capped at this value
MAX_DEBUG_POINTS_PER_FILE = 5


# =============================================================================
# Structural Check Thresholds
# =============================================================================

LARGE_FILE_LINES = 1000
VERY_LARGE_FILE_LINES = 1500

# Cyclomatic complexity above which a function is reported
COMPLEXITY_THRESHOLD = 10

# Brace nesting depth above which a function is reported
MAX_NESTING_DEPTH = 4

# Files with more debug statements than this are reported
DEBUG_STATEMENT_ALLOWANCE = 2
MAX_DEBUG_ISSUES_PER_FILE = 10

# package.json dependency counts above which the manifest is reported
MAX_DEPENDENCIES = 60
MAX_DEV_DEPENDENCIES = 40

# Maximum number of files analysed by a single batch run
DEFAULT_MAX_FILES = 1000


# =============================================================================
# Auto-Fix Confidence Tiers
# =============================================================================

DEFAULT_MIN_CONFIDENCE = int(os.environ.get("CODEHEALTH_MIN_CONFIDENCE", 90))

ALWAYS_SAFE_CONFIDENCE = 99
SAFE_WITH_REVIEW_CONFIDENCE = 90
NEEDS_CONFIRMATION_CONFIDENCE = 80


# =============================================================================
# Server Configuration
# =============================================================================

DEFAULT_SERVER_PORT = int(os.environ.get("CODEHEALTH_PORT", "3000"))
