"""Source file discovery and ignore rules.

Walks a project tree, pruning ignored directories early, and reads source
files off the event loop.
"""

import asyncio
import logging
import os
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from ..constants import DEFAULT_MAX_FILES, WATCHED_EXTENSIONS
from .exceptions import FileReadError

logger = logging.getLogger(__name__)

# Directory names and patterns that are never analysed
DEFAULT_IGNORE_PATTERNS = (
    "node_modules",
    ".next",
    "dist",
    "build",
    ".git",
    "coverage",
    ".turbo",
    "*.generated.*",
    "*.min.js",
    "*.d.ts",
    "scripts/maintenance",
    # the tool's own files when a project vendors or configures it
    "codehealth",
    ".codehealth",
)

# Directories that must never be reported or removed as empty
PROTECTED_DIRECTORIES = frozenset({
    ".git",
    "node_modules",
    "public",
    ".next",
    ".vercel",
    ".github",
})


def should_ignore(path: str | Path, patterns: Iterable[str] = DEFAULT_IGNORE_PATTERNS) -> bool:
    """Return ``True`` if *path* matches any ignore pattern.

    Patterns are interpreted by shape:

    - globs (containing ``*``) are matched against the path,
    - patterns containing ``/`` are matched as path fragments,
    - anything else must equal one of the path's components.
    """
    posix = PurePosixPath(Path(path).as_posix())
    text = str(posix)
    for pattern in patterns:
        if "*" in pattern:
            if posix.match(pattern):
                return True
        elif "/" in pattern:
            if pattern.strip("/") in text:
                return True
        elif pattern in posix.parts:
            return True
    return False


def is_test_file(path: str | Path) -> bool:
    """Return ``True`` for test and spec files."""
    posix = PurePosixPath(Path(path).as_posix())
    name = posix.name
    if ".test." in name or ".spec." in name:
        return True
    return "tests" in posix.parts or "__tests__" in posix.parts


def find_source_files(
    root: str | Path,
    extensions: Iterable[str] = WATCHED_EXTENSIONS,
    ignore_patterns: Iterable[str] = (),
    max_files: int = DEFAULT_MAX_FILES,
) -> list[str]:
    """Collect analysable source files below *root*.

    Args:
        root: Directory to search.
        extensions: File suffixes to include.
        ignore_patterns: Patterns added to :data:`DEFAULT_IGNORE_PATTERNS`.
        max_files: Stop after this many files.

    Returns:
        Sorted list of file paths.
    """
    root_path = Path(root)
    patterns = (*DEFAULT_IGNORE_PATTERNS, *ignore_patterns)
    suffixes = tuple(extensions)
    files: list[str] = []

    for dirpath, dirnames, filenames in os.walk(root_path):
        rel_dir = Path(dirpath).relative_to(root_path)
        dirnames[:] = sorted(
            d for d in dirnames if not should_ignore(rel_dir / d, patterns)
        )
        for filename in sorted(filenames):
            if not filename.endswith(suffixes):
                continue
            rel_path = rel_dir / filename
            if should_ignore(rel_path, patterns):
                continue
            files.append(str(Path(dirpath) / filename))
            if len(files) >= max_files:
                logger.warning(f"File limit reached ({max_files}), remaining files are skipped")
                return files

    return files


def find_directories(root: str | Path, ignore_patterns: Iterable[str] = ()) -> list[Path]:
    """Collect non-ignored directories below *root* (excluding *root*)."""
    root_path = Path(root)
    patterns = (*DEFAULT_IGNORE_PATTERNS, *ignore_patterns)
    directories: list[Path] = []

    for dirpath, dirnames, _filenames in os.walk(root_path):
        rel_dir = Path(dirpath).relative_to(root_path)
        dirnames[:] = sorted(
            d for d in dirnames
            if d not in PROTECTED_DIRECTORIES and not should_ignore(rel_dir / d, patterns)
        )
        directories.extend(Path(dirpath) / d for d in dirnames)

    return directories


async def read_source_file(path: str | Path, preserve_newlines: bool = False) -> str:
    """Read a source file without blocking the event loop.

    Text mode folds CRLF line endings into LF. Pass *preserve_newlines* when the
    content will be written back and must keep its original line endings.

    Raises:
        FileReadError: If the file cannot be read or is not valid UTF-8.
    """
    try:
        if preserve_newlines:
            data = await asyncio.to_thread(Path(path).read_bytes)
            return data.decode("utf-8")
        return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FileReadError(f"Failed to read {path}: {e}", path=str(path)) from e


async def read_source_files(paths: Iterable[str]) -> dict[str, str]:
    """Read many files, skipping (and logging) the ones that fail."""
    contents: dict[str, str] = {}
    for path in paths:
        try:
            contents[path] = await read_source_file(path)
        except FileReadError as e:
            logger.warning(str(e))
    return contents
