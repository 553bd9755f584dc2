"""
Tree entry filters.

Every filter takes a sequence of entries and returns a new list holding the
survivors in their original order. An empty selector (no types, no
extensions, no excludes, zero sizes) leaves the input unchanged.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Optional

from core.entities import FileCommitInfo, FileType, SearchOptions, TreeEntry, normalize_extension
from core.errors import PatternError
from core.pattern import compile_pattern

logger = logging.getLogger(__name__)


def filter_by_type(entries: Sequence[TreeEntry], types: Sequence[FileType]) -> list[TreeEntry]:
    """Keep entries whose file type is one of types."""
    if not types:
        return list(entries)

    wanted = set(types)
    return [entry for entry in entries if entry.file_type in wanted]


def _extension(path: str) -> str:
    basename = path.rsplit("/", 1)[-1]
    dot = basename.rfind(".")
    return basename[dot:] if dot >= 0 else ""


def filter_by_extension(
    entries: Sequence[TreeEntry],
    extensions: Sequence[str],
    ignore_case: bool = False,
) -> list[TreeEntry]:
    """Keep entries whose final extension is one of extensions."""
    if not extensions:
        return list(entries)

    wanted = {normalize_extension(ext) for ext in extensions}
    if ignore_case:
        wanted = {ext.lower() for ext in wanted}

    filtered = []
    for entry in entries:
        ext = _extension(entry.path)
        if ignore_case:
            ext = ext.lower()
        if ext and ext in wanted:
            filtered.append(entry)
    return filtered


def filter_by_size(entries: Sequence[TreeEntry], min_size: int = 0, max_size: int = 0) -> list[TreeEntry]:
    """Keep entries with min_size <= size <= max_size; 0 disables a bound."""
    if min_size == 0 and max_size == 0:
        return list(entries)

    filtered = []
    for entry in entries:
        if min_size > 0 and entry.size < min_size:
            continue
        if max_size > 0 and entry.size > max_size:
            continue
        filtered.append(entry)
    return filtered


def _match_target(entry: TreeEntry, full_path: bool) -> str:
    return entry.path if full_path else entry.basename


def filter_by_pattern(
    entries: Sequence[TreeEntry],
    pattern: str,
    full_path: bool = False,
    ignore_case: bool = False,
) -> list[TreeEntry]:
    """Keep entries whose basename (or full path) matches pattern."""
    try:
        compiled = compile_pattern(pattern, ignore_case)
    except PatternError as e:
        raise PatternError(f"pattern {pattern!r} is invalid: {e}", pattern) from e

    filtered = []
    for entry in entries:
        target = _match_target(entry, full_path)
        if ignore_case:
            target = target.lower()
        if compiled.fullmatch(target):
            filtered.append(entry)
    return filtered


def filter_by_excludes(
    entries: Sequence[TreeEntry],
    excludes: Sequence[str],
    full_path: bool = False,
    ignore_case: bool = False,
) -> list[TreeEntry]:
    """Drop entries matching any of the exclude patterns."""
    if not excludes:
        return list(entries)

    compiled = []
    for exclude in excludes:
        try:
            compiled.append(compile_pattern(exclude, ignore_case))
        except PatternError as e:
            raise PatternError(f"exclude pattern {exclude!r} is invalid: {e}", exclude) from e

    filtered = []
    for entry in entries:
        target = _match_target(entry, full_path)
        if ignore_case:
            target = target.lower()
        if not any(regex.fullmatch(target) for regex in compiled):
            filtered.append(entry)
    return filtered


def filter_by_commit_date(
    entries: Sequence[TreeEntry],
    commit_infos: Iterable[FileCommitInfo],
    changed_after: Optional[datetime] = None,
    changed_before: Optional[datetime] = None,
) -> list[TreeEntry]:
    """
    Keep entries last committed within [changed_after, changed_before].

    Entries without a commit date are dropped: an unknown date cannot
    satisfy a date constraint.
    """
    dates = {info.path: info.committed_date for info in commit_infos}

    filtered = []
    for entry in entries:
        committed = dates.get(entry.path)
        if committed is None:
            continue
        if changed_after is not None and committed < changed_after:
            continue
        if changed_before is not None and committed > changed_before:
            continue
        filtered.append(entry)
    return filtered


def apply_filters(entries: Sequence[TreeEntry], options: SearchOptions) -> list[TreeEntry]:
    """
    Run the type, extension, size, pattern and exclude filters in order.

    Raises:
        PatternError: If the pattern or an exclude pattern is malformed
    """
    filtered = filter_by_type(entries, options.file_types)
    filtered = filter_by_extension(filtered, options.extensions, options.ignore_case)
    filtered = filter_by_size(filtered, options.min_size, options.max_size)
    filtered = filter_by_pattern(filtered, options.pattern, options.full_path, options.ignore_case)
    filtered = filter_by_excludes(filtered, options.excludes, options.full_path, options.ignore_case)

    logger.debug(f"{len(filtered)} of {len(entries)} entries survived the filters")
    return filtered
