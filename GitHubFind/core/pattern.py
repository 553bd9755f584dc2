"""
Glob matching for repository paths.

Supported syntax:
    *       any run of characters except "/"
    **      zero or more path segments (only as a whole path component)
    ?       a single character except "/"
    [...]   character class, ranges and negation with "^" or "!"
    {a,b}   alternation, may be nested
    \\x      literal x

Patterns are translated to regular expressions once and memoized, so
matching is safe to call from any number of worker threads.
"""

import logging
import re
from functools import lru_cache

from core.errors import PatternError

logger = logging.getLogger(__name__)


def match(pattern: str, path: str, ignore_case: bool = False) -> bool:
    """
    Report whether path matches the glob pattern.

    Args:
        pattern: Glob pattern
        path: Slash-separated path (or basename) to test
        ignore_case: Case-fold both the pattern and the path

    Returns:
        True if the whole path matches

    Raises:
        PatternError: If the pattern is malformed
    """
    compiled = compile_pattern(pattern, ignore_case)
    if ignore_case:
        path = path.lower()
    return compiled.fullmatch(path) is not None


@lru_cache(maxsize=512)
def compile_pattern(pattern: str, ignore_case: bool = False) -> re.Pattern:
    """Translate a glob pattern into a compiled regular expression."""
    if ignore_case:
        pattern = pattern.lower()

    alternatives = _expand_braces(pattern)
    regex = "|".join(f"(?:{_translate(alt, pattern)})" for alt in alternatives)

    try:
        compiled = re.compile(regex, re.DOTALL)
    except re.error as e:
        raise PatternError(f"invalid pattern {pattern!r}: {e}", pattern) from e

    logger.debug(f"Compiled pattern {pattern!r} -> {regex!r}")
    return compiled


def validate_pattern(pattern: str, ignore_case: bool = False) -> None:
    """Raise PatternError if pattern cannot be compiled as it will be matched."""
    compile_pattern(pattern, ignore_case)


def _bracket_end(pattern: str, start: int) -> int:
    """Return the index of the "]" closing the class opened at start, or -1."""
    n = len(pattern)
    i = start + 1
    if i < n and pattern[i] in "^!":
        i += 1
    # A leading "]" is a literal member of the class.
    if i < n and pattern[i] == "]":
        i += 1
    while i < n and pattern[i] != "]":
        if pattern[i] == "\\":
            i += 1
        i += 1
    return i if i < n else -1


def _find_open_brace(pattern: str) -> int:
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "\\":
            i += 2
            continue
        if c == "[":
            end = _bracket_end(pattern, i)
            if end < 0:
                raise PatternError(f"invalid pattern {pattern!r}: unbalanced '['", pattern)
            i = end + 1
            continue
        if c == "{":
            return i
        i += 1
    return -1


def _split_brace_group(pattern: str, start: int) -> tuple[int, list[str]]:
    """Split the group opened at start into its top-level alternatives."""
    n = len(pattern)
    depth = 0
    i = start + 1
    segment_start = i
    alternatives = []

    while i < n:
        c = pattern[i]
        if c == "\\":
            i += 2
            continue
        if c == "[":
            end = _bracket_end(pattern, i)
            if end < 0:
                raise PatternError(f"invalid pattern {pattern!r}: unbalanced '['", pattern)
            i = end + 1
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            if depth == 0:
                alternatives.append(pattern[segment_start:i])
                return i, alternatives
            depth -= 1
        elif c == "," and depth == 0:
            alternatives.append(pattern[segment_start:i])
            segment_start = i + 1
        i += 1

    raise PatternError(f"invalid pattern {pattern!r}: unbalanced '{{'", pattern)


def _expand_braces(pattern: str) -> list[str]:
    start = _find_open_brace(pattern)
    if start < 0:
        return [pattern]

    end, alternatives = _split_brace_group(pattern, start)
    prefix, suffix = pattern[:start], pattern[end + 1:]

    expanded = []
    for alternative in alternatives:
        expanded.extend(_expand_braces(prefix + alternative + suffix))
    return expanded


def _translate_class(body: str) -> str:
    negate = body[:1] in ("^", "!")
    if negate:
        body = body[1:]

    members = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\" and i + 1 < len(body):
            members.append(re.escape(body[i + 1]))
            i += 2
            continue
        if c == "-" and members and i + 1 < len(body):
            members.append("-")
        else:
            members.append(re.escape(c))
        i += 1

    # Classes never match the path separator.
    if negate:
        return "[^/" + "".join(members) + "]"
    return "(?!/)[" + "".join(members) + "]"


def _translate(pattern: str, original: str) -> str:
    """Translate a brace-free glob into regex source."""
    parts: list[str] = []
    i = 0
    n = len(pattern)

    while i < n:
        c = pattern[i]

        if c == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            whole_component = (i == 0 or pattern[i - 1] == "/") and (j == n or pattern[j] == "/")

            if j - i >= 2 and whole_component:
                if j < n:
                    # "**/" consumes its trailing separator.
                    parts.append("(?:.*/)?")
                    j += 1
                elif parts and parts[-1] == "/":
                    # Trailing "/**" also matches the directory itself.
                    parts.pop()
                    parts.append("(?:/.*)?")
                else:
                    parts.append(".*")
            else:
                parts.append("[^/]*")
            i = j

        elif c == "?":
            parts.append("[^/]")
            i += 1

        elif c == "[":
            end = _bracket_end(pattern, i)
            if end < 0:
                raise PatternError(f"invalid pattern {original!r}: unbalanced '['", original)
            parts.append(_translate_class(pattern[i + 1:end]))
            i = end + 1

        elif c == "\\":
            if i + 1 >= n:
                raise PatternError(f"invalid pattern {original!r}: trailing escape", original)
            parts.append(re.escape(pattern[i + 1]))
            i += 2

        else:
            parts.append(re.escape(c))
            i += 1

    return "".join(parts)
