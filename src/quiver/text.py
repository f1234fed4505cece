"""
Text primitives shared by the built-in effectors.

- split_lines: Split text into lines the way every tool numbers them
- extract_window: Slice a list of lines by offset/limit
- replace_unique: Replace exactly one literal occurrence of a string
- search_lines: Regex line search with one hit per line

All of them are pure functions over their inputs. Failures are raised as
TextError subclasses carrying a message an agent can act on.
"""

import re
from bisect import bisect_right
from typing import Sequence

from quiver.errors import (
    AmbiguousMatchError,
    EmptyPatternError,
    InvalidPatternError,
    MatchNotFoundError,
    OutOfRangeError,
)


def split_lines(text: str) -> list[str]:
    """
    Split `text` on "\\n" only, dropping the empty piece after a trailing
    newline and a trailing "\\r" on each line.

    Other characters str.splitlines() treats as boundaries (form feed,
    vertical tab, "\\u2028", ...) stay inside their line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


def extract_window(
    lines: Sequence[str],
    offset: int = 0,
    limit: int | None = None,
) -> str:
    """
    Return the lines in [offset, offset + limit) joined with newlines.

    An offset of 0 on an empty sequence is valid and yields "". Any other
    offset outside the sequence is an error.

    Args:
        lines: Lines already split on line boundaries
        offset: Zero-based index of the first line to return
        limit: Maximum number of lines, None for all remaining lines

    Returns:
        The selected lines joined with "\\n"

    Raises:
        OutOfRangeError: If offset is negative or past the end, or limit is negative
    """
    total = len(lines)
    if offset < 0 or (limit is not None and limit < 0):
        raise OutOfRangeError(offset=offset, limit=limit, total=total)
    if total == 0 and offset == 0:
        return ""
    if offset >= total:
        raise OutOfRangeError(offset=offset, limit=limit, total=total)

    end = total if limit is None else min(offset + limit, total)
    return "\n".join(lines[offset:end])


def replace_unique(text: str, old: str, new: str) -> str:
    """
    Replace the single occurrence of `old` in `text` with `new`.

    Matching is literal and case-sensitive. `new` is inserted verbatim, so
    backslashes and group references have no special meaning.

    Returns:
        The updated text. Persisting it is up to the caller.

    Raises:
        EmptyPatternError: If old is empty
        MatchNotFoundError: If old does not occur
        AmbiguousMatchError: If old occurs more than once
    """
    if not old:
        raise EmptyPatternError()

    count = text.count(old)
    if count == 0:
        raise MatchNotFoundError(pattern=old)
    if count > 1:
        raise AmbiguousMatchError(pattern=old, count=count)

    start = text.index(old)
    return text[:start] + new + text[start + len(old):]


def search_lines(text: str, pattern: str) -> list[tuple[int, str]]:
    """
    Find the lines of `text` where `pattern` matches.

    Every match contributes the 1-based number of the line it starts on.
    A line matched several times is reported once, and results come back in
    ascending line order.

    Args:
        text: The text to scan
        pattern: A regular expression (case-sensitive)

    Returns:
        List of (line_number, line_content) pairs, newline stripped

    Raises:
        InvalidPatternError: If pattern does not compile
        MatchNotFoundError: If nothing matches
    """
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(pattern=pattern, reason=str(e)) from e

    lines = split_lines(text)

    starts = [0]
    for index, char in enumerate(text):
        if char == "\n":
            starts.append(index + 1)

    # dict keeps first-seen order, and finditer scans left to right
    hits: dict[int, str] = {}
    for match in regex.finditer(text):
        line_number = bisect_right(starts, match.start())
        if line_number > len(lines) or line_number in hits:
            continue
        hits[line_number] = lines[line_number - 1]

    if not hits:
        raise MatchNotFoundError(pattern=pattern)

    return list(hits.items())
