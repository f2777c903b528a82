"""Shell-style glob patterns for block rules.

Syntax:
    *           any run of characters except "/"
    ?           any single character except "/"
    [abc]       one character from the class; ranges like [0-9] allowed
    [^abc]      negated class; [!abc] is accepted too
    \\c          the character c, literally

A bracket expression must be closed, must not be empty, and a "-" or "]"
member must be escaped.
"""

from __future__ import annotations

import re


class GlobError(ValueError):
    """The pattern is not a valid glob."""


def _class_char(pattern: str, i: int) -> tuple[str, int]:
    n = len(pattern)
    if i >= n or pattern[i] in "-]":
        raise GlobError(f"bad character class in {pattern!r}")
    if pattern[i] == "\\":
        i += 1
        if i >= n:
            raise GlobError(f"trailing backslash in {pattern!r}")
    return pattern[i], i + 1


def _char_class(pattern: str, i: int) -> tuple[str, int]:
    """Translate the class starting after "[" at ``i``."""
    n = len(pattern)
    negate = i < n and pattern[i] in "^!"
    if negate:
        i += 1
    ranges: list[tuple[str, str]] = []
    while True:
        if i < n and pattern[i] == "]" and ranges:
            i += 1
            break
        lo, i = _class_char(pattern, i)
        hi = lo
        if i < n and pattern[i] == "-":
            hi, i = _class_char(pattern, i + 1)
        ranges.append((lo, hi))

    members = "".join(
        re.escape(lo) if lo == hi else f"{re.escape(lo)}-{re.escape(hi)}"
        for lo, hi in ranges
        if lo <= hi
    )
    if not members:
        # Only inverted ranges: matches nothing, or anything when negated
        return ("(?s:.)" if negate else "(?!)"), i
    return f"[{'^' if negate else ''}{members}]", i


def translate(pattern: str) -> str:
    """Translate a glob into a regular expression matching the whole name.

    Raises:
        GlobError: if the pattern is malformed.
    """
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        i += 1
        if c == "*":
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            cls, i = _char_class(pattern, i)
            out.append(cls)
        elif c == "\\":
            if i >= n:
                raise GlobError(f"trailing backslash in {pattern!r}")
            out.append(re.escape(pattern[i]))
            i += 1
        else:
            out.append(re.escape(c))
    return "(?s:" + "".join(out) + r")\Z"


def compile_glob(pattern: str) -> re.Pattern[str]:
    return re.compile(translate(pattern))
