"""Rule file parser.

Rule file format (one rule per line):

    # comment
    ads.example.com         suffix: the name and all its subdomains
    *.example.net           suffix, same as example.net
    example.*               prefix
    *tracker*               substring
    ad[0-9].example.org     glob pattern
    games.* @after-school   any rule can be gated by a named schedule

Lines with a syntax error are logged and skipped; the rest of the file is
still loaded.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .globs import GlobError, translate
from .radix import Tree
from .schedules import WeeklyRanges
from .types import BlockType, Rule, RuleSyntaxError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockRules:
    """Compiled, read-only block rules."""

    prefixes: Tree = field(default_factory=Tree)
    # Keys are the reversed suffix text
    suffixes: Tree = field(default_factory=Tree)
    substrings: tuple[Rule, ...] = ()
    patterns: tuple[Rule, ...] = ()
    errors: tuple[RuleSyntaxError, ...] = ()

    @property
    def rule_count(self) -> int:
        return (
            len(self.prefixes)
            + len(self.suffixes)
            + len(self.substrings)
            + len(self.patterns)
        )


def is_glob_candidate(text: str) -> bool:
    """Check if text needs glob matching rather than a simple rule.

    True when it contains ``?`` or ``[``, or a ``*`` that is neither the
    first nor the last character.
    """
    last = len(text) - 1
    for i, c in enumerate(text):
        if c in "?[":
            return True
        if c == "*" and i != 0 and i != last:
            return True
    return False


def is_valid_glob(pattern: str) -> bool:
    """Check that the pattern is a well-formed glob (see globs.py)."""
    try:
        translate(pattern)
    except GlobError:
        return False
    return True


def _classify(text: str, line_no: int) -> tuple[BlockType, str]:
    leading_star = text.startswith("*")
    trailing_star = text.endswith("*")

    if is_glob_candidate(text):
        if len(text) < 2 or not is_valid_glob(text):
            raise RuleSyntaxError(line_no, "invalid pattern")
        kind = BlockType.PATTERN
    elif leading_star and trailing_star:
        if len(text) < 3:
            raise RuleSyntaxError(line_no)
        kind = BlockType.SUBSTRING
        text = text[1:-1]
    elif trailing_star:
        if len(text) < 2:
            raise RuleSyntaxError(line_no)
        kind = BlockType.PREFIX
        text = text[:-1]
    else:
        kind = BlockType.SUFFIX
        if leading_star:
            text = text[1:]
        if text.startswith("."):
            text = text[1:]

    if not text:
        raise RuleSyntaxError(line_no, "empty rule")
    return kind, text.lower()


def parse_rule_line(
    line: str,
    line_no: int,
    schedules: Mapping[str, WeeklyRanges] | None = None,
) -> Rule | None:
    """Parse one line of a rule file.

    Returns:
        The parsed rule, or None for blank lines and comments.

    Raises:
        RuleSyntaxError: if the line is malformed.
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    schedule_name = None
    parts = line.split("@")
    if len(parts) == 2:
        line = parts[0].strip()
        schedule_name = parts[1].strip() or None
    elif len(parts) > 2:
        raise RuleSyntaxError(line_no, "Unexpected @ character")

    kind, text = _classify(line, line_no)

    schedule = None
    if schedule_name is not None:
        schedule = (schedules or {}).get(schedule_name)
        if schedule is None:
            logger.error(
                "Time range [%s] not found at line %d", schedule_name, line_no
            )

    return Rule(
        kind=kind,
        text=text,
        schedule_name=schedule_name,
        schedule=schedule,
        line_no=line_no,
    )


def compile_rules(
    text: str,
    schedules: Mapping[str, WeeklyRanges] | None = None,
) -> BlockRules:
    """Compile rule file contents into searchable structures."""
    prefixes = Tree()
    suffixes = Tree()
    substrings: list[Rule] = []
    patterns: list[Rule] = []
    errors: list[RuleSyntaxError] = []

    for line_no, line in enumerate(text.splitlines(), start=1):
        try:
            rule = parse_rule_line(line, line_no, schedules)
        except RuleSyntaxError as e:
            logger.error("%s", e)
            errors.append(e)
            continue
        if rule is None:
            continue

        if rule.kind == BlockType.SUBSTRING:
            substrings.append(rule)
        elif rule.kind == BlockType.PATTERN:
            patterns.append(rule)
        elif rule.kind == BlockType.PREFIX:
            prefixes, _, _ = prefixes.insert(rule.text, rule.schedule)
        elif rule.kind == BlockType.SUFFIX:
            suffixes, _, _ = suffixes.insert(rule.text[::-1], rule.schedule)
        else:
            raise AssertionError(f"Unexpected block type: {rule.kind}")

    return BlockRules(
        prefixes=prefixes,
        suffixes=suffixes,
        substrings=tuple(substrings),
        patterns=tuple(patterns),
        errors=tuple(errors),
    )


def load_rules(
    path: str | Path,
    schedules: Mapping[str, WeeklyRanges] | None = None,
) -> BlockRules:
    """Read and compile a rule file.

    Raises:
        OSError: if the file cannot be read.
    """
    path = Path(path)
    logger.info("Loading the set of blocking rules from [%s]", path)
    rules = compile_rules(path.read_text(encoding="utf-8"), schedules)
    logger.info(
        "Loaded %d blocking rules (%d skipped)", rules.rule_count, len(rules.errors)
    )
    return rules


def validate_rules(
    text: str,
    schedules: Mapping[str, WeeklyRanges] | None = None,
) -> list[str]:
    """Return a list of problems found in rule file contents.

    Covers syntax errors and references to unknown schedules.
    """
    problems: list[str] = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        try:
            rule = parse_rule_line(line, line_no, schedules)
        except RuleSyntaxError as e:
            problems.append(str(e))
            continue
        if rule is not None and rule.schedule_name and rule.schedule is None:
            problems.append(
                f"Time range [{rule.schedule_name}] not found at line {line_no}"
            )
    return problems
