"""Match query names against compiled block rules."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .globs import compile_glob
from .parser import BlockRules
from .radix import Tree
from .schedules import WeeklyRanges
from .types import BlockType


@dataclass(frozen=True)
class Match:
    """The rule class and reason for a blocked name."""

    kind: BlockType
    reason: str
    schedule: WeeklyRanges | None = None


def normalize_qname(name: str) -> str | None:
    """Strip the root dot and lowercase.

    Returns None for names too short to be matched.
    """
    if name.endswith("."):
        name = name[:-1]
    name = name.lower()
    if len(name) < 2:
        return None
    return name


def _on_boundary(match: str, name: str) -> bool:
    return len(match) == len(name) or name[len(match)] == "."


def _suffix_lookup(suffixes: Tree, rev_qname: str) -> tuple[str, Any] | None:
    """Longest reversed suffix of ``rev_qname`` ending on a label boundary.

    If the longest stored key stops mid-label, retry once on the parent
    domain (the reversed name cut at its last dot).
    """
    match, value, found = suffixes.longest_prefix(rev_qname)
    if not found:
        return None
    if _on_boundary(match, rev_qname):
        return match, value
    if len(match) < len(rev_qname):
        i = rev_qname.rfind(".")
        if i > 0:
            parent = rev_qname[:i]
            match, value, found = suffixes.longest_prefix(parent)
            if found and _on_boundary(match, parent):
                return match, value
    return None


class BlockNameMatcher:
    """Evaluate a name against suffix, prefix, substring and pattern rules.

    Rule classes are tried in that order and the first hit wins. Within
    the substring and pattern classes, rules are tried in file order.

    Example:
        matcher = BlockNameMatcher(compile_rules("ads.example.com"))
        matcher.match("x.ads.example.com").reason  # "*.ads.example.com"
        matcher.match("fooads.example.com")        # None
    """

    def __init__(self, rules: BlockRules, enforce_schedules: bool = False):
        self.rules = rules
        self.enforce_schedules = enforce_schedules
        self._patterns = [(rule, compile_glob(rule.text)) for rule in rules.patterns]

    def _active(self, schedule: WeeklyRanges | None, now: datetime | None) -> bool:
        if not self.enforce_schedules or schedule is None:
            return True
        return schedule.match(now)

    def match(self, name: str, now: datetime | None = None) -> Match | None:
        """Return the first rule matching ``name``, or None."""
        qname = normalize_qname(name)
        if qname is None:
            return None
        rules = self.rules

        hit = _suffix_lookup(rules.suffixes, qname[::-1])
        if hit is not None and self._active(hit[1], now):
            return Match(BlockType.SUFFIX, "*." + hit[0][::-1], hit[1])

        prefix, schedule, found = rules.prefixes.longest_prefix(qname)
        if found and self._active(schedule, now):
            return Match(BlockType.PREFIX, prefix + "*", schedule)

        for rule in rules.substrings:
            if rule.text in qname and self._active(rule.schedule, now):
                return Match(BlockType.SUBSTRING, rule.reason, rule.schedule)

        for rule, regex in self._patterns:
            if regex.match(qname) and self._active(rule.schedule, now):
                return Match(BlockType.PATTERN, rule.reason, rule.schedule)

        return None

    def match_questions(
        self, questions: Sequence[Any], now: datetime | None = None
    ) -> tuple[str | None, Match | None]:
        """Match the single question of a DNS message.

        Messages with zero or several questions are never matched.

        Returns:
            (qname, match) where qname is the normalized name, if any.
        """
        if len(questions) != 1:
            return None, None
        qname = normalize_qname(questions[0].name)
        if qname is None:
            return None, None
        return qname, self.match(qname, now)
