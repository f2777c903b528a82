"""Core types for block rules and their errors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schedules import WeeklyRanges


class BlockType(Enum):
    """How a rule's text is matched against a query name."""

    PREFIX = "prefix"
    SUFFIX = "suffix"
    SUBSTRING = "substring"
    PATTERN = "pattern"


@dataclass(frozen=True)
class Rule:
    """A single classified block rule.

    Examples:
        ads.example.com      -> SUFFIX    "ads.example.com"
        *.example.com        -> SUFFIX    "example.com"
        example.*            -> PREFIX    "example."
        *bad*                -> SUBSTRING "bad"
        a?c.com              -> PATTERN   "a?c.com"
        ads.* @night         -> PREFIX    "ads." gated by schedule "night"
    """

    kind: BlockType
    text: str
    schedule_name: str | None = None
    schedule: WeeklyRanges | None = None
    line_no: int = 0

    @property
    def reason(self) -> str:
        """Human-readable form reported when this rule blocks a name."""
        if self.kind == BlockType.SUFFIX:
            return f"*.{self.text}"
        if self.kind == BlockType.PREFIX:
            return f"{self.text}*"
        if self.kind == BlockType.SUBSTRING:
            return f"*{self.text}*"
        return self.text


class BlockNameError(Exception):
    """Base class for block_name errors."""


class TimeFormatError(BlockNameError, ValueError):
    """A clock expression is not a valid HH:MM time."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Syntax error in a time expression: [{value}]")


class RuleSyntaxError(BlockNameError, ValueError):
    """A line of the rule file cannot be parsed."""

    def __init__(self, line_no: int, detail: str = ""):
        self.line_no = line_no
        self.detail = detail
        msg = f"Syntax error in block rules at line {line_no}"
        if detail:
            msg += f" -- {detail}"
        super().__init__(msg)


class LogFormatError(BlockNameError, ValueError):
    """The configured audit log format is not supported."""

    def __init__(self, fmt: str):
        self.format = fmt
        super().__init__(f"Unexpected log format: [{fmt}]")


class ConfigError(BlockNameError):
    """The configuration is incomplete or malformed."""
