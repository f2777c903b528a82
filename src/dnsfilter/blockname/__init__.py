"""DNS name blocking rules and matching engine."""

from .types import (
    BlockNameError,
    BlockType,
    ConfigError,
    LogFormatError,
    Rule,
    RuleSyntaxError,
    TimeFormatError,
)
from .schedules import (
    TimeRange,
    WeeklyRanges,
    parse_clock,
    parse_time_ranges,
    parse_weekly_ranges,
)
from .radix import Tree
from .parser import (
    BlockRules,
    compile_rules,
    is_glob_candidate,
    load_rules,
    parse_rule_line,
    validate_rules,
)
from .matcher import BlockNameMatcher, Match, normalize_qname
from .audit import BlockLog, format_record, quote
from .enforcer import Action, BlockNamePlugin, Decision, QueryState, Verdict
from .config import BlockNameConfig, load_config, parse_schedules

__all__ = [
    # Types
    "BlockType",
    "Rule",
    "BlockNameError",
    "TimeFormatError",
    "RuleSyntaxError",
    "LogFormatError",
    "ConfigError",
    # Schedules
    "TimeRange",
    "WeeklyRanges",
    "parse_clock",
    "parse_time_ranges",
    "parse_weekly_ranges",
    # Index
    "Tree",
    # Parser
    "BlockRules",
    "compile_rules",
    "load_rules",
    "parse_rule_line",
    "is_glob_candidate",
    "validate_rules",
    # Matcher
    "BlockNameMatcher",
    "Match",
    "normalize_qname",
    # Audit log
    "BlockLog",
    "format_record",
    "quote",
    # Enforcer
    "BlockNamePlugin",
    "Decision",
    "Verdict",
    "Action",
    "QueryState",
    # Config
    "BlockNameConfig",
    "load_config",
    "parse_schedules",
]
