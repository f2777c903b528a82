"""Block decisions for DNS queries.

The BlockNamePlugin owns the published rules and the audit log. It is
called once per DNS message with the message's questions and a
QueryState supplied by the surrounding proxy; on a match it flips the
state's action to REJECT and records the block.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from .audit import BlockLog, client_ip
from .matcher import BlockNameMatcher, Match
from .parser import BlockRules, load_rules

if TYPE_CHECKING:
    from .config import BlockNameConfig

logger = logging.getLogger(__name__)


class Verdict(Enum):
    ALLOW = "allow"
    BLOCK = "block"


class Action(Enum):
    """What the proxy should do with the query."""

    FORWARD = "forward"
    REJECT = "reject"


@dataclass
class QueryState:
    """Per-query state shared with the surrounding proxy."""

    client_proto: str = "udp"
    client_addr: tuple | None = None
    action: Action = Action.FORWARD


@dataclass
class Decision:
    """Result of evaluating one DNS message."""

    verdict: Verdict
    reason: str
    qname: str | None = None
    match: Match | None = None

    @property
    def allowed(self) -> bool:
        return self.verdict == Verdict.ALLOW

    @property
    def blocked(self) -> bool:
        return self.verdict == Verdict.BLOCK


class BlockNamePlugin:
    """Block DNS queries whose name matches a rule.

    Example:
        plugin = BlockNamePlugin(compile_rules("*.doubleclick.net"))
        state = QueryState(client_proto="udp", client_addr=("10.0.0.5", 5353))
        decision = plugin.eval(state, message.questions)
        if state.action is Action.REJECT:
            ...
    """

    name = "block_name"
    description = "Block DNS queries matching name patterns"

    def __init__(
        self,
        rules: BlockRules | None = None,
        log: BlockLog | None = None,
        enforce_schedules: bool = False,
    ):
        self._matcher = BlockNameMatcher(rules or BlockRules(), enforce_schedules)
        self.log = log
        self.config: BlockNameConfig | None = None

    @classmethod
    def from_config(cls, config: BlockNameConfig) -> BlockNamePlugin:
        plugin = cls()
        plugin.init(config)
        return plugin

    @property
    def rules(self) -> BlockRules:
        return self._matcher.rules

    def init(self, config: BlockNameConfig) -> None:
        """Load rules and open the audit log.

        Raises:
            OSError: if the rule file or the log file cannot be opened.
            LogFormatError: if the log format is unknown.
        """
        rules = load_rules(config.blocked_names_file, config.schedules)
        log = None
        if config.log_file:
            log = BlockLog(config.log_file, config.log_format)
        self.drop()
        self.config = config
        self.log = log
        self._matcher = BlockNameMatcher(rules, config.enforce_schedules)

    def reload(self) -> None:
        """Recompile the rule file and publish the new rules."""
        if self.config is None:
            return
        rules = load_rules(self.config.blocked_names_file, self.config.schedules)
        # Readers holding the old matcher keep a consistent view
        self._matcher = BlockNameMatcher(rules, self.config.enforce_schedules)

    def drop(self) -> None:
        if self.log is not None:
            self.log.close()
            self.log = None

    def eval(
        self,
        state: QueryState,
        questions: Sequence[Any],
        now: datetime | None = None,
    ) -> Decision:
        """Evaluate a DNS message's questions and update ``state``."""
        qname, match = self._matcher.match_questions(questions, now)
        if match is None:
            return Decision(Verdict.ALLOW, "no matching rule", qname)

        state.action = Action.REJECT
        logger.debug("Blocked %s (%s)", qname, match.reason)
        log = self.log
        if log is not None:
            ip = client_ip(state.client_proto, state.client_addr)
            ts = now.timestamp() if now is not None else None
            log.write(ip, qname, match.reason, ts)
        return Decision(Verdict.BLOCK, match.reason, qname, match)
