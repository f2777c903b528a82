"""mitmproxy addon that refuses DNS queries for blocked names.

Either point ``block_name_config`` at a YAML configuration (see
config.py), or set ``blocked_names_file`` and optionally
``blocked_names_log`` / ``blocked_names_log_format`` directly.
"""

from __future__ import annotations

import logging
from typing import Optional

from mitmproxy import ctx, dns, exceptions
from mitmproxy.net.dns import response_codes

from .config import BlockNameConfig, load_config
from .enforcer import Action, BlockNamePlugin, QueryState
from .types import BlockNameError

logger = logging.getLogger(__name__)

OPTIONS = (
    "block_name_config",
    "blocked_names_file",
    "blocked_names_log",
    "blocked_names_log_format",
)


class BlockName:
    """Addon wrapping a BlockNamePlugin."""

    def __init__(self) -> None:
        self.plugin: BlockNamePlugin | None = None

    def load(self, loader) -> None:
        loader.add_option(
            name="block_name_config",
            typespec=Optional[str],
            default=None,
            help="YAML file with the blocked_names and schedules sections.",
        )
        loader.add_option(
            name="blocked_names_file",
            typespec=Optional[str],
            default=None,
            help="Rule file listing the names to block.",
        )
        loader.add_option(
            name="blocked_names_log",
            typespec=Optional[str],
            default=None,
            help="Append a record of every blocked query to this file.",
        )
        loader.add_option(
            name="blocked_names_log_format",
            typespec=str,
            default="tsv",
            choices=["tsv", "ltsv"],
            help="Format of the blocked query log.",
        )

    def _build_config(self) -> BlockNameConfig | None:
        opts = ctx.options
        if opts.block_name_config:
            return load_config(opts.block_name_config)
        if opts.blocked_names_file:
            return BlockNameConfig(
                blocked_names_file=opts.blocked_names_file,
                log_file=opts.blocked_names_log,
                log_format=opts.blocked_names_log_format,
            )
        return None

    def configure(self, updated: set[str]) -> None:
        if not updated.intersection(OPTIONS):
            return
        try:
            config = self._build_config()
            if config is None:
                self.done()
                return
            plugin = BlockNamePlugin.from_config(config)
        except (OSError, BlockNameError) as e:
            raise exceptions.OptionsError(f"block_name: {e}") from e
        self.done()
        self.plugin = plugin
        logger.info(
            "block_name: %d rules loaded from %s",
            plugin.rules.rule_count,
            config.blocked_names_file,
        )

    def dns_request(self, flow: dns.DNSFlow) -> None:
        if self.plugin is None or flow.response is not None:
            return
        state = QueryState(
            client_proto=flow.client_conn.transport_protocol,
            client_addr=flow.client_conn.peername,
        )
        decision = self.plugin.eval(state, flow.request.questions)
        if state.action is Action.REJECT:
            logger.info("DNS_BLOCKED: %s (%s)", decision.qname, decision.reason)
            flow.response = flow.request.fail(response_codes.REFUSED)

    def done(self) -> None:
        if self.plugin is not None:
            self.plugin.drop()
            self.plugin = None
