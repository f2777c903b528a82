#!/usr/bin/env python3
"""
mitmproxy DNS name blocker.

Refuses DNS queries whose name matches the block rules:
- suffix rules block a name and all of its subdomains
- prefix, substring and glob rules match the name itself
- blocked queries can be appended to a tsv/ltsv log

Usage:
    mitmdump --mode dns -s mitmproxy_block_name.py \\
        --set block_name_config=block-name.yaml
"""

import logging
import sys

from dnsfilter.blockname.addon import BlockName

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    stream=sys.stdout,
)

addons = [BlockName()]


if __name__ == "__main__":
    # When run directly, start mitmproxy as a DNS server with this addon
    import subprocess
    import os

    script_path = os.path.abspath(__file__)
    cmd = [
        "mitmdump",
        "--mode", "dns",
        "-s", script_path,
        *sys.argv[1:],
    ]
    subprocess.run(cmd)
