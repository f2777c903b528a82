"""Audit log for blocked queries.

Each blocked query produces one line in either format:

    tsv:  [2024-05-01 21:14:03]<TAB>10.0.0.5<TAB>"ads.example.com"<TAB>"*.example.com"
    ltsv: time:1714590843<TAB>host:10.0.0.5<TAB>qname:"ads.example.com"<TAB>message:"*.example.com"
"""

from __future__ import annotations

import ipaddress
import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import TextIO

from .types import BlockNameError, LogFormatError

logger = logging.getLogger(__name__)

LOG_FORMATS = ("tsv", "ltsv")

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def _escape_code(code: int) -> str:
    if code <= 0xFF:
        return f"\\x{code:02x}"
    if code <= 0xFFFF:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


def quote(value: str) -> str:
    """Double-quote a string, escaping quotes, backslashes and non-printable characters."""
    out = ['"']
    for c in value:
        esc = _ESCAPES.get(c)
        if esc is not None:
            out.append(esc)
        elif not c.isprintable():
            out.append(_escape_code(ord(c)))
        else:
            out.append(c)
    out.append('"')
    return "".join(out)


def check_format(fmt: str) -> str:
    if fmt not in LOG_FORMATS:
        raise LogFormatError(fmt)
    return fmt


def format_record(
    fmt: str,
    client_ip: str,
    qname: str,
    reason: str,
    now: float | None = None,
) -> str:
    """Format one audit line, including the trailing newline."""
    if now is None:
        now = time.time()
    if fmt == "tsv":
        ts = datetime.fromtimestamp(now).strftime("[%Y-%m-%d %H:%M:%S]")
        return f"{ts}\t{client_ip}\t{quote(qname)}\t{quote(reason)}\n"
    if fmt == "ltsv":
        return (
            f"time:{int(now)}\thost:{client_ip}\t"
            f"qname:{quote(qname)}\tmessage:{quote(reason)}\n"
        )
    raise LogFormatError(fmt)


def client_ip(proto: str, addr: tuple | None) -> str:
    """Render the IP of a client address tuple ``(host, port, ...)``.

    ``proto`` is the client transport, ``udp`` or ``tcp``.
    """
    if proto not in ("udp", "tcp"):
        raise ValueError(f"Unexpected client protocol: {proto}")
    if not addr:
        return "-"
    host = addr[0]
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        return str(host)


class BlockLog:
    """Thread-safe append-only sink for blocked query records.

    The file is opened (and created if needed) on construction, so an
    unwritable path or an unknown format fails at startup rather than on
    the first blocked query.

    Example:
        log = BlockLog("blocked-names.log", "ltsv")
        log.write("10.0.0.5", "ads.example.com", "*.example.com")
        log.close()
    """

    def __init__(self, path: str | Path, fmt: str = "tsv"):
        self.format = check_format(fmt)
        self.path = Path(path)
        self._lock = threading.Lock()
        self._fd: TextIO | None = open(self.path, "a", encoding="utf-8")

    @property
    def closed(self) -> bool:
        return self._fd is None

    def write(
        self,
        client_ip: str,
        qname: str,
        reason: str,
        now: float | None = None,
    ) -> None:
        """Append one record.

        Raises:
            BlockNameError: if the log has been closed.
        """
        line = format_record(self.format, client_ip, qname, reason, now)
        with self._lock:
            if self._fd is None:
                raise BlockNameError("Log file not initialized")
            self._fd.write(line)
            self._fd.flush()

    def close(self) -> None:
        with self._lock:
            if self._fd is not None:
                self._fd.close()
                self._fd = None

    def __enter__(self) -> BlockLog:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
