# spicat/output.py
"""
Rendering of captured bytes.

    raw  - the bytes as received, nothing added
    hex  - "41 42\n": two uppercase digits per byte, single spaces, one newline
    dec  - "65 66\n": unsigned decimal per byte, same separators

When no format is requested the sink decides: a terminal gets hex,
anything else gets raw. This is resolved once, before the first transfer.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from spicat.errors import OutputWriteError

out_log = logging.getLogger("output")


class OutputFormat(Enum):
    RAW = "raw"
    HEX = "hex"
    DEC = "dec"

    @classmethod
    def parse(cls, name: str) -> "OutputFormat":
        key = str(name).strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(
                f"invalid output format {name!r} (expected raw, hex[adecimal] or dec[imal])"
            ) from None


_ALIASES = {"hexadecimal": "hex", "decimal": "dec"}


def resolve_format(explicit: Optional[OutputFormat], interactive: bool) -> OutputFormat:
    if explicit is not None:
        return explicit
    return OutputFormat.HEX if interactive else OutputFormat.RAW


def render(capture: bytes, fmt: OutputFormat) -> bytes:
    if fmt is OutputFormat.RAW:
        return bytes(capture)
    if fmt is OutputFormat.HEX:
        text = " ".join("%02X" % b for b in capture)
    else:
        text = " ".join(str(b) for b in capture)
    return (text + "\n").encode("ascii")


class OutputFormatter:
    """Writes one rendered block per transaction to a binary sink, flushing each time."""

    def __init__(self, sink, fmt: OutputFormat, name: str = "-") -> None:
        self.sink = sink
        self.fmt = fmt
        self.name = name
        self.blocks = 0

    def emit(self, capture: bytes) -> None:
        data = render(capture, self.fmt)
        try:
            self.sink.write(data)
            self.sink.flush()
        except (OSError, ValueError) as e:
            # ValueError: write to a closed file
            raise OutputWriteError(self.name, e) from e
        self.blocks += 1
        out_log.debug("wrote %d byte(s) as %s", len(data), self.fmt.value)
