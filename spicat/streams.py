# spicat/streams.py
"""
Byte source and sink selection. "-" means the standard stream; anything else
is a file path. Output files are created or truncated. Failing to open
either one is an OpenError, like failing to open the device.
"""
from __future__ import annotations

import contextlib
import sys

from spicat.errors import InputReadError, OpenError, open_reason

STDIO = "-"


def open_source(path: str):
    if path == STDIO:
        return contextlib.nullcontext(sys.stdin.buffer)
    try:
        return open(path, "rb")
    except OSError as e:
        raise OpenError(path, open_reason(e), e, what="open input file") from e


def open_sink(path: str):
    if path == STDIO:
        return contextlib.nullcontext(sys.stdout.buffer)
    try:
        return open(path, "wb")
    except OSError as e:
        raise OpenError(path, open_reason(e), e, what="create output file") from e


def read_payload(source, name: str = STDIO) -> bytes:
    """Read the whole source once."""
    try:
        return bytes(source.read())
    except OSError as e:
        raise InputReadError(name, e) from e


def is_interactive(sink) -> bool:
    try:
        return bool(sink.isatty())
    except (AttributeError, ValueError):
        return False
