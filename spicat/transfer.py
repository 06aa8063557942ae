# spicat/transfer.py
"""
Transfer plans.

A plan is one logical SPI transaction made of one or two segments. With a
pre-delay, the first segment moves no data: it only asserts chip select and
waits, and because it does not release chip select the real payload follows
within the same selection.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

U16_MAX = 0xFFFF


@dataclass(frozen=True)
class Segment:
    tx: bytes
    speed_hz: int
    select_change: bool = True  # release chip select after this segment
    delay_after_us: int = 0

    @property
    def rx_len(self) -> int:
        return len(self.tx)


@dataclass(frozen=True)
class TransferPlan:
    segments: Tuple[Segment, ...]

    def __post_init__(self):
        if not 1 <= len(self.segments) <= 2:
            raise ValueError(f"a transfer plan has 1 or 2 segments, got {len(self.segments)}")

    @property
    def rx_len(self) -> int:
        return sum(seg.rx_len for seg in self.segments)

    @property
    def payload(self) -> bytes:
        return b"".join(seg.tx for seg in self.segments)


def build_plan(payload: bytes, speed_hz: int, pre_delay_us: Optional[int] = None) -> TransferPlan:
    """Build the plan for sending `payload`, optionally after a chip-select pre-delay."""
    payload = bytes(payload)

    if pre_delay_us is None:
        return TransferPlan((Segment(tx=payload, speed_hz=speed_hz),))

    if not 0 <= pre_delay_us <= U16_MAX:
        raise ValueError(f"pre-delay must be 0..{U16_MAX} microseconds, got {pre_delay_us}")

    return TransferPlan((
        Segment(tx=b"", speed_hz=speed_hz, select_change=False, delay_after_us=pre_delay_us),
        Segment(tx=payload, speed_hz=speed_hz),
    ))
