# spicat/runner.py
from __future__ import annotations

import logging
from typing import Iterator

from spicat.errors import SpicatError, TransferError
from utils.logger import set_loop_index

xfer_log = logging.getLogger("transfer")

# A TransactionResult is the immutable capture of one iteration.
TransactionResult = bytes


class TransactionRunner:
    """Drives a TransferPlan against a configured bus, one blocking transfer at a time."""

    def __init__(self, bus) -> None:
        self.bus = bus
        self.completed = 0

    def run(self, plan, repeat_count: int) -> Iterator[TransactionResult]:
        """
        Yield exactly `repeat_count` captures, lazily.

        The receive buffer is shared across iterations and cleared before each
        transfer; callers get a snapshot. The first failure ends the run.
        """
        if repeat_count < 0:
            raise ValueError(f"repeat count must be >= 0, got {repeat_count}")

        rx = bytearray(plan.rx_len)
        xfer_log.info(
            "running %d transaction(s): %d segment(s), %d byte(s)",
            repeat_count, len(plan.segments), len(rx),
        )
        for i in range(repeat_count):
            set_loop_index(i)
            rx[:] = bytes(len(rx))
            try:
                self.bus.transfer(plan, rx)
            except SpicatError:
                raise
            except OSError as e:
                raise TransferError(e) from e
            self.completed += 1
            xfer_log.debug("transaction %d done", i)
            yield bytes(rx)
