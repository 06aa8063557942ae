# hardware/mock_spi.py

from __future__ import annotations

import logging

from hardware.spi_bus import BusConfiguration
from spicat.errors import TransferError

spi_log = logging.getLogger("spi")


class LoopbackSPIBus:
    """
    In-process stand-in for SpiBus with MOSI shorted to MISO.

    Every captured byte equals the byte sent in the same position. Executed
    plans are kept in `.history` so a dry run can be inspected afterwards.
    """

    def __init__(self, path: str = "loopback") -> None:
        self.path = str(path)
        self.config: BusConfiguration | None = None
        self.history = []
        self.closed = False
        spi_log.info("mock_spi: using loopback SPI bus for %s", self.path)

    def configure(self, cfg: BusConfiguration) -> None:
        self.config = cfg

    def transfer(self, plan, rx: bytearray) -> None:
        if self.config is None:
            raise TransferError(RuntimeError(f"{self.path} is not configured"))
        if self.closed:
            raise TransferError(RuntimeError(f"{self.path} is closed"))
        offset = 0
        for seg in plan.segments:
            n = len(seg.tx)
            rx[offset:offset + n] = seg.tx
            offset += n
        self.history.append(plan)

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "LoopbackSPIBus":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
