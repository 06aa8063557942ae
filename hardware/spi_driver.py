# hardware/spi_driver.py
from __future__ import annotations

import logging
import os

spi_log = logging.getLogger("spi")

# --- public factory ----------------------------------------------------------
def get_backend(params: dict | None = None) -> str:
    """
    Resolve which SPI host to use: "spidev" (real device) or "mock" (loopback).

    The SPICAT_HW environment variable wins over params["backend"].
    """
    env = os.getenv("SPICAT_HW", "").strip().lower()
    if env:
        backend = env
    else:
        backend = str((params or {}).get("backend", "spidev")).lower()
    if backend not in ("spidev", "mock"):
        raise ValueError(f"unknown SPI backend {backend!r} (expected 'spidev' or 'mock')")
    return backend


def open_bus(path: str, params: dict | None = None):
    """
    Open the SPI device at `path` and return a bus handle that implements:
        - configure(cfg: BusConfiguration) -> None
        - transfer(plan: TransferPlan, rx: bytearray) -> None
        - close() -> None
    Real HW: hardware.spi_bus.SpiBus over spidev
    Mock   : hardware.mock_spi.LoopbackSPIBus (MOSI echoed to MISO)
    """
    backend = get_backend(params)

    if backend == "mock":
        from hardware.mock_spi import LoopbackSPIBus
        return LoopbackSPIBus(path)

    from hardware.spi_bus import SpiBus
    bus = SpiBus(path)
    spi_log.info("spi_driver: using spidev host for %s.", path)
    return bus
