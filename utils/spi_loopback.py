#!/usr/bin/env python3
"""
SPI loopback test.
- Short MOSI to MISO on the bus under test.
- Make sure NO slave is selected during transfers (use a chip select that is
  not wired, or --chip-select disabled). Otherwise two outputs fight.

Sends a few patterns in modes 0 and 3 and checks that RX == TX.
"""
import argparse
import logging
import sys

from hardware.spi_bus import BusConfiguration, ChipSelect, SpiMode
from hardware.spi_driver import get_backend, open_bus
from spicat.errors import SpicatError
from spicat.runner import TransactionRunner
from spicat.transfer import build_plan
from utils.logger import setup_logging

LOG = logging.getLogger("main")

PATTERNS = [
    bytes([0x00]),
    bytes([0xFF]),
    bytes([0xAA, 0x55, 0xF0, 0x0F]),
    bytes(range(16)),
]


def loopback_once(bus, tx: bytes, speed_hz: int, pre_delay_us=None):
    plan = build_plan(tx, speed_hz, pre_delay_us)
    (rx,) = TransactionRunner(bus).run(plan, 1)
    return rx == tx, rx


def try_mode(bus, mode: SpiMode, speed_hz: int, chip_select: ChipSelect, out=None) -> bool:
    if out is None:
        out = sys.stdout
    bus.configure(BusConfiguration(speed_hz=speed_hz, mode=mode, chip_select=chip_select))
    all_ok = True
    for tx in PATTERNS:
        ok, rx = loopback_once(bus, tx, speed_hz)
        tag = f"mode {mode.value}, {len(tx)}B"
        if ok:
            print(f"{tag}: OK  TX==RX {list(tx)}", file=out)
        else:
            all_ok = False
            print(f"{tag}: FAIL  TX={list(tx)} RX={list(rx)}", file=out)
    return all_ok


def main(argv=None, out=None) -> int:
    p = argparse.ArgumentParser(description="SPI loopback self-test (MOSI wired to MISO).")
    p.add_argument("spidev", metavar="SPIDEV")
    p.add_argument("--speed", type=int, default=100_000, metavar="HZ")
    p.add_argument("--chip-select", choices=[cs.value for cs in ChipSelect], default="disabled")
    p.add_argument("--modes", default="0,3", help="Comma separated SPI modes to try (default: 0,3).")
    args = p.parse_args(argv)

    setup_logging()
    try:
        modes = [SpiMode.parse(m) for m in args.modes.split(",")]
        backend = get_backend()
    except ValueError as e:
        p.error(str(e))

    overall = True
    try:
        bus = open_bus(args.spidev, {"backend": backend})
        try:
            for mode in modes:
                overall = try_mode(bus, mode, args.speed, ChipSelect.parse(args.chip_select), out) and overall
        finally:
            bus.close()
    except SpicatError as e:
        LOG.debug("loopback test aborted", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0 if overall else 1


if __name__ == "__main__":
    sys.exit(main())
