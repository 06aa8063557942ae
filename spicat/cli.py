# spicat/cli.py
"""
Command line front end.

    $ echo -n 'Hello there!' | spicat /dev/spidev1.0 --speed 10000000
    48 65 6C 6C 6F 20 74 68 65 72 65 21

Reads the whole input, sends it over SPI and prints what came back. Output
goes out as hex on a terminal and raw otherwise unless --format says so.
--repeat stress-tests a bus by running the same transaction COUNT times;
--pre-delay holds chip select asserted for a number of microseconds before
the data starts. The kernel implements that wait, so it can run a few
microseconds long.
"""
from __future__ import annotations

import argparse
import logging
import sys

from hardware.spi_bus import ChipSelect
from hardware.spi_driver import open_bus
from spicat.config import ConfigFileError, load_settings, Settings
from spicat.errors import SpicatError
from spicat.output import OutputFormat, OutputFormatter, resolve_format
from spicat.runner import TransactionRunner
from spicat.streams import is_interactive, open_sink, open_source, read_payload
from spicat.transfer import build_plan
from utils.logger import set_loop_index, setup_logging

main_log = logging.getLogger("main")


def _format_arg(value: str) -> OutputFormat:
    try:
        return OutputFormat.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="spicat",
        description="Perform full-duplex SPI transactions.",
    )
    p.add_argument("spidev", metavar="SPIDEV", help="The spidev to open.")
    p.add_argument("-i", "--in", dest="input", metavar="PATH",
                   help="Read input from a file, or - for standard input (default: -).")
    p.add_argument("-o", "--out", dest="output", metavar="PATH",
                   help="Write output to a file, or - for standard output (default: -). "
                        "Existing files are truncated.")
    p.add_argument("-s", "--speed", dest="speed_hz", type=int, metavar="HZ",
                   help="The speed in Hz for the SPI transaction (default: 1000000).")
    p.add_argument("-r", "--repeat", type=int, metavar="COUNT",
                   help="Repeat the transaction COUNT times (default: 1).")
    p.add_argument("-f", "--format", type=_format_arg, metavar="FORMAT",
                   help="Print the response as raw, hex[adecimal] or dec[imal]. "
                        "If not specified, hex is used when output is a TTY, raw otherwise.")
    p.add_argument("--mode", choices=["0", "1", "2", "3"], metavar="MODE",
                   help="SPI mode to use: 0, 1, 2 or 3 (default: 0).")
    p.add_argument("--chip-select", dest="chip_select", choices=[cs.value for cs in ChipSelect],
                   help="Chip select mode (default: active-low).")
    p.add_argument("--bits", dest="bits_per_word", type=int, metavar="N",
                   help="Bits per word for the SPI transaction (default: 8).")
    p.add_argument("--pre-delay", dest="pre_delay_us", type=int, metavar="MICROSECONDS",
                   help="Delay after enabling the chip select line before sending data.")
    p.add_argument("--config", metavar="PATH", help="TOML file with default settings.")
    p.add_argument("--log-dir", dest="log_dir", metavar="DIR", help="Also write per-subsystem log files here.")
    p.add_argument("-v", "--verbose", action="count", default=0,
                   help="Log more to stderr (-v info, -vv debug).")
    return p


def run(settings: Settings) -> int:
    """Open, configure, transfer and print. Errors propagate as SpicatError."""
    bus = open_bus(settings.spidev, settings.hardware)
    try:
        bus.configure(settings.bus_configuration())
        main_log.info(
            "configured %s: %d Hz, mode %d, chip select %s, %d bits",
            settings.spidev, settings.speed_hz, settings.mode.value,
            settings.chip_select, settings.bits_per_word,
        )

        with open_source(settings.input) as source, open_sink(settings.output) as sink:
            payload = read_payload(source, settings.input)
            plan = build_plan(payload, settings.speed_hz, settings.pre_delay_us)
            fmt = resolve_format(settings.format, is_interactive(sink))
            main_log.info("read %d byte(s), output format %s", len(payload), fmt.value)

            formatter = OutputFormatter(sink, fmt, settings.output)
            runner = TransactionRunner(bus)
            for capture in runner.run(plan, settings.repeat):
                formatter.emit(capture)
    finally:
        set_loop_index(-1)
        bus.close()
    return runner.completed


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {
        "input": args.input,
        "output": args.output,
        "speed_hz": args.speed_hz,
        "repeat": args.repeat,
        "format": args.format,
        "mode": args.mode,
        "chip_select": args.chip_select,
        "bits_per_word": args.bits_per_word,
        "pre_delay_us": args.pre_delay_us,
        "log_dir": args.log_dir,
    }
    try:
        settings = load_settings(args.spidev, overrides, args.config)
    except ConfigFileError as e:
        parser.error(str(e))

    if args.verbose >= 2:
        console_level = logging.DEBUG
    elif args.verbose == 1:
        console_level = logging.INFO
    else:
        console_level = getattr(logging, settings.log_level, None)
        if not isinstance(console_level, int):
            parser.error(f"unknown log level {settings.log_level!r}")
    setup_logging(log_dir=settings.log_dir, console_level=console_level)

    try:
        run(settings)
    except SpicatError as e:
        main_log.debug("%s failed", e.operation, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        main_log.info("Keyboard interrupt received. Shutting down.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
