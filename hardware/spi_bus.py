# hardware/spi_bus.py
"""
SPI bus handle over a Linux spidev node.

spidev (py-spidev) opens the device and applies the bus settings. The
transfer itself goes through SPI_IOC_MESSAGE(n) directly, because a plan
may hold several segments that must run as one kernel message so the chip
select stays asserted between them.
"""
from __future__ import annotations

import ctypes
import fcntl
import logging
import platform
import struct
from dataclasses import dataclass
from enum import Enum

from spicat.errors import ConfigurationError, OpenError, TransferError, open_reason

spi_log = logging.getLogger("spi")

# struct spi_ioc_transfer (linux/spi/spidev.h), 32 bytes:
# tx_buf, rx_buf, len, speed_hz, delay_usecs, bits_per_word, cs_change,
# tx_nbits, rx_nbits, word_delay_usecs, pad
_XFER_FMT = "=QQIIHBBBBBB"
_XFER_SIZE = struct.calcsize(_XFER_FMT)

_SPI_IOC_MAGIC = ord("k")

# Architectures that do not use the asm-generic ioctl layout:
# _IOC_WRITE is 4 and the size field is 13 bits wide.
_IOC_ALT_MACHINES = ("mips", "ppc", "powerpc", "sparc", "alpha")


def ioc_layout(machine: str | None = None) -> tuple[int, int]:
    """(_IOC_WRITE, _IOC_SIZEBITS) for `machine` (default: this host)."""
    if machine is None:
        machine = platform.machine()
    if machine.lower().startswith(_IOC_ALT_MACHINES):
        return 4, 13
    return 1, 14


def spi_ioc_message(n: int, machine: str | None = None) -> int:
    """Request number for SPI_IOC_MESSAGE(n)."""
    ioc_write, size_bits = ioc_layout(machine)
    size = _XFER_SIZE * n
    if size >= (1 << size_bits):
        size = 0
    return (ioc_write << (16 + size_bits)) | (size << 16) | (_SPI_IOC_MAGIC << 8) | 0


class SpiMode(Enum):
    M0 = 0
    M1 = 1
    M2 = 2
    M3 = 3

    @classmethod
    def parse(cls, value) -> "SpiMode":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise ValueError(f"invalid SPI mode {value!r} (expected 0, 1, 2 or 3)") from None


class ChipSelect(Enum):
    ACTIVE_LOW = "active-low"
    ACTIVE_HIGH = "active-high"
    DISABLED = "disabled"

    @classmethod
    def parse(cls, value) -> "ChipSelect":
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"invalid chip select {value!r} (expected active-low, active-high or disabled)"
            ) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BusConfiguration:
    speed_hz: int = 1_000_000
    mode: SpiMode = SpiMode.M0
    chip_select: ChipSelect = ChipSelect.ACTIVE_LOW
    bits_per_word: int = 8


def kernel_cs_change(select_change: bool, last: bool) -> int:
    """
    Translate 'release chip select after this segment' into spidev's cs_change.

    The kernel deselects after the last transfer by default, so on the last
    segment the flag means "keep selected" instead.
    """
    if last:
        return 0 if select_change else 1
    return 1 if select_change else 0


class SpiBus:
    """Exclusively owned, configurable connection to one spidev device."""

    def __init__(self, path: str, device=None) -> None:
        self.path = str(path)
        self.config: BusConfiguration | None = None
        if device is None:
            import spidev
            device = spidev.SpiDev()
        self._dev = device
        try:
            self._dev.open_path(self.path)
        except OSError as e:
            raise OpenError(self.path, open_reason(e), e) from e
        spi_log.info("opened %s", self.path)

    # ---- configuration ----
    def configure(self, cfg: BusConfiguration) -> None:
        """
        Apply every setting of `cfg` as a separate driver call.

        Order: bits per word, max speed, SPI mode, chip select. A refused
        setting raises ConfigurationError; settings applied before it stay
        applied.
        """
        self.config = None
        applied: list[str] = []
        steps = (
            ("bits", cfg.bits_per_word, self._set_bits),
            ("speed", cfg.speed_hz, self._set_speed),
            ("mode", cfg.mode.value, self._set_mode),
            ("chip-select", cfg.chip_select, self._set_chip_select),
        )
        for field, value, setter in steps:
            try:
                setter(value)
            except (OSError, TypeError, ValueError, OverflowError) as e:
                spi_log.error("configure %s=%s failed: %s (applied: %s)", field, value, e, applied)
                raise ConfigurationError(field, value, e, applied) from e
            applied.append(field)
            spi_log.debug("configured %s=%s", field, value)
        self.config = cfg

    def _set_bits(self, bits: int) -> None:
        self._dev.bits_per_word = bits

    def _set_speed(self, hz: int) -> None:
        self._dev.max_speed_hz = hz

    def _set_mode(self, mode: int) -> None:
        self._dev.mode = mode

    def _set_chip_select(self, cs: ChipSelect) -> None:
        # cshigh/no_cs are read-modify-write on the mode byte, CPOL/CPHA survive
        self._dev.no_cs = cs is ChipSelect.DISABLED
        self._dev.cshigh = cs is ChipSelect.ACTIVE_HIGH

    # ---- transfer ----
    def transfer(self, plan, rx: bytearray) -> None:
        """
        Run all segments of `plan` as one SPI message, capturing into `rx`.

        `rx` must be exactly plan.rx_len bytes; segment captures are laid out
        back to back in segment order.
        """
        if self.config is None:
            raise TransferError(RuntimeError(f"{self.path} is not configured"))
        if len(rx) != plan.rx_len:
            raise TransferError(
                ValueError(f"receive buffer is {len(rx)} bytes, plan needs {plan.rx_len}")
            )

        keep = []  # ctypes buffers must outlive the ioctl
        packed = bytearray()
        offset = 0
        last_i = len(plan.segments) - 1
        for i, seg in enumerate(plan.segments):
            n = len(seg.tx)
            tx_ptr = rx_ptr = 0
            if n:
                tx_buf = ctypes.create_string_buffer(bytes(seg.tx), n)
                rx_buf = (ctypes.c_char * n).from_buffer(rx, offset)
                keep.extend((tx_buf, rx_buf))
                tx_ptr = ctypes.addressof(tx_buf)
                rx_ptr = ctypes.addressof(rx_buf)
            packed += struct.pack(
                _XFER_FMT,
                tx_ptr,
                rx_ptr,
                n,
                seg.speed_hz,
                seg.delay_after_us,
                0,  # bits_per_word: use the device setting
                kernel_cs_change(seg.select_change, i == last_i),
                0, 0, 0, 0,
            )
            offset += n

        try:
            fcntl.ioctl(self._dev.fileno(), spi_ioc_message(len(plan.segments)), packed)
        except OSError as e:
            spi_log.error("SPI_IOC_MESSAGE(%d) on %s failed: %s", len(plan.segments), self.path, e)
            raise TransferError(e) from e

    # ---- lifecycle ----
    def close(self) -> None:
        try:
            self._dev.close()
        finally:
            self.config = None
            spi_log.debug("closed %s", self.path)

    def __enter__(self) -> "SpiBus":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
