# spicat/config.py
"""
Settings loader.

Values come from three layers, highest first:

    1. command-line flags
    2. an optional TOML file (--config), sections [spi], [run],
       [hardware] and [logging]
    3. the built-in DEFAULTS below

TOML parsing is done via Python's built-in `tomllib` module. The result is a
flat Settings dataclass; nothing downstream sees the file layout.
"""
from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from typing import Optional

from hardware.spi_bus import BusConfiguration, ChipSelect, SpiMode
from hardware.spi_driver import get_backend
from spicat.output import OutputFormat

DEFAULTS = {
    "speed_hz": 1_000_000,
    "repeat": 1,
    "format": None,
    "mode": 0,
    "chip_select": "active-low",
    "bits_per_word": 8,
    "pre_delay_us": None,
    "input": "-",
    "output": "-",
    "backend": "spidev",
    "log_level": "WARNING",
    "log_dir": None,
}


class ConfigFileError(ValueError):
    pass


@dataclass
class Settings:
    spidev: str
    speed_hz: int = DEFAULTS["speed_hz"]
    repeat: int = DEFAULTS["repeat"]
    format: Optional[OutputFormat] = None
    mode: SpiMode = SpiMode.M0
    chip_select: ChipSelect = ChipSelect.ACTIVE_LOW
    bits_per_word: int = DEFAULTS["bits_per_word"]
    pre_delay_us: Optional[int] = None
    input: str = DEFAULTS["input"]
    output: str = DEFAULTS["output"]
    hardware: dict = field(default_factory=lambda: {"backend": DEFAULTS["backend"]})
    log_level: str = DEFAULTS["log_level"]
    log_dir: Optional[str] = None

    def bus_configuration(self) -> BusConfiguration:
        return BusConfiguration(
            speed_hz=self.speed_hz,
            mode=self.mode,
            chip_select=self.chip_select,
            bits_per_word=self.bits_per_word,
        )


# ------------------------------------------------------------
# Load TOML
# ------------------------------------------------------------
def _load_toml(path: str) -> dict:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except OSError as e:
        raise ConfigFileError(f"cannot read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigFileError(f"invalid config file {path}: {e}") from e


def flatten_config(cfg: dict) -> dict:
    """Map the sectioned TOML layout onto DEFAULTS keys. Unknown keys are ignored."""
    spi = cfg.get("spi", {})
    run = cfg.get("run", {})
    hw = cfg.get("hardware", {})
    log = cfg.get("logging", {})

    flat = {}
    for key in ("speed_hz", "mode", "chip_select", "bits_per_word", "pre_delay_us"):
        if key in spi:
            flat[key] = spi[key]
    for key in ("repeat", "format", "input", "output"):
        if key in run:
            flat[key] = run[key]
    if "backend" in hw:
        flat["backend"] = hw["backend"]
    if "level" in log:
        flat["log_level"] = log["level"]
    if "log_dir" in log:
        flat["log_dir"] = log["log_dir"]
    return flat


def load_settings(spidev: str, overrides: dict | None = None, config_path: str | None = None) -> Settings:
    """
    Merge defaults, the optional config file and `overrides` (CLI values;
    None means "not given") into a Settings instance.
    """
    merged = dict(DEFAULTS)
    if config_path:
        merged.update(flatten_config(_load_toml(config_path)))
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    try:
        fmt = merged["format"]
        if fmt is not None and not isinstance(fmt, OutputFormat):
            fmt = OutputFormat.parse(fmt)
        mode = merged["mode"]
        if not isinstance(mode, SpiMode):
            mode = SpiMode.parse(mode)
        cs = merged["chip_select"]
        if not isinstance(cs, ChipSelect):
            cs = ChipSelect.parse(cs)
        settings = Settings(
            spidev=spidev,
            speed_hz=int(merged["speed_hz"]),
            repeat=int(merged["repeat"]),
            format=fmt,
            mode=mode,
            chip_select=cs,
            bits_per_word=int(merged["bits_per_word"]),
            pre_delay_us=None if merged["pre_delay_us"] is None else int(merged["pre_delay_us"]),
            input=str(merged["input"]),
            output=str(merged["output"]),
            hardware={"backend": str(merged["backend"])},
            log_level=str(merged["log_level"]).upper(),
            log_dir=merged["log_dir"],
        )
    except (TypeError, ValueError) as e:
        raise ConfigFileError(str(e)) from e

    try:
        settings.hardware["backend"] = get_backend(settings.hardware)
    except ValueError as e:
        raise ConfigFileError(str(e)) from e
    if settings.repeat < 0:
        raise ConfigFileError(f"repeat must be >= 0, got {settings.repeat}")
    if settings.pre_delay_us is not None and not 0 <= settings.pre_delay_us <= 0xFFFF:
        raise ConfigFileError(f"pre-delay must be 0..65535 microseconds, got {settings.pre_delay_us}")
    return settings
