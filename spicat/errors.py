# spicat/errors.py
"""
Error taxonomy. Each error names the operation that failed so the CLI can
print one diagnostic line without a traceback. Nothing here is retried.
"""
from __future__ import annotations

import errno


class SpicatError(RuntimeError):
    operation = "run"


def open_reason(exc: OSError) -> str:
    if exc.errno == errno.ENOENT:
        return "not-found"
    if exc.errno in (errno.EACCES, errno.EPERM):
        return "permission-denied"
    if exc.errno == errno.EBUSY:
        return "busy"
    return "os-error"


class OpenError(SpicatError):
    """A device or file could not be acquired. `what` reads like "open spidev"."""

    operation = "open"

    def __init__(self, path: str, reason: str, cause: BaseException | None = None, what: str = "open spidev"):
        self.path = path
        self.reason = reason
        self.cause = cause
        self.what = what
        super().__init__(f"Failed to {what} {path}: {reason} ({cause})")


class ConfigurationError(SpicatError):
    """A bus setting was refused by the driver. `applied` lists settings that went through."""

    operation = "configure"

    _LABELS = {
        "bits": "set {value} bits per word",
        "speed": "set max speed to {value} Hz",
        "mode": "set SPI mode to {value}",
        "chip-select": "set chip select mode to {value}",
    }

    def __init__(self, field: str, value, cause: BaseException | None = None, applied=()):
        self.field = field
        self.value = value
        self.cause = cause
        self.applied = tuple(applied)
        what = self._LABELS.get(field, field + "={value}").format(value=value)
        super().__init__(f"Failed to {what}: {cause}")


class InputReadError(SpicatError):
    operation = "read"

    def __init__(self, path: str, cause: BaseException | None = None):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to read input message from {path}: {cause}")


class TransferError(SpicatError):
    operation = "transfer"

    def __init__(self, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(f"SPI transaction failed: {cause}")


class OutputWriteError(SpicatError):
    operation = "write"

    def __init__(self, path: str, cause: BaseException | None = None):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write to output stream {path}: {cause}")
