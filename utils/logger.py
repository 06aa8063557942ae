# utils/logger.py
import os, glob, logging
from contextvars import ContextVar

_LOOP_I = ContextVar("loop_i", default=-1)

LOGGER_NAMES = [
    "main",
    "spi",
    "transfer",
    "output",
]


def set_loop_index(i: int) -> None:
    _LOOP_I.set(int(i))


class LoopIndexFilter(logging.Filter):
    def filter(self, record):
        # ensure every record has .i (the repeat iteration, -1 outside the loop)
        record.i = _LOOP_I.get()
        return True


def setup_logging(
    log_dir: str | None = None,
    overwrite: bool = True,
    log_level: int = logging.DEBUG,
    console_level: int = logging.WARNING,
    cleanup_rotated: bool = True,
) -> None:
    """
    Configure the project loggers.

    Console output goes to stderr only; stdout may be carrying captured data.
    With `log_dir`, every logger also gets its own <name>.log file.
    """
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        if cleanup_rotated:
            for path in glob.glob(os.path.join(log_dir, "*.log.*")):
                try: os.remove(path)
                except OSError: pass

    fmt = logging.Formatter("%(i)06d | %(levelname)s | %(name)s | %(message)s")

    console = logging.StreamHandler()  # stderr
    console.setFormatter(fmt)
    console.setLevel(console_level)
    console.addFilter(LoopIndexFilter())

    for name in LOGGER_NAMES:
        log = logging.getLogger(name)
        log.setLevel(min(log_level, console_level))
        log.propagate = False
        for h in list(log.handlers):
            log.removeHandler(h)
            h.close()

        if log_dir:
            mode = "w" if overwrite else "a"
            fh = logging.FileHandler(os.path.join(log_dir, f"{name}.log"), mode=mode, encoding="utf-8")
            fh.setFormatter(fmt)
            fh.setLevel(log_level)
            fh.addFilter(LoopIndexFilter())
            log.addHandler(fh)

        log.addHandler(console)

    logging.getLogger("main").debug("Logging system initialized.")
