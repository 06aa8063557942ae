# tests/unit/test_logger_unit.py
import logging
import pytest

from utils.logger import LOGGER_NAMES, set_loop_index, setup_logging


@pytest.mark.unit
def test_log_files_carry_loop_index(tmp_path):
    log_dir = tmp_path / "logs"
    (log_dir).mkdir()
    (log_dir / "spi.log.1").write_text("stale", encoding="utf-8")

    setup_logging(log_dir=str(log_dir), console_level=logging.CRITICAL)
    try:
        set_loop_index(4)
        logging.getLogger("transfer").info("hello")
        set_loop_index(-1)
    finally:
        for name in LOGGER_NAMES:
            for h in list(logging.getLogger(name).handlers):
                h.close()
                logging.getLogger(name).removeHandler(h)

    assert not (log_dir / "spi.log.1").exists()
    text = (log_dir / "transfer.log").read_text(encoding="utf-8")
    assert "000004 | INFO | transfer | hello" in text
    for name in LOGGER_NAMES:
        assert (log_dir / f"{name}.log").exists()


@pytest.mark.unit
def test_console_only_without_log_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    setup_logging(console_level=logging.WARNING)
    for name in LOGGER_NAMES:
        log = logging.getLogger(name)
        assert log.propagate is False
        assert len(log.handlers) == 1
        assert not isinstance(log.handlers[0], logging.FileHandler)
    assert list(tmp_path.iterdir()) == []
