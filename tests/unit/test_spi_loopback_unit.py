# tests/unit/test_spi_loopback_unit.py
import io
import pytest

from hardware.mock_spi import LoopbackSPIBus
from hardware.spi_bus import ChipSelect, SpiMode
from utils import spi_loopback


@pytest.mark.unit
def test_loopback_bus_passes_every_pattern():
    bus = LoopbackSPIBus()
    out = io.StringIO()
    assert spi_loopback.try_mode(bus, SpiMode.M3, 100_000, ChipSelect.DISABLED, out) is True
    lines = out.getvalue().splitlines()
    assert len(lines) == len(spi_loopback.PATTERNS)
    assert all(": OK" in line for line in lines)
    assert bus.config.mode is SpiMode.M3


@pytest.mark.unit
def test_stuck_miso_fails(make_bus, fake_ioctl):
    fake_ioctl.response = lambda tx, call: b"\xFF" * len(tx)
    bus, _ = make_bus(configure=False)
    out = io.StringIO()
    assert spi_loopback.try_mode(bus, SpiMode.M0, 100_000, ChipSelect.DISABLED, out) is False
    assert "FAIL" in out.getvalue()


@pytest.mark.unit
def test_main_with_mock_backend(monkeypatch):
    monkeypatch.setenv("SPICAT_HW", "mock")
    out = io.StringIO()
    assert spi_loopback.main(["loopback", "--modes", "0,1,2,3"], out=out) == 0
    assert out.getvalue().count("OK") == 4 * len(spi_loopback.PATTERNS)


@pytest.mark.unit
def test_main_reports_open_failure(install_fake_spidev_module, monkeypatch, capsys):
    import errno
    import sys
    from tests.mocks.mock_spidev import FakeSpiDev

    monkeypatch.setattr(sys.modules["spidev"], "SpiDev", lambda: FakeSpiDev(open_errno=errno.EBUSY))
    assert spi_loopback.main(["/dev/spidev0.0"], out=io.StringIO()) == 1
    assert "busy" in capsys.readouterr().err


@pytest.mark.unit
def test_main_unknown_backend_is_usage_error(monkeypatch, capsys):
    monkeypatch.setenv("SPICAT_HW", "auto")
    with pytest.raises(SystemExit) as ei:
        spi_loopback.main(["/dev/spidev0.0"], out=io.StringIO())
    assert ei.value.code == 2
    assert "auto" in capsys.readouterr().err
