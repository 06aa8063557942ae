import sys
import types
import pytest

from tests.mocks.mock_spidev import FakeIoctl, FakeSpiDev


@pytest.fixture
def fake_ioctl(monkeypatch):
    """Route SPI_IOC_MESSAGE through a FakeIoctl (loopback by default)."""
    import hardware.spi_bus as spi_bus

    fake = FakeIoctl()
    monkeypatch.setattr(spi_bus.fcntl, "ioctl", fake)
    return fake


@pytest.fixture
def fake_dev():
    return FakeSpiDev()


@pytest.fixture
def make_bus(fake_ioctl):
    """
    Build a SpiBus over a FakeSpiDev.
    Usage:
        bus, dev = make_bus(configure=True, reject={"max_speed_hz": OSError(22, "Invalid argument")})
    """
    from hardware.spi_bus import BusConfiguration, SpiBus

    def _builder(path="/dev/spidev0.0", configure=True, cfg=None, **dev_kwargs):
        dev = FakeSpiDev(**dev_kwargs)
        bus = SpiBus(path, device=dev)
        if configure:
            bus.configure(cfg or BusConfiguration())
        return bus, dev

    return _builder


@pytest.fixture
def install_fake_spidev_module(monkeypatch, fake_ioctl):
    """
    Provide a 'spidev' module in sys.modules whose SpiDev() is a FakeSpiDev,
    for code paths that construct the device themselves (open_bus, CLI).
    """
    created = []

    def SpiDev():
        dev = FakeSpiDev()
        created.append(dev)
        return dev

    mod = types.ModuleType("spidev")
    setattr(mod, "SpiDev", SpiDev)
    monkeypatch.setitem(sys.modules, "spidev", mod)
    monkeypatch.delenv("SPICAT_HW", raising=False)
    return types.SimpleNamespace(created=created, ioctl=fake_ioctl)
