# tests/unit/test_streams_unit.py
import io
import pytest

from spicat.errors import InputReadError, OpenError
from spicat.streams import is_interactive, open_sink, open_source, read_payload


class _BrokenSource:
    def read(self):
        raise OSError(5, "Input/output error")


@pytest.mark.unit
def test_read_payload_reads_everything():
    assert read_payload(io.BytesIO(b"\x00" * 5000)) == b"\x00" * 5000


@pytest.mark.unit
def test_read_payload_failure():
    with pytest.raises(InputReadError) as ei:
        read_payload(_BrokenSource(), "in.bin")
    assert ei.value.path == "in.bin"
    assert ei.value.operation == "read"


@pytest.mark.unit
def test_open_source_missing_file(tmp_path):
    path = str(tmp_path / "missing")
    with pytest.raises(OpenError) as ei:
        open_source(path)
    assert ei.value.operation == "open"
    assert ei.value.reason == "not-found"
    assert ei.value.path == path
    assert f"Failed to open input file {path}" in str(ei.value)


@pytest.mark.unit
def test_open_sink_in_missing_directory(tmp_path):
    path = str(tmp_path / "no" / "such" / "dir" / "out")
    with pytest.raises(OpenError) as ei:
        open_sink(path)
    assert ei.value.operation == "open"
    assert ei.value.reason == "not-found"
    assert f"Failed to create output file {path}" in str(ei.value)


@pytest.mark.unit
def test_is_interactive():
    class Tty:
        def isatty(self):
            return True

    assert is_interactive(Tty()) is True
    assert is_interactive(io.BytesIO()) is False
    assert is_interactive(object()) is False
