"""Tests for LineReader framing."""

import os
from pathlib import Path
from typing import Any, Tuple

import pytest

from oid_daemon.errors import FrontendClosedError
from oid_daemon.line_reader import LineReader


def test_complete_line(reader: LineReader, pipe: Tuple[int, int]) -> None:
    os.write(pipe[1], b"PING\n")
    assert reader.read_line(0.1) == "PING"


def test_timeout_returns_none(reader: LineReader) -> None:
    assert reader.read_line(0.01) is None


def test_fragments_are_buffered(reader: LineReader, pipe: Tuple[int, int]) -> None:
    os.write(pipe[1], b"getn")
    assert reader.read_line(0.1) is None
    assert reader.partial == "getn"
    os.write(pipe[1], b"ext")
    assert reader.read_line(0.1) is None
    os.write(pipe[1], b"\n")
    assert reader.read_line(0.1) == "getnext"
    assert reader.partial == ""


def test_several_lines_in_one_read(reader: LineReader, pipe: Tuple[int, int]) -> None:
    os.write(pipe[1], b"get\n.1.3.6\n")
    assert reader.read_line(0.1) == "get"
    # Second line comes from the buffer without another read
    assert reader.read_line(0) == ".1.3.6"


def test_crlf_is_stripped(reader: LineReader, pipe: Tuple[int, int]) -> None:
    os.write(pipe[1], b"PING\r\n")
    assert reader.read_line(0.1) == "PING"


def test_empty_line(reader: LineReader, pipe: Tuple[int, int]) -> None:
    os.write(pipe[1], b"\n")
    assert reader.read_line(0.1) == ""


def test_eof_raises(reader: LineReader, pipe: Tuple[int, int]) -> None:
    os.close(pipe[1])
    with pytest.raises(FrontendClosedError, match="end of input"):
        reader.read_line(0.1)


def test_read_error_raises(reader: LineReader, pipe: Tuple[int, int], mocker: Any) -> None:
    os.write(pipe[1], b"PING")
    mocker.patch("oid_daemon.line_reader.os.read", side_effect=OSError("EIO"))
    with pytest.raises(FrontendClosedError, match="read failed"):
        reader.read_line(0.1)


def test_dev_null_reports_end_of_input() -> None:
    fd = os.open(os.devnull, os.O_RDONLY)
    line_reader = LineReader(fd)
    try:
        with pytest.raises(FrontendClosedError, match="end of input"):
            line_reader.read_line(0.1)
    finally:
        line_reader.close()
        os.close(fd)


def test_regular_file_is_read_to_the_end(tmp_path: Path) -> None:
    path = tmp_path / "requests"
    path.write_bytes(b"PING\nget\n")
    fd = os.open(str(path), os.O_RDONLY)
    line_reader = LineReader(fd)
    try:
        assert line_reader.read_line(0.1) == "PING"
        assert line_reader.read_line(0.1) == "get"
        with pytest.raises(FrontendClosedError, match="end of input"):
            line_reader.read_line(0.1)
    finally:
        line_reader.close()
        os.close(fd)
