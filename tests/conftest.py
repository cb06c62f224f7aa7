"""Shared fixtures for the OID daemon tests."""

import io
import logging
import os
import sys
from typing import Any, Generator, Tuple

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from oid_daemon.app_config import AppConfig  # noqa: E402
from oid_daemon.app_logger import AppLogger  # noqa: E402
from oid_daemon.line_reader import LineReader  # noqa: E402
from oid_daemon.oid_cache import OidCache  # noqa: E402
from oid_daemon.protocol_engine import ProtocolEngine  # noqa: E402
from oid_daemon.update_channel import UpdateChannel  # noqa: E402

BASE_OID = ".1.3.6.1.4.1.8072.9999.9999"
BASE_OID_TUPLE = (1, 3, 6, 1, 4, 1, 8072, 9999, 9999)


@pytest.fixture
def mock_logger(mocker: Any) -> Any:
    """Provide a mock logger fixture."""
    return mocker.MagicMock()


@pytest.fixture
def cache() -> OidCache:
    return OidCache()


@pytest.fixture
def channel() -> UpdateChannel:
    return UpdateChannel(capacity=64, put_timeout=0.05)


@pytest.fixture
def pipe() -> Generator[Tuple[int, int], None, None]:
    """Provide a (read_fd, write_fd) pair standing in for snmpd's pipe."""
    read_fd, write_fd = os.pipe()
    yield read_fd, write_fd
    for fd in (read_fd, write_fd):
        try:
            os.close(fd)
        except OSError:
            pass


@pytest.fixture
def reader(pipe: Tuple[int, int]) -> Generator[LineReader, None, None]:
    line_reader = LineReader(pipe[0])
    yield line_reader
    line_reader.close()


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def engine(channel: UpdateChannel, reader: LineReader, output: io.StringIO) -> ProtocolEngine:
    return ProtocolEngine(
        base_oid=BASE_OID_TUPLE,
        channel=channel,
        reader=reader,
        output=output,
        read_timeout=0.05,
    )


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset AppConfig/AppLogger singletons and root handlers between tests."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    AppConfig._instance = None
    AppConfig._initialized = False
    AppLogger._configured = False
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
