"""End-to-end tests for OidDaemon over a pipe."""

import io
import os
import threading
import time
from typing import Any, List, Tuple

from oid_daemon.app_config import DaemonSettings
from oid_daemon.collector_api import CollectorBatch, set_oid
from oid_daemon.collector_registry import CollectorRegistry
from oid_daemon.daemon import EXIT_ENGINE_FAILED, OidDaemon
from oid_daemon.protocol_engine import EXIT_FRONTEND_CLOSED

BASE = ".1.3.6.1.4.1.8072.9999.9999"


def counter_collector() -> Any:
    calls: List[int] = []

    def collect() -> CollectorBatch:
        calls.append(1)
        return CollectorBatch(
            rows=[set_oid(".2.1.0", "gauge", 1000), set_oid(".2.2.0", "gauge", len(calls))],
            clear=".2",
        )

    return collect


def make_daemon(pipe: Tuple[int, int], output: io.StringIO) -> OidDaemon:
    registry = CollectorRegistry()
    registry.register("counter", 1, counter_collector())
    settings = DaemonSettings(tick_seconds=0.05, read_timeout=0.05, channel_put_timeout=0.05)
    return OidDaemon(settings, registry, stdin_fd=pipe[0], stdout=output)


def test_serves_collected_data_and_exits_on_eof(
    pipe: Tuple[int, int], output: io.StringIO, mocker: Any
) -> None:
    daemon = make_daemon(pipe, output)
    mocker.patch.object(daemon, "_setup_signal_handlers")
    result: List[int] = []
    thread = threading.Thread(target=lambda: result.append(daemon.run()), daemon=True)
    thread.start()

    os.write(pipe[1], f"PING\nget\n{BASE}.2.1.0\ngetnext\n{BASE}.2.1.0\n".encode())
    deadline = time.monotonic() + 3
    while time.monotonic() < deadline and output.getvalue().count("\n") < 7:
        time.sleep(0.01)
    os.close(pipe[1])
    thread.join(3)

    lines = output.getvalue().splitlines()
    assert lines[:4] == ["PONG", f"{BASE}.2.1.0", "gauge", "1000"]
    assert lines[4:6] == [f"{BASE}.2.2.0", "gauge"]
    assert result == [EXIT_FRONTEND_CLOSED]
    assert not daemon.engine_alive()


def test_engine_crash_ends_daemon(pipe: Tuple[int, int], output: io.StringIO, mocker: Any) -> None:
    daemon = make_daemon(pipe, output)
    mocker.patch.object(daemon, "_setup_signal_handlers")
    mocker.patch.object(daemon.engine, "run", side_effect=RuntimeError("boom"))
    assert daemon.run() == EXIT_ENGINE_FAILED


def test_stdin_from_dev_null_exits_on_eof(output: io.StringIO, mocker: Any) -> None:
    fd = os.open(os.devnull, os.O_RDONLY)
    try:
        registry = CollectorRegistry()
        registry.register("counter", 1, counter_collector())
        settings = DaemonSettings(tick_seconds=0.05, read_timeout=0.05, channel_put_timeout=0.05)
        daemon = OidDaemon(settings, registry, stdin_fd=fd, stdout=output)
        mocker.patch.object(daemon, "_setup_signal_handlers")
        assert daemon.run() == EXIT_FRONTEND_CLOSED
        assert output.getvalue() == ""
    finally:
        os.close(fd)
