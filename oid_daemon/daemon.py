"""
OidDaemon: wires the scheduler and the protocol engine together.

The protocol engine runs in its own thread and serves snmpd on stdin/stdout.
The scheduler runs in the calling thread and feeds the engine through the
update channel. When the engine stops (snmpd closed the pipe) the scheduler
notices on its next tick and the process exits with the engine's status.
"""

import logging
import os
import signal
import sys
import threading
from typing import Any, Optional, TextIO

from oid_daemon.app_config import DaemonSettings
from oid_daemon.collector_registry import CollectorRegistry
from oid_daemon.line_reader import LineReader
from oid_daemon.oid_utils import oid_str_to_tuple
from oid_daemon.protocol_engine import ProtocolEngine
from oid_daemon.scheduler import Scheduler
from oid_daemon.update_channel import UpdateChannel

# Exit status when the engine died on something other than a closed front-end
EXIT_ENGINE_FAILED = 1


class OidDaemon:
    def __init__(
        self,
        settings: DaemonSettings,
        registry: CollectorRegistry,
        stdin_fd: Optional[int] = None,
        stdout: Optional[TextIO] = None,
    ) -> None:
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.registry = registry
        self.exit_code = 0

        self.channel = UpdateChannel(
            capacity=settings.channel_capacity,
            put_timeout=settings.channel_put_timeout,
            peer_alive=self.engine_alive,
        )
        self.reader = LineReader(sys.stdin.fileno() if stdin_fd is None else stdin_fd)
        self.engine = ProtocolEngine(
            base_oid=oid_str_to_tuple(settings.base_oid),
            channel=self.channel,
            reader=self.reader,
            output=sys.stdout if stdout is None else stdout,
            read_timeout=settings.read_timeout,
        )
        self.scheduler = Scheduler(
            registry,
            self.channel,
            tick_seconds=settings.tick_seconds,
            peer_alive=self.engine_alive,
        )
        self._engine_thread = threading.Thread(
            target=self._run_engine, name="protocol-engine", daemon=True
        )

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers that stop the daemon immediately."""

        def signal_handler(signum: int, frame: Any) -> None:
            sig_name = signal.Signals(signum).name
            self.logger.info(f"Received signal {sig_name} ({signum}), daemon stopped")
            for handler in logging.getLogger().handlers:
                handler.flush()
            # Collectors may be mid-run; don't wait for them
            os._exit(0)

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)
        if hasattr(signal, "SIGHUP"):
            signal.signal(signal.SIGHUP, signal_handler)

    def engine_alive(self) -> bool:
        return self._engine_thread.is_alive()

    def _run_engine(self) -> None:
        try:
            self.exit_code = self.engine.run()
        except Exception as e:
            self.logger.error(f"protocol engine failed: {e}", exc_info=True)
            self.exit_code = EXIT_ENGINE_FAILED

    def run(self) -> int:
        """Run until the protocol engine stops.

        Returns:
            Process exit status
        """
        self.logger.info(f"daemon starting (PID: {os.getpid()})")
        self._setup_signal_handlers()
        self._engine_thread.start()
        try:
            self.scheduler.run()
        finally:
            self._engine_thread.join(timeout=self.settings.read_timeout * 2)
            self.reader.close()
            self.logger.info(f"daemon stopped (exit status {self.exit_code})")
        return self.exit_code
