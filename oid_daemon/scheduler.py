"""
Collector scheduler.

Runs in its own execution context on a fixed tick. Every tick it runs the
collectors that are due, in registry order and one at a time, and sends each
result to the protocol engine as one batch on the update channel. After the
first tick in which every collector has run once it sends WarmupComplete.

The next due time of a collector is computed from the moment it was started,
not from its previous due time. A collector that keeps a tick busy for longer
than a second therefore pushes the schedule of everything behind it; that
drift is accepted rather than corrected.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Set, Tuple

from oid_daemon.collector_api import CollectorBatch, OidRow
from oid_daemon.collector_registry import CollectorRegistry
from oid_daemon.errors import ChannelClosedError, CollectorError
from oid_daemon.oid_utils import is_valid_oid_str, oid_str_to_tuple
from oid_daemon.types import CollectorFunc, Oid
from oid_daemon.update_channel import UpdateChannel
from oid_daemon.value_types import validate_value

logger = logging.getLogger(__name__)

DEFAULT_TICK_SECONDS = 1.0


@dataclass
class ScheduleEntry:
    name: str
    interval: int
    func: CollectorFunc
    next_due: float = 0.0


def validate_batch(
    name: str, batch: object
) -> Tuple[Optional[Oid], List[Tuple[Oid, str, str]]]:
    """Turn a collector result into channel payload.

    Raises:
        CollectorError: If the result is not a CollectorBatch or has malformed rows
    """
    if not isinstance(batch, CollectorBatch):
        raise CollectorError(name, f"returned {type(batch).__name__}, expected CollectorBatch")

    clear_prefix: Optional[Oid] = None
    if batch.clear is not None:
        if not is_valid_oid_str(batch.clear):
            raise CollectorError(name, f"invalid clear prefix '{batch.clear}'")
        clear_prefix = oid_str_to_tuple(batch.clear)

    rows: List[Tuple[Oid, str, str]] = []
    for row in batch.rows:
        if not isinstance(row, OidRow):
            raise CollectorError(name, f"malformed row {row!r}")
        if not is_valid_oid_str(row.oid):
            raise CollectorError(name, f"invalid OID '{row.oid}'")
        try:
            validate_value(row.type_token, row.value)
        except ValueError as e:
            raise CollectorError(name, f"{row.oid}: {e}") from e
        rows.append((oid_str_to_tuple(row.oid), row.type_token, row.value))
    return clear_prefix, rows


def _always_alive() -> bool:
    return True


class Scheduler:
    """Fixed-rate polling loop over the collector registry."""

    def __init__(
        self,
        registry: CollectorRegistry,
        channel: UpdateChannel,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        peer_alive: Callable[[], bool] = _always_alive,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.channel = channel
        self.tick_seconds = tick_seconds
        self.peer_alive = peer_alive
        self.clock = clock
        self.sleep = sleep
        self.entries: List[ScheduleEntry] = [
            ScheduleEntry(spec.name, spec.interval, spec.func) for spec in registry.specs()
        ]
        self.warmup_sent = False
        self._first_tick = True
        self._executed: Set[str] = set()

    def run_collector(self, entry: ScheduleEntry) -> int:
        """Execute one collector and send its batch.

        Returns:
            Number of rows sent

        Raises:
            CollectorError: If the collector failed or returned malformed rows
        """
        try:
            batch = entry.func()
        except Exception as e:
            raise CollectorError(entry.name, f"failed: {e}") from e
        clear_prefix, rows = validate_batch(entry.name, batch)
        return self.channel.send_batch(clear_prefix, rows, source=entry.name)

    def tick(self) -> int:
        """Run every due collector once.

        Returns:
            Number of collectors executed in this tick
        """
        executed = 0
        for entry in self.entries:
            now = self.clock()
            if now < entry.next_due:
                continue
            entry.next_due = now + entry.interval
            if self._first_tick:
                logger.info(f"starting {entry.name} (refresh every {entry.interval} seconds)")
            logger.debug(
                f"executing {entry.name}, scheduled next refresh at "
                f"{datetime.fromtimestamp(entry.next_due).isoformat(sep=' ', timespec='seconds')}"
            )
            try:
                count = self.run_collector(entry)
                logger.debug(f"{entry.name} submitted {count} OIDs")
            except CollectorError as e:
                logger.error(str(e), exc_info=logger.isEnabledFor(logging.DEBUG))
            self._executed.add(entry.name)
            executed += 1

        self._first_tick = False
        if not self.warmup_sent and all(e.name in self._executed for e in self.entries):
            self.channel.send_warmup_complete()
            self.warmup_sent = True
            logger.debug("all collectors ran once, warmup complete")
        return executed

    def run(self) -> None:
        """Tick until the protocol engine context is gone."""
        while self.peer_alive():
            try:
                self.tick()
            except ChannelClosedError as e:
                logger.info(f"stopping scheduler: {e}")
                return
            self.sleep(self.tick_seconds)
        logger.info("protocol engine terminated, stopping scheduler")
