"""
Update channel between the scheduler and the protocol engine.

The scheduler never touches the cache. It turns every collector run into a
batch of tagged messages::

    Clear(prefix)?  Upsert(oid, type, value)*  EndOfBatch

and, once after the first full collector pass, a single WarmupComplete.
The engine stages batch messages in a BatchAssembler and applies them to its
cache in one step when EndOfBatch arrives, so a request served between two
messages of a batch still sees the previous, consistent state.
"""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Union

from oid_daemon.errors import ChannelClosedError
from oid_daemon.oid_cache import OidCache
from oid_daemon.oid_utils import oid_tuple_to_str
from oid_daemon.types import Oid
from oid_daemon.value_types import strip_line_terminators

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1024
DEFAULT_PUT_TIMEOUT = 1.0


@dataclass(frozen=True)
class Clear:
    prefix: Oid


@dataclass(frozen=True)
class Upsert:
    oid: Oid
    type_token: str
    value: str


@dataclass(frozen=True)
class EndOfBatch:
    source: str = ""


@dataclass(frozen=True)
class WarmupComplete:
    pass


UpdateMessage = Union[Clear, Upsert, EndOfBatch, WarmupComplete]


def _always_alive() -> bool:
    return True


class UpdateChannel:
    """Bounded FIFO of update messages.

    A full channel blocks the producer. While blocked, the producer keeps
    checking ``peer_alive`` so it does not hang forever on a consumer that
    has already terminated.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        put_timeout: float = DEFAULT_PUT_TIMEOUT,
        peer_alive: Callable[[], bool] = _always_alive,
    ) -> None:
        self._queue: "queue.Queue[UpdateMessage]" = queue.Queue(maxsize=capacity)
        self.put_timeout = put_timeout
        self.peer_alive = peer_alive

    def _put(self, message: UpdateMessage) -> None:
        while True:
            try:
                self._queue.put(message, timeout=self.put_timeout)
                return
            except queue.Full:
                if not self.peer_alive():
                    raise ChannelClosedError("consumer terminated while channel was full")
                logger.debug("channel full, waiting for the engine to catch up")

    def send_batch(
        self,
        clear_prefix: Optional[Oid],
        rows: Iterable[tuple[Oid, str, str]],
        source: str = "",
    ) -> int:
        """Send one complete batch.

        Type and value fields are stripped of line terminators on the way in.

        Returns:
            Number of Upsert messages sent
        """
        if clear_prefix is not None:
            self._put(Clear(clear_prefix))
        count = 0
        for oid, type_token, value in rows:
            self._put(
                Upsert(oid, strip_line_terminators(type_token), strip_line_terminators(value))
            )
            count += 1
        self._put(EndOfBatch(source))
        return count

    def send_warmup_complete(self) -> None:
        self._put(WarmupComplete())

    def receive(self, timeout: Optional[float] = None) -> Optional[UpdateMessage]:
        """Block for the next message; None when the timeout expires."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[UpdateMessage]:
        """Return every message that is available right now, without blocking."""
        messages: List[UpdateMessage] = []
        while True:
            try:
                messages.append(self._queue.get_nowait())
            except queue.Empty:
                return messages


@dataclass
class BatchAssembler:
    """Consumer side of the channel: stages a batch, applies it on EndOfBatch."""

    cache: OidCache
    warmup_complete: bool = False
    _pending: List[Union[Clear, Upsert]] = field(default_factory=list)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def feed(self, message: UpdateMessage) -> None:
        if isinstance(message, (Clear, Upsert)):
            self._pending.append(message)
        elif isinstance(message, EndOfBatch):
            self._apply(message.source)
        elif isinstance(message, WarmupComplete):
            self.warmup_complete = True
        else:
            logger.debug(f"cache: received invalid message {message!r}")
            return
        logger.debug(f"cache: received: {describe(message)}")

    def feed_all(self, messages: Iterable[UpdateMessage]) -> None:
        for message in messages:
            self.feed(message)

    def _apply(self, source: str) -> None:
        pending, self._pending = self._pending, []
        for message in pending:
            if isinstance(message, Clear):
                self.cache.apply_clear(message.prefix)
            else:
                self.cache.apply_upsert(message.oid, message.type_token, message.value)
        logger.debug(
            f"cache: applied batch from {source or 'unknown'} "
            f"({len(pending)} messages, {len(self.cache)} OIDs cached)"
        )


def describe(message: UpdateMessage) -> str:
    """Render a message for debug logs."""
    if isinstance(message, Clear):
        return f"CLEAR {oid_tuple_to_str(message.prefix)}"
    if isinstance(message, Upsert):
        return f"UPDATE {oid_tuple_to_str(message.oid)} = {message.type_token}: {message.value}"
    if isinstance(message, EndOfBatch):
        return "ENDOFDATA"
    return "STARTUPDONE"
