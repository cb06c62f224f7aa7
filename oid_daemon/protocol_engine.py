"""
pass_persist protocol engine.

snmpd talks to a pass_persist child over its stdin/stdout. Every request is a
command line followed by a fixed number of argument lines::

    PING                        -> PONG
    GET      oid                -> oid, type, value | NONE
    GETNEXT  oid                -> oid, type, value | NONE
    SET      oid, type value    -> not-writable

The engine owns the OID cache. Between requests it drains the update channel
so replies reflect the latest collector data, and it only ever applies whole
batches.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, TextIO

from oid_daemon.errors import FrontendClosedError, ProtocolFramingError
from oid_daemon.line_reader import LineReader
from oid_daemon.oid_cache import OidCache
from oid_daemon.oid_utils import oid_tuple_to_str, strip_base
from oid_daemon.types import Oid
from oid_daemon.update_channel import BatchAssembler, UpdateChannel

logger = logging.getLogger(__name__)

# Exit status when snmpd closes our stdin; snmpd restarts the child
EXIT_FRONTEND_CLOSED = 255

DEFAULT_READ_TIMEOUT = 1.0

NONE = "NONE"
PONG = "PONG"
NOT_WRITABLE = "not-writable"

# Command -> number of argument lines that follow it
REQUIRED_ARGS = {
    "ping": 0,
    "get": 1,
    "getnext": 1,
    "set": 2,
}


@dataclass
class RequestContext:
    command: str = ""
    args: List[str] = field(default_factory=list)

    @property
    def idle(self) -> bool:
        return not self.command

    def reset(self) -> None:
        self.command = ""
        self.args = []


class ProtocolEngine:
    def __init__(
        self,
        base_oid: Oid,
        channel: UpdateChannel,
        reader: LineReader,
        output: TextIO,
        cache: Optional[OidCache] = None,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self.base_oid = base_oid
        self.base_oid_str = oid_tuple_to_str(base_oid)
        self.channel = channel
        self.reader = reader
        self.output = output
        self.cache = cache if cache is not None else OidCache()
        self.read_timeout = read_timeout
        self.assembler = BatchAssembler(self.cache)
        self.request = RequestContext()

    # -- state machine -----------------------------------------------------

    def handle_line(self, line: str) -> List[str]:
        """Advance the state machine by one input line.

        Returns:
            Reply lines to write, possibly none
        """
        if self.request.idle:
            if not line:
                logger.debug("empty line while idle")
                return [NONE]
            self.request.command = line
        elif not line:
            command = self.request.command
            self.request.reset()
            logger.warning(f"empty line while reading arguments of '{command}', command dropped")
            return [NONE]
        else:
            self.request.args.append(line)

        try:
            replies = self._dispatch()
        except ProtocolFramingError as e:
            logger.error(str(e))
            self.request.reset()
            return []
        if replies is not None:
            self.request.reset()
            return replies
        return []

    def _dispatch(self) -> Optional[List[str]]:
        """Run the pending command once it has all its arguments.

        Returns None while arguments are still missing.
        """
        command = self.request.command.lower()
        required = REQUIRED_ARGS.get(command)
        if required is None:
            raise ProtocolFramingError(f"invalid command '{self.request.command}'")
        if len(self.request.args) < required:
            return None

        if command == "ping":
            return [PONG]
        if command == "set":
            return [NOT_WRITABLE]
        if command == "get":
            return self.get(self.request.args[0])
        return self.get_next(self.request.args[0])

    # -- request handlers --------------------------------------------------

    def _suffix(self, oid: str) -> Optional[Oid]:
        suffix = strip_base(oid, self.base_oid)
        if suffix is None:
            logger.debug(f"{oid} is not part of our base OID")
        return suffix

    def _entry(self, suffix: Oid) -> List[str]:
        type_token, value = self.cache.lookup(suffix) or ("", "")
        return [self.base_oid_str + oid_tuple_to_str(suffix), type_token, value]

    def get(self, oid: str) -> List[str]:
        suffix = self._suffix(oid)
        if suffix is None:
            return [NONE]
        if self.cache.lookup(suffix) is None:
            logger.debug(f"{oid} not found")
            return [NONE]
        return self._entry(suffix)

    def get_next(self, oid: str) -> List[str]:
        suffix = self._suffix(oid)
        if suffix is None:
            return [NONE]
        candidate = self.cache.next(suffix)
        logger.debug(
            f"evaluated next candidate: [requested: '{oid_tuple_to_str(suffix)}', "
            f"next: '{oid_tuple_to_str(candidate) if candidate else ''}']"
        )
        # next() is strictly greater, the equality check only guards a broken cache
        if candidate is None or candidate == suffix:
            logger.debug(f"{oid} not found")
            return [NONE]
        return self._entry(candidate)

    # -- I/O loop ----------------------------------------------------------

    def apply_updates(self) -> None:
        """Apply every update message that is available without blocking."""
        self.assembler.feed_all(self.channel.drain())

    def wait_for_warmup(self) -> None:
        logger.info("waiting for all data gathering functions to return data")
        while not self.assembler.warmup_complete:
            message = self.channel.receive(timeout=self.read_timeout)
            if message is not None:
                self.assembler.feed(message)

    def write_replies(self, replies: List[str]) -> None:
        try:
            for reply in replies:
                logger.debug(f"> {reply}")
                self.output.write(reply + "\n")
            self.output.flush()
        except OSError as e:
            raise FrontendClosedError(f"write failed: {e}") from e

    def serve_once(self) -> None:
        """Drain updates, then wait a bounded time for one input line."""
        self.apply_updates()
        line = self.reader.read_line(self.read_timeout)
        if line is None:
            return
        logger.debug(f"< {line}")
        self.write_replies(self.handle_line(line))

    def run(self) -> int:
        """Serve requests until the front-end closes.

        Returns:
            Exit status for the process
        """
        self.wait_for_warmup()
        logger.info(f"daemon started (BASE_OID: {self.base_oid_str})")
        try:
            while True:
                self.serve_once()
        except FrontendClosedError as e:
            logger.info(f"request front-end closed ({e}), exiting")
            return EXIT_FRONTEND_CLOSED
