"""Line framing for the request front-end (stdin of the pass_persist child)."""

import logging
import os
import selectors
from typing import Optional

from oid_daemon.errors import FrontendClosedError

logger = logging.getLogger(__name__)


class LineReader:
    """Reads newline terminated lines from a file descriptor with a bounded wait.

    Input may arrive in fragments. Fragments are buffered until the line
    terminator shows up, however many reads that takes.
    """

    def __init__(self, fd: int, chunk_size: int = 4096, encoding: str = "utf-8") -> None:
        self.fd = fd
        self.chunk_size = chunk_size
        self.encoding = encoding
        self._buffer = b""
        self._selector: Optional[selectors.BaseSelector] = selectors.DefaultSelector()
        try:
            self._selector.register(fd, selectors.EVENT_READ)
        except OSError as e:
            # epoll refuses regular files and /dev/null; those never block
            logger.debug(f"fd {fd} cannot be polled ({e}), reading it directly")
            self._selector.close()
            self._selector = None

    @property
    def partial(self) -> str:
        return self._buffer.decode(self.encoding, errors="replace")

    def _pop_line(self) -> Optional[str]:
        line, sep, rest = self._buffer.partition(b"\n")
        if not sep:
            return None
        self._buffer = rest
        return line.decode(self.encoding, errors="replace").rstrip("\r")

    def read_line(self, timeout: float) -> Optional[str]:
        """Return the next complete line, or None if none completed within timeout.

        Raises:
            FrontendClosedError: On EOF or a read error
        """
        line = self._pop_line()
        if line is not None:
            return line

        try:
            if self._selector is not None and not self._selector.select(timeout):
                return None
            data = os.read(self.fd, self.chunk_size)
        except OSError as e:
            raise FrontendClosedError(f"read failed: {e}") from e
        if not data:
            raise FrontendClosedError("end of input")

        self._buffer += data
        line = self._pop_line()
        if line is None:
            logger.debug(f"< {data!r} (partial line: '{self.partial}')")
        return line

    def close(self) -> None:
        if self._selector is not None:
            self._selector.close()
            self._selector = None
