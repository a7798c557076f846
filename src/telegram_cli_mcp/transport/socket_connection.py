"""Socket connection to a running telegram-cli daemon.

The daemon listens on either a unix domain socket or a TCP port (its
``-S`` and ``-P`` options). Both are plain byte streams; this module
only moves bytes and splits lines; it knows nothing about commands.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "unix:///tmp/tg.sck"
READ_TIMEOUT = 1.0  # seconds; a silent daemon reads as "no response"
RECV_SIZE = 4096
MAX_LINE_LENGTH = 65536


@dataclass
class SocketAddress:
    """Parsed daemon address."""

    family: int
    target: str | tuple[str, int]

    @classmethod
    def parse(cls, address: str) -> SocketAddress:
        """Parse ``unix:///path``, ``tcp://host:port`` or a bare socket path."""
        if address.startswith("unix://"):
            path = address[len("unix://"):]
            if not path:
                raise ValueError(f"Missing socket path in {address!r}")
            return cls(socket.AF_UNIX, path)

        if address.startswith("tcp://"):
            host, sep, port = address[len("tcp://"):].rpartition(":")
            if not sep or not host or not port.isdigit():
                raise ValueError(f"Expected tcp://host:port, got {address!r}")
            host = host.strip("[]")
            family = socket.AF_INET6 if ":" in host else socket.AF_INET
            return cls(family, (host, int(port)))

        if "://" in address or not address:
            raise ValueError(f"Unsupported socket address {address!r}")
        return cls(socket.AF_UNIX, address)


class SocketConnection:
    """Owns one duplex stream to the daemon.

    Usage::

        with SocketConnection("unix:///tmp/tg.sck") as conn:
            conn.write(b"contact_list\\n")
            header = conn.read_line()
    """

    def __init__(
        self,
        address: str = DEFAULT_ADDRESS,
        timeout: float = READ_TIMEOUT,
    ) -> None:
        self._address = address
        self._timeout = timeout
        self._sock: socket.socket | None = None
        self._buffer = bytearray()
        self._skip_line = False

    @classmethod
    def from_socket(
        cls, sock: socket.socket, timeout: float = READ_TIMEOUT
    ) -> SocketConnection:
        """Wrap an already connected socket (e.g. one end of a socketpair)."""
        conn = cls(address="<attached>", timeout=timeout)
        sock.settimeout(timeout)
        conn._sock = sock
        return conn

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def open(self) -> None:
        """Connect to the daemon.

        Raises:
            ConnectionError: If the socket cannot be established.
        """
        if self._sock is not None:
            return

        try:
            target = SocketAddress.parse(self._address)
        except ValueError as e:
            raise ConnectionError(
                f"Could not connect to telegram-cli at {self._address!r}: {e}"
            ) from e

        sock = socket.socket(target.family, socket.SOCK_STREAM)
        try:
            sock.settimeout(self._timeout)
            sock.connect(target.target)
        except OSError as e:
            sock.close()
            raise ConnectionError(
                f"Could not connect to telegram-cli at {self._address!r}. "
                f"Is the daemon running with a socket enabled? "
                f"Last error: {e}"
            ) from e

        self._sock = sock
        logger.info("Connected to telegram-cli at %s", self._address)

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self._sock is None:
            return

        try:
            self._sock.close()
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        finally:
            self._sock = None
            self._buffer.clear()
            self._skip_line = False
            logger.info("Disconnected from %s", self._address)

    def __enter__(self) -> SocketConnection:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise ConnectionError("Not connected to telegram-cli")
        return self._sock

    def write(self, data: bytes) -> None:
        """Send the whole buffer.

        Raises:
            ConnectionError: If not connected.
            OSError: If the send fails.
        """
        self._require_socket().sendall(data)

    def read(self, size: int) -> bytes:
        """Read at most ``size`` bytes in a single call.

        Buffered bytes left over from :meth:`read_line` are returned
        first. The result may be shorter than requested; ``b""`` means
        the daemon closed the stream.

        Raises:
            TimeoutError: If nothing arrived within the read timeout.
        """
        if size <= 0:
            return b""

        if self._buffer:
            chunk = bytes(self._buffer[:size])
            del self._buffer[:size]
            return chunk

        return self._require_socket().recv(min(size, RECV_SIZE))

    def read_line(self, limit: int = MAX_LINE_LENGTH) -> bytes | None:
        """Read one ``\\n``-terminated line, terminator included.

        Returns:
            The line, or None on timeout or EOF. When ``limit`` bytes
            arrive without a terminator, those bytes are returned as-is
            and the rest of that line is dropped, up to and including
            its terminator, by later reads.
        """
        sock = self._require_socket()
        while True:
            if self._skip_line:
                index = self._buffer.find(b"\n")
                if index >= 0:
                    del self._buffer[:index + 1]
                    self._skip_line = False
                else:
                    self._buffer.clear()

            if not self._skip_line:
                index = self._buffer.find(b"\n", 0, limit)
                if index >= 0:
                    return self._take(index + 1)
                if len(self._buffer) >= limit:
                    logger.warning("Dropping line longer than %d bytes", limit)
                    self._skip_line = True
                    return self._take(limit)

            try:
                chunk = sock.recv(RECV_SIZE)
            except TimeoutError:
                logger.debug("No line within %.2fs", self._timeout)
                return None

            if not chunk:
                logger.debug("Daemon closed the stream")
                return None
            self._buffer += chunk

    def read_exactly(self, size: int, minimum: int | None = None) -> bytes:
        """Accumulate reads until at least ``minimum`` bytes are collected.

        Never requests more than ``size`` bytes in total, so a daemon
        that sends exactly ``minimum`` bytes does not stall the loop.

        Args:
            size: Upper bound of bytes to consume.
            minimum: Bytes required before returning (defaults to ``size``).

        Raises:
            TimeoutError: If the daemon stops sending before ``minimum``.
            ConnectionResetError: If the stream ends before ``minimum``.
        """
        if minimum is None:
            minimum = size

        data = bytearray()
        while len(data) < minimum:
            chunk = self.read(size - len(data))
            if not chunk:
                raise ConnectionResetError(
                    f"Stream closed after {len(data)} of {minimum} bytes"
                )
            data += chunk
        return bytes(data)

    def _take(self, count: int) -> bytes:
        line = bytes(self._buffer[:count])
        del self._buffer[:count]
        return line
