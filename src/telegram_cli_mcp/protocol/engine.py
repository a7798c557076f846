"""Command/response exchange with the telegram-cli daemon.

Wire format::

    request:   <verb> <arg> <arg> ...\\n
    response:  \\n                            (acknowledged, no data)
               ANSWER <N>\\n<N bytes>\\n       (payload, N+1 bytes follow)

A payload of exactly ``SUCCESS`` is an acknowledgment (the status
commands answer that way). Anything else, or silence for longer than
the transport's read timeout, is a failure.

The daemon has no abort message: a command whose response timed out
may still be carried out, and its late answer stays in the stream.
Likewise a payload read returns once its N bytes are in; if the
daemon's trailing ``\\n`` arrives in a later segment it is left in the
stream and reads as an acknowledgment of the next command. Reconnect
after a timeout when the next answer matters.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ..transport.socket_connection import READ_TIMEOUT, SocketConnection

logger = logging.getLogger(__name__)

ANSWER_PREFIX = b"ANSWER "
SUCCESS_SENTINEL = b"SUCCESS"
LINE_TERMINATOR = b"\n"

_LEADING_INT = re.compile(rb"\s*([+-]?\d{1,18})")


class Transport(Protocol):
    """What the engine needs from a byte stream."""

    def write(self, data: bytes) -> None: ...

    def read_line(self) -> bytes | None: ...

    def read_exactly(self, size: int, minimum: int | None = None) -> bytes: ...

    def close(self) -> None: ...


class ResponseKind(Enum):
    ACKNOWLEDGED = "acknowledged"
    PAYLOAD = "payload"
    FAILED = "failed"


class FailureReason(Enum):
    """Why a command produced no usable response."""

    IO_ERROR = "io_error"
    PROTOCOL_MISMATCH = "protocol_mismatch"
    TIMEOUT = "timeout"


class EngineState(Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"


@dataclass(frozen=True)
class Response:
    """Result of one command."""

    kind: ResponseKind
    payload: bytes = b""
    reason: FailureReason | None = None

    @classmethod
    def acknowledged(cls) -> Response:
        return cls(ResponseKind.ACKNOWLEDGED)

    @classmethod
    def of_payload(cls, payload: bytes) -> Response:
        return cls(ResponseKind.PAYLOAD, payload=payload)

    @classmethod
    def failed(cls, reason: FailureReason) -> Response:
        return cls(ResponseKind.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.kind is not ResponseKind.FAILED

    @property
    def text(self) -> str:
        return self.payload.decode("utf-8", errors="replace")

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self) -> str:
        if self.kind is ResponseKind.PAYLOAD:
            return f"Response(payload={self.payload[:40]!r}, len={len(self.payload)})"
        if self.kind is ResponseKind.FAILED:
            return f"Response(failed={self.reason.value})"
        return "Response(acknowledged)"


def encode_command(command: str) -> bytes:
    """Escape embedded newlines and terminate the command line.

    telegram-cli reads one command per line, so a literal newline inside
    a message is sent as the two characters ``\\n``.
    """
    return command.replace("\n", "\\n").encode("utf-8") + LINE_TERMINATOR


def parse_answer_size(line: bytes) -> int | None:
    """Extract ``N`` from an ``ANSWER N`` header line.

    Returns:
        None if the line lacks the ``ANSWER `` prefix. Otherwise the
        leading integer after the prefix, or 0 if there is none.
    """
    if not line.startswith(ANSWER_PREFIX):
        return None
    match = _LEADING_INT.match(line, len(ANSWER_PREFIX))
    if match is None:
        return 0
    return int(match.group(1))


class ProtocolEngine:
    """Executes commands over one exclusively owned transport.

    ``execute`` holds a lock for the whole write/read sequence, so
    threads sharing an engine never interleave bytes on the stream.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self._lock = threading.Lock()
        self._state = EngineState.IDLE
        self._closed = False

    @classmethod
    def connect(
        cls, address: str, timeout: float = READ_TIMEOUT
    ) -> ProtocolEngine:
        """Open a socket connection and wrap it in an engine.

        Raises:
            ConnectionError: If the daemon is unreachable.
        """
        conn = SocketConnection(address, timeout=timeout)
        conn.open()
        return cls(conn)

    @property
    def state(self) -> EngineState:
        return self._state

    def execute(self, command: str) -> Response:
        """Send ``command`` and interpret the daemon's answer.

        Never raises for I/O, timeout or framing problems; those come
        back as a failed :class:`Response`.
        """
        with self._lock:
            self._state = EngineState.AWAITING_RESPONSE
            try:
                response = self._exchange(command)
            finally:
                self._state = EngineState.IDLE

        if not response.ok:
            logger.warning(
                "Command %r failed: %s", command.split(" ", 1)[0], response.reason.value
            )
        return response

    def _exchange(self, command: str) -> Response:
        wire = encode_command(command)
        logger.debug(">> %r", wire)
        try:
            self._transport.write(wire)
        except OSError as e:
            logger.debug("Write error: %s", e)
            return Response.failed(FailureReason.IO_ERROR)

        try:
            line = self._transport.read_line()
        except OSError as e:
            logger.debug("Read error: %s", e)
            return Response.failed(FailureReason.IO_ERROR)

        if line is None:
            return Response.failed(FailureReason.TIMEOUT)
        logger.debug("<< %r", line)

        size = parse_answer_size(line)
        if size is not None:
            if size <= 0:
                return Response.failed(FailureReason.PROTOCOL_MISMATCH)
            return self._read_answer(size)

        if line == LINE_TERMINATOR:
            return Response.acknowledged()

        return Response.failed(FailureReason.PROTOCOL_MISMATCH)

    def _read_answer(self, size: int) -> Response:
        # The daemon follows the N payload bytes with its own terminator.
        try:
            data = self._transport.read_exactly(size + 1, minimum=size)
        except TimeoutError:
            return Response.failed(FailureReason.TIMEOUT)
        except OSError as e:
            logger.debug("Payload read error: %s", e)
            return Response.failed(FailureReason.IO_ERROR)

        payload = data.strip()
        if payload == SUCCESS_SENTINEL:
            return Response.acknowledged()
        return Response.of_payload(payload)

    def close(self) -> None:
        """Close the transport. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._transport.close()

    def __enter__(self) -> ProtocolEngine:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
