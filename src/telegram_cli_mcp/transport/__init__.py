"""Byte-stream transport to the daemon."""

from .socket_connection import SocketConnection
