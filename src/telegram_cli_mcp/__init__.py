"""Python client and MCP server for the telegram-cli daemon socket."""

from .client import TelegramClient
from .protocol.engine import ProtocolEngine, Response

__version__ = "0.1.0"
