"""MCP server entry point for telegram-cli.

Exposes messaging, contact and chat management tools via the Model
Context Protocol using the official Python MCP SDK with stdio transport.
The daemon must already be running with a socket, e.g.::

    telegram-cli --json -S /tmp/tg.sck
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import Any

from mcp.server.fastmcp import FastMCP

from .client import TelegramClient
from .protocol.engine import Response
from .transport.socket_connection import DEFAULT_ADDRESS

logger = logging.getLogger(__name__)

ADDRESS_ENV = "TELEGRAM_CLI_ADDRESS"

mcp = FastMCP(
    "telegram-cli",
    instructions="MCP server driving a telegram-cli daemon over its socket",
)

# The one daemon connection this server process owns
_client: TelegramClient | None = None


def _get_client() -> TelegramClient:
    """Get the active client, raising if not connected."""
    if _client is None:
        raise RuntimeError(
            "Not connected to telegram-cli. Use the 'connect' tool first."
        )
    return _client


def _result(response: Response) -> dict[str, Any]:
    """Turn an engine response into a tool result."""
    if not response.ok:
        return {"ok": False, "error": f"Command failed ({response.reason.value})"}
    if response.payload:
        return {"ok": True, "answer": response.text}
    return {"ok": True}


def _run(call: Callable[[TelegramClient], Response]) -> dict[str, Any]:
    """Run a client call; rejected arguments come back as ``{"error": ...}``."""
    client = _get_client()
    try:
        return _result(call(client))
    except ValueError as e:
        return {"error": str(e)}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(address: str | None = None, timeout: float = 1.0) -> dict[str, Any]:
    """Connect to the telegram-cli daemon socket.

    Args:
        address: ``unix:///path`` or ``tcp://host:port``. Defaults to the
                 TELEGRAM_CLI_ADDRESS environment variable, then
                 unix:///tmp/tg.sck.
        timeout: Seconds to wait for each response line.
    """
    global _client
    if _client is not None:
        return {"connected": True, "message": "Already connected"}

    address = address or os.environ.get(ADDRESS_ENV, DEFAULT_ADDRESS)
    try:
        _client = TelegramClient.connect(address, timeout=timeout)
    except ConnectionError as e:
        return {"connected": False, "error": str(e)}
    return {"connected": True, "address": address}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the daemon connection."""
    global _client
    if _client is None:
        return {"disconnected": True}
    _client.close()
    _client = None
    return {"disconnected": True}


@mcp.tool()
def set_status(online: bool) -> dict[str, Any]:
    """Mark the logged-in account online or offline."""
    if online:
        return _run(lambda c: c.set_status_online())
    return _run(lambda c: c.set_status_offline())


# ─── MESSAGING TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def send_message(peer: str, text: str) -> dict[str, Any]:
    """Send a text message.

    Args:
        peer: Contact or chat name as shown by get_contact_list
              (spaces are turned into underscores automatically).
        text: Message body; may contain newlines.
    """
    return _run(lambda c: c.send_message(peer, text))


@mcp.tool()
def broadcast(peers: list[str], text: str) -> dict[str, Any]:
    """Send the same text message to several peers."""
    return _run(lambda c: c.broadcast(peers, text))


@mcp.tool()
def send_media(kind: str, peer: str, uri: str) -> dict[str, Any]:
    """Send a file.

    Args:
        kind: photo, video, audio, document or text.
        peer: Recipient.
        uri: Local path or http(s) URL (max 10 MiB). Downloads are
             deleted after sending.
    """
    return _run(lambda c: c.send_media(kind, peer, uri))


@mcp.tool()
def send_location(peer: str, latitude: float, longitude: float) -> dict[str, Any]:
    """Share a map location."""
    return _run(lambda c: c.send_location(peer, latitude, longitude))


@mcp.tool()
def send_contact(
    peer: str, phone: str, first_name: str, last_name: str
) -> dict[str, Any]:
    """Share a contact card with a peer."""
    return _run(lambda c: c.send_contact(peer, phone, first_name, last_name))


@mcp.tool()
def send_typing(peer: str, typing: bool = True) -> dict[str, Any]:
    """Start or stop the "typing..." indicator in a chat."""
    if typing:
        return _run(lambda c: c.send_typing_start(peer))
    return _run(lambda c: c.send_typing_stop(peer))


@mcp.tool()
def mark_read(peer: str) -> dict[str, Any]:
    """Mark all messages from a peer as read."""
    return _run(lambda c: c.mark_read(peer))


@mcp.tool()
def get_history(
    peer: str, limit: int | None = None, offset: int | None = None
) -> dict[str, Any]:
    """Fetch recent messages with a peer.

    Args:
        peer: Contact or chat.
        limit: Maximum number of messages (minimum 1).
        offset: Skip this many recent messages (use with limit to page).
    """
    return _run(lambda c: c.get_history(peer, limit, offset))


# ─── CONTACT TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def get_contact_list() -> dict[str, Any]:
    """List all contacts."""
    return {"contacts": _get_client().get_contact_list()}


@mcp.tool()
def get_dialog_list() -> dict[str, Any]:
    """List open conversations."""
    return {"dialogs": _get_client().get_dialog_list()}


@mcp.tool()
def get_user_info(user: str) -> dict[str, Any]:
    """Show details about a user."""
    return _run(lambda c: c.get_user_info(user))


@mcp.tool()
def add_contact(phone: str, first_name: str, last_name: str) -> dict[str, Any]:
    """Add a Telegram user by phone number (with or without '+')."""
    return _run(lambda c: c.add_contact(phone, first_name, last_name))


@mcp.tool()
def rename_contact(contact: str, first_name: str, last_name: str) -> dict[str, Any]:
    """Change a contact's first and last name."""
    return _run(lambda c: c.rename_contact(contact, first_name, last_name))


@mcp.tool()
def delete_contact(contact: str) -> dict[str, Any]:
    """Remove a contact."""
    return _run(lambda c: c.delete_contact(contact))


# ─── CHAT TOOLS ──────────────────────────────────────────────────────

@mcp.tool()
def chat_info(chat: str) -> dict[str, Any]:
    """Show group chat members and details."""
    return _run(lambda c: c.chat_info(chat))


@mcp.tool()
def chat_add_user(chat: str, peer: str, msgs_to_forward: int = 100) -> dict[str, Any]:
    """Add a user to a group chat, forwarding recent history to them."""
    return _run(lambda c: c.chat_add_user(chat, peer, msgs_to_forward))


@mcp.tool()
def chat_del_user(chat: str, peer: str) -> dict[str, Any]:
    """Remove a user from a group chat."""
    return _run(lambda c: c.chat_del_user(chat, peer))


@mcp.tool()
def create_group_chat(name: str, peers: list[str]) -> dict[str, Any]:
    """Create a group chat with the given members."""
    return _run(lambda c: c.create_group_chat(name, peers))


@mcp.tool()
def create_secret_chat(peer: str) -> dict[str, Any]:
    """Start an end-to-end encrypted chat."""
    return _run(lambda c: c.create_secret_chat(peer))


# ─── PROFILE TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def set_profile_name(first_name: str, last_name: str) -> dict[str, Any]:
    """Change the logged-in account's display name."""
    return _run(lambda c: c.set_profile_name(first_name, last_name))


@mcp.tool()
def set_username(username: str) -> dict[str, Any]:
    """Change the logged-in account's @username."""
    return _run(lambda c: c.set_username(username))


# ─── RESOURCES ───────────────────────────────────────────────────────

@mcp.resource("telegram://contacts")
def contacts_resource() -> str:
    """Contact list, one name per line."""
    return "\n".join(_get_client().get_contact_list())


@mcp.resource("telegram://dialogs")
def dialogs_resource() -> str:
    """Open conversations, one per line."""
    return "\n".join(_get_client().get_dialog_list())


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    try:
        mcp.run(transport="stdio")
    finally:
        disconnect()


if __name__ == "__main__":
    main()
