"""High-level telegram-cli client.

Composes a :class:`ProtocolEngine` with the command builders and a
:class:`MediaFetcher`. Every method returns the engine's
:class:`Response`; check ``response.ok`` (or its truth value) rather
than catching exceptions. Builders still raise ``ValueError`` for
arguments that could never form a valid command.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .media.fetcher import MediaFetcher
from .protocol import commands
from .protocol.engine import FailureReason, ProtocolEngine, Response
from .transport.socket_connection import DEFAULT_ADDRESS, READ_TIMEOUT

logger = logging.getLogger(__name__)


class TelegramClient:
    """Typed calls on top of one daemon connection.

    Usage::

        with TelegramClient.connect("unix:///tmp/tg.sck") as tg:
            tg.send_message("John Doe", "Hello!\\nHow are you?")
            for contact in tg.get_contact_list():
                print(contact)
    """

    def __init__(
        self,
        engine: ProtocolEngine,
        fetcher: MediaFetcher | None = None,
    ) -> None:
        self._engine = engine
        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher if fetcher is not None else MediaFetcher()

    @classmethod
    def connect(
        cls,
        address: str = DEFAULT_ADDRESS,
        timeout: float = READ_TIMEOUT,
        fetcher: MediaFetcher | None = None,
    ) -> TelegramClient:
        """Connect to a daemon socket.

        Raises:
            ConnectionError: If the daemon is unreachable.
        """
        return cls(ProtocolEngine.connect(address, timeout=timeout), fetcher)

    @property
    def engine(self) -> ProtocolEngine:
        return self._engine

    def close(self) -> None:
        self._engine.close()
        if self._owns_fetcher:
            self._fetcher.close()

    def __enter__(self) -> TelegramClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def execute(self, command: str) -> Response:
        """Run a raw command line."""
        return self._engine.execute(command)

    def _list(self, command: str) -> list[str]:
        response = self._engine.execute(command)
        if not response.ok or not response.payload:
            return []
        return response.text.split("\n")

    def _with_media(self, uri: str, build) -> Response:
        # Reject bad kinds and peers before anything is downloaded
        build(uri)
        with self._fetcher.fetched(uri) as media:
            if media is None:
                logger.warning("Media %r unavailable, command not sent", uri)
                return Response.failed(FailureReason.IO_ERROR)
            return self._engine.execute(build(media.path))

    # ─── status / messaging ──────────────────────────────────────────

    def set_status_online(self) -> Response:
        return self._engine.execute(commands.build_status_online())

    def set_status_offline(self) -> Response:
        return self._engine.execute(commands.build_status_offline())

    def send_message(self, peer: str, text: str) -> Response:
        """Send a text message. Newlines in ``text`` are preserved."""
        return self._engine.execute(commands.build_msg(peer, text))

    msg = send_message

    def broadcast(self, peers: Sequence[str], text: str) -> Response:
        return self._engine.execute(commands.build_broadcast(peers, text))

    def send_media(self, kind: str, peer: str, uri: str) -> Response:
        """Send a file as photo, video, audio, document or text.

        Args:
            kind: Media kind (see ``commands.MEDIA_VERBS``).
            peer: Recipient.
            uri: Local path or http(s) URL. Remote files are downloaded
                to a temp file that is removed once the command returns.
        """
        return self._with_media(
            uri, lambda path: commands.build_send_media(kind, peer, path)
        )

    def send_photo(self, peer: str, uri: str) -> Response:
        return self.send_media("photo", peer, uri)

    def send_video(self, peer: str, uri: str) -> Response:
        return self.send_media("video", peer, uri)

    def send_audio(self, peer: str, uri: str) -> Response:
        return self.send_media("audio", peer, uri)

    def send_document(self, peer: str, uri: str) -> Response:
        return self.send_media("document", peer, uri)

    def send_text(self, peer: str, uri: str) -> Response:
        """Send the contents of a text file as a message."""
        return self.send_media("text", peer, uri)

    def send_location(
        self, peer: str, latitude: str | float, longitude: str | float
    ) -> Response:
        return self._engine.execute(
            commands.build_send_location(peer, latitude, longitude)
        )

    def send_contact(
        self, peer: str, phone: str | int, first_name: str, last_name: str
    ) -> Response:
        return self._engine.execute(
            commands.build_send_contact(peer, phone, first_name, last_name)
        )

    def send_typing_start(self, peer: str) -> Response:
        return self._engine.execute(commands.build_send_typing(peer))

    def send_typing_stop(self, peer: str) -> Response:
        return self._engine.execute(commands.build_send_typing_abort(peer))

    def mark_read(self, peer: str) -> Response:
        return self._engine.execute(commands.build_mark_read(peer))

    # ─── contacts ────────────────────────────────────────────────────

    def add_contact(
        self, phone: str | int, first_name: str, last_name: str
    ) -> Response:
        """Add a Telegram user to the contact list.

        On success the payload is the new contact's name.
        """
        return self._engine.execute(
            commands.build_add_contact(phone, first_name, last_name)
        )

    def rename_contact(
        self, contact: str, first_name: str, last_name: str
    ) -> Response:
        return self._engine.execute(
            commands.build_rename_contact(contact, first_name, last_name)
        )

    def delete_contact(self, contact: str) -> Response:
        return self._engine.execute(commands.build_del_contact(contact))

    def get_contact_list(self) -> list[str]:
        """Contact names, one per entry; empty if the command failed."""
        return self._list(commands.build_contact_list())

    def get_dialog_list(self) -> list[str]:
        return self._list(commands.build_dialog_list())

    def get_user_info(self, user: str) -> Response:
        return self._engine.execute(commands.build_user_info(user))

    def get_history(
        self, peer: str, limit: int | None = None, offset: int | None = None
    ) -> Response:
        """Fetch message history as the daemon prints it (unformatted)."""
        return self._engine.execute(commands.build_history(peer, limit, offset))

    # ─── group chats ─────────────────────────────────────────────────

    def chat_info(self, chat: str) -> Response:
        return self._engine.execute(commands.build_chat_info(chat))

    def chat_add_user(
        self, chat: str, peer: str, msgs_to_forward: int = 100
    ) -> Response:
        return self._engine.execute(
            commands.build_chat_add_user(chat, peer, msgs_to_forward)
        )

    def chat_del_user(self, chat: str, peer: str) -> Response:
        return self._engine.execute(commands.build_chat_del_user(chat, peer))

    def chat_set_photo(self, chat: str, uri: str) -> Response:
        return self._with_media(
            uri, lambda path: commands.build_chat_set_photo(chat, path)
        )

    def create_group_chat(self, name: str, peers: Sequence[str]) -> Response:
        return self._engine.execute(commands.build_create_group_chat(name, peers))

    def create_secret_chat(self, peer: str) -> Response:
        return self._engine.execute(commands.build_create_secret_chat(peer))

    # ─── profile ─────────────────────────────────────────────────────

    def set_profile_name(self, first_name: str, last_name: str) -> Response:
        return self._engine.execute(
            commands.build_set_profile_name(first_name, last_name)
        )

    def set_profile_photo(self, uri: str) -> Response:
        """Set the profile picture. Telegram crops it to a square."""
        return self._with_media(uri, commands.build_set_profile_photo)

    def set_username(self, username: str) -> Response:
        return self._engine.execute(commands.build_set_username(username))
