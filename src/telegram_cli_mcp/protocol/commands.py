"""Command verbs and command-line builders.

Every builder is a pure function returning the command string the
engine sends. Arguments are escaped here, so callers pass raw names,
text and numbers.
"""

from __future__ import annotations

import os
import re
from collections.abc import Sequence
from enum import Enum

from .escaping import (
    escape_peer,
    escape_string_argument,
    format_coordinate,
    format_file_name,
    format_peer_list,
    format_phone_number,
)


_USERNAME = re.compile(r"[A-Za-z0-9_]{5,32}")


class Verb(str, Enum):
    """telegram-cli command names."""

    STATUS_ONLINE = "status_online"
    STATUS_OFFLINE = "status_offline"
    MSG = "msg"
    BROADCAST = "broadcast"
    SEND_PHOTO = "send_photo"
    SEND_VIDEO = "send_video"
    SEND_AUDIO = "send_audio"
    SEND_DOCUMENT = "send_document"
    SEND_TEXT = "send_text"
    SEND_LOCATION = "send_location"
    SEND_CONTACT = "send_contact"
    SEND_TYPING = "send_typing"
    SEND_TYPING_ABORT = "send_typing_abort"
    MARK_READ = "mark_read"
    ADD_CONTACT = "add_contact"
    RENAME_CONTACT = "rename_contact"
    DEL_CONTACT = "del_contact"
    CONTACT_LIST = "contact_list"
    DIALOG_LIST = "dialog_list"
    USER_INFO = "user_info"
    HISTORY = "history"
    CHAT_INFO = "chat_info"
    CHAT_ADD_USER = "chat_add_user"
    CHAT_DEL_USER = "chat_del_user"
    CHAT_SET_PHOTO = "chat_set_photo"
    CREATE_GROUP_CHAT = "create_group_chat"
    CREATE_SECRET_CHAT = "create_secret_chat"
    SET_PROFILE_NAME = "set_profile_name"
    SET_PROFILE_PHOTO = "set_profile_photo"
    SET_USERNAME = "set_username"


MEDIA_VERBS: dict[str, Verb] = {
    "photo": Verb.SEND_PHOTO,
    "video": Verb.SEND_VIDEO,
    "audio": Verb.SEND_AUDIO,
    "document": Verb.SEND_DOCUMENT,
    "text": Verb.SEND_TEXT,
}


def build_command(verb: Verb, *args: str) -> str:
    """Join a verb and already-escaped arguments into one command line."""
    return " ".join([verb.value, *args])


def _require(value: str, what: str) -> str:
    if not value:
        raise ValueError(f"{what} must not be empty")
    return value


def build_status_online() -> str:
    return build_command(Verb.STATUS_ONLINE)


def build_status_offline() -> str:
    return build_command(Verb.STATUS_OFFLINE)


def build_msg(peer: str, text: str) -> str:
    """Build a ``msg`` command sending ``text`` to ``peer``."""
    return build_command(
        Verb.MSG, escape_peer(_require(peer, "Peer")), escape_string_argument(text)
    )


def build_broadcast(peers: Sequence[str], text: str) -> str:
    """Build a ``broadcast`` command sending ``text`` to every peer."""
    if not peers:
        raise ValueError("Broadcast needs at least one peer")
    return build_command(
        Verb.BROADCAST, format_peer_list(peers), escape_string_argument(text)
    )


def build_send_media(
    kind: str, peer: str, path: str | os.PathLike[str]
) -> str:
    """Build a send_photo/video/audio/document/text command.

    Args:
        kind: One of photo, video, audio, document, text.
        peer: Recipient.
        path: Local file already on disk.
    """
    if kind not in MEDIA_VERBS:
        raise ValueError(
            f"Unknown media kind '{kind}'. Valid: {list(MEDIA_VERBS)}"
        )
    return build_command(
        MEDIA_VERBS[kind],
        escape_peer(_require(peer, "Peer")),
        format_file_name(path),
    )


def build_send_location(
    peer: str, latitude: str | float, longitude: str | float
) -> str:
    return build_command(
        Verb.SEND_LOCATION,
        escape_peer(_require(peer, "Peer")),
        format_coordinate(latitude),
        format_coordinate(longitude),
    )


def build_send_contact(
    peer: str, phone: str | int, first_name: str, last_name: str
) -> str:
    """Build a ``send_contact`` command sharing a contact card with ``peer``."""
    return build_command(
        Verb.SEND_CONTACT,
        escape_peer(_require(peer, "Peer")),
        format_phone_number(phone),
        escape_string_argument(first_name),
        escape_string_argument(last_name),
    )


def build_send_typing(peer: str) -> str:
    return build_command(Verb.SEND_TYPING, escape_peer(_require(peer, "Peer")))


def build_send_typing_abort(peer: str) -> str:
    return build_command(
        Verb.SEND_TYPING_ABORT, escape_peer(_require(peer, "Peer"))
    )


def build_mark_read(peer: str) -> str:
    return build_command(Verb.MARK_READ, escape_peer(_require(peer, "Peer")))


def build_add_contact(phone: str | int, first_name: str, last_name: str) -> str:
    """Build an ``add_contact`` command.

    The phone number may be given with or without a leading ``+`` and
    with any punctuation; only the digits are kept.
    """
    return build_command(
        Verb.ADD_CONTACT,
        format_phone_number(phone),
        escape_string_argument(first_name),
        escape_string_argument(last_name),
    )


def build_rename_contact(contact: str, first_name: str, last_name: str) -> str:
    return build_command(
        Verb.RENAME_CONTACT,
        escape_peer(_require(contact, "Contact")),
        escape_string_argument(first_name),
        escape_string_argument(last_name),
    )


def build_del_contact(contact: str) -> str:
    return build_command(
        Verb.DEL_CONTACT, escape_peer(_require(contact, "Contact"))
    )


def build_contact_list() -> str:
    return build_command(Verb.CONTACT_LIST)


def build_dialog_list() -> str:
    return build_command(Verb.DIALOG_LIST)


def build_user_info(user: str) -> str:
    return build_command(Verb.USER_INFO, escape_peer(_require(user, "User")))


def build_history(
    peer: str, limit: int | None = None, offset: int | None = None
) -> str:
    """Build a ``history`` command.

    Args:
        peer: Chat partner or group.
        limit: Maximum number of messages. Values below 1 are raised to
            1, since telegram-cli crashes on them.
        offset: Skip this many recent messages. Only meaningful together
            with ``limit``; may be negative.
    """
    args = [escape_peer(_require(peer, "Peer"))]
    if limit is not None:
        args.append(str(max(int(limit), 1)))
    if offset is not None:
        args.append(str(int(offset)))
    return build_command(Verb.HISTORY, *args)


def build_chat_info(chat: str) -> str:
    return build_command(Verb.CHAT_INFO, escape_peer(_require(chat, "Chat")))


def build_chat_add_user(chat: str, peer: str, msgs_to_forward: int = 100) -> str:
    """Build a ``chat_add_user`` command.

    Args:
        chat: Group chat name. Spaces become underscores, like any peer.
        peer: User to add.
        msgs_to_forward: How many recent messages the new member sees.
    """
    if msgs_to_forward < 0:
        raise ValueError(
            f"Messages to forward must be >= 0, got {msgs_to_forward}"
        )
    return build_command(
        Verb.CHAT_ADD_USER,
        escape_peer(_require(chat, "Chat")),
        escape_peer(_require(peer, "Peer")),
        str(int(msgs_to_forward)),
    )


def build_chat_del_user(chat: str, peer: str) -> str:
    return build_command(
        Verb.CHAT_DEL_USER,
        escape_peer(_require(chat, "Chat")),
        escape_peer(_require(peer, "Peer")),
    )


def build_chat_set_photo(chat: str, path: str | os.PathLike[str]) -> str:
    return build_command(
        Verb.CHAT_SET_PHOTO,
        escape_peer(_require(chat, "Chat")),
        format_file_name(path),
    )


def build_create_group_chat(name: str, peers: Sequence[str]) -> str:
    """Build a ``create_group_chat`` command.

    telegram-cli refuses to create an empty group, so at least one
    member is required.
    """
    if not peers:
        raise ValueError("A group chat needs at least one member")
    return build_command(
        Verb.CREATE_GROUP_CHAT,
        escape_string_argument(_require(name, "Group name")),
        format_peer_list(peers),
    )


def build_create_secret_chat(peer: str) -> str:
    return build_command(
        Verb.CREATE_SECRET_CHAT, escape_peer(_require(peer, "Peer"))
    )


def build_set_profile_name(first_name: str, last_name: str) -> str:
    return build_command(
        Verb.SET_PROFILE_NAME,
        escape_string_argument(first_name),
        escape_string_argument(last_name),
    )


def build_set_profile_photo(path: str | os.PathLike[str]) -> str:
    return build_command(Verb.SET_PROFILE_PHOTO, format_file_name(path))


def build_set_username(username: str) -> str:
    """Build a ``set_username`` command.

    Telegram usernames are 5-32 characters of letters, digits and
    underscores; a leading ``@`` is dropped.
    """
    username = username.lstrip("@")
    if _USERNAME.fullmatch(username) is None:
        raise ValueError(f"Invalid username {username!r}")
    return build_command(Verb.SET_USERNAME, username)
