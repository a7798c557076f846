"""Argument formatting for telegram-cli command lines.

telegram-cli splits arguments on spaces. Free text goes in double
quotes with backslash escapes; peer names use underscores in place of
spaces, which is how the daemon itself prints them in ``contact_list``.
"""

from __future__ import annotations

import math
import os
import re
from collections.abc import Iterable

_NON_DIGIT = re.compile(r"[^0-9]")
_NON_COORDINATE = re.compile(r"[^0-9.\-]")

_SLASH_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\x00": "\\0",
}


def escape_string_argument(value: str) -> str:
    """Quote free text, escaping backslashes, quotes and NUL."""
    escaped = "".join(_SLASH_ESCAPES.get(ch, ch) for ch in value)
    return f'"{escaped}"'


def escape_peer(peer: str) -> str:
    """Turn a display name like ``John Doe`` into ``John_Doe``."""
    return peer.replace(" ", "_")


def format_peer_list(peers: Iterable[str]) -> str:
    return " ".join(escape_peer(peer) for peer in peers)


def format_phone_number(number: str | int) -> str:
    """Normalize a phone number to digits with a leading ``+``.

    Numbers starting with ``0`` (a local trunk prefix) are left without
    the ``+``.

    Raises:
        ValueError: If the input contains no digits.
    """
    digits = _NON_DIGIT.sub("", str(number))
    if not digits:
        raise ValueError(f"Phone number must contain digits, got {number!r}")
    if digits[0] != "0":
        return "+" + digits
    return digits


def format_coordinate(value: str | float) -> str:
    """Render a latitude/longitude rounded to 6 decimal places.

    Numbers are used as given; strings are stripped down to digits,
    ``.`` and ``-`` first, so ``"48.8566° N"`` reads as ``48.8566``.

    Raises:
        ValueError: If no finite number can be read from ``value``.
    """
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(_NON_COORDINATE.sub("", value))
        except ValueError:
            raise ValueError(f"Invalid coordinate {value!r}") from None
    if not math.isfinite(number):
        raise ValueError(f"Invalid coordinate {value!r}")
    text = f"{round(number, 6):.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def format_file_name(path: str | os.PathLike[str]) -> str:
    """Quote the absolute, symlink-resolved form of ``path``."""
    return escape_string_argument(os.path.realpath(path))
