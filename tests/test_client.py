"""Tests for the high-level client facade."""

from __future__ import annotations

import os
from unittest.mock import MagicMock, patch

import httpx
import pytest

from telegram_cli_mcp.client import TelegramClient
from telegram_cli_mcp.media.fetcher import MediaFetcher
from telegram_cli_mcp.protocol.engine import (
    FailureReason,
    ProtocolEngine,
    Response,
    ResponseKind,
)


def _client(response: Response = Response.acknowledged(), fetcher=None):
    engine = MagicMock(spec=ProtocolEngine)
    engine.execute.return_value = response
    return TelegramClient(engine, fetcher=fetcher), engine


@pytest.fixture
def fetcher(tmp_path):
    def handler(request):
        if request.url.path == "/gone.png":
            return httpx.Response(404)
        return httpx.Response(200, content=b"PNGDATA")

    client = httpx.Client(transport=httpx.MockTransport(handler))
    yield MediaFetcher(temp_dir=str(tmp_path), http_client=client)
    client.close()


def test_send_message():
    client, engine = _client()
    assert client.send_message("John Doe", "Hello\nWorld").ok
    engine.execute.assert_called_once_with('msg John_Doe "Hello\nWorld"')


def test_msg_alias():
    client, engine = _client()
    client.msg("Jane", "hi")
    engine.execute.assert_called_once_with('msg Jane "hi"')


def test_status():
    client, engine = _client()
    client.set_status_online()
    client.set_status_offline()
    assert [c.args[0] for c in engine.execute.call_args_list] == [
        "status_online",
        "status_offline",
    ]


def test_failure_is_returned_not_raised():
    client, _ = _client(Response.failed(FailureReason.TIMEOUT))
    response = client.send_message("Jane", "hi")
    assert not response
    assert response.reason is FailureReason.TIMEOUT


def test_get_contact_list():
    client, engine = _client(Response.of_payload(b"Alice Smith\nBob"))
    assert client.get_contact_list() == ["Alice Smith", "Bob"]
    engine.execute.assert_called_once_with("contact_list")


def test_get_contact_list_on_failure():
    client, _ = _client(Response.failed(FailureReason.PROTOCOL_MISMATCH))
    assert client.get_contact_list() == []


def test_get_dialog_list_acknowledged_without_payload():
    client, _ = _client(Response.acknowledged())
    assert client.get_dialog_list() == []


def test_get_history():
    client, engine = _client(Response.of_payload(b"[10:00] Jane >>> hi"))
    response = client.get_history("Jane Doe", limit=0, offset=5)
    assert response.text == "[10:00] Jane >>> hi"
    engine.execute.assert_called_once_with("history Jane_Doe 1 5")


def test_contacts_and_chats():
    client, engine = _client()
    client.add_contact("+1 555 0100", "John", "Doe")
    client.rename_contact("John Doe", "Johnny", "D")
    client.delete_contact("John Doe")
    client.get_user_info("John Doe")
    client.chat_info("Dev Team")
    client.chat_add_user("Dev Team", "John Doe", 10)
    client.chat_del_user("Dev Team", "John Doe")
    client.create_group_chat("Dev Team", ["John Doe", "Jane"])
    client.create_secret_chat("Jane")
    client.broadcast(["John Doe", "Jane"], "standup")
    client.send_location("Jane", 1.5, -2.25)
    client.send_contact("Jane", "15550100", "John", "Doe")
    client.send_typing_start("Jane")
    client.send_typing_stop("Jane")
    client.mark_read("Jane")
    client.set_profile_name("Jane", "Doe")
    client.set_username("jane_doe")

    sent = [c.args[0] for c in engine.execute.call_args_list]
    assert sent == [
        'add_contact +15550100 "John" "Doe"',
        'rename_contact John_Doe "Johnny" "D"',
        "del_contact John_Doe",
        "user_info John_Doe",
        "chat_info Dev_Team",
        "chat_add_user Dev_Team John_Doe 10",
        "chat_del_user Dev_Team John_Doe",
        'create_group_chat "Dev Team" John_Doe Jane',
        "create_secret_chat Jane",
        'broadcast John_Doe Jane "standup"',
        "send_location Jane 1.5 -2.25",
        'send_contact Jane +15550100 "John" "Doe"',
        "send_typing Jane",
        "send_typing_abort Jane",
        "mark_read Jane",
        'set_profile_name "Jane" "Doe"',
        "set_username jane_doe",
    ]


def test_invalid_arguments_raise_before_sending():
    client, engine = _client()
    with pytest.raises(ValueError):
        client.create_group_chat("Empty", [])
    engine.execute.assert_not_called()


def test_execute_raw():
    client, engine = _client()
    client.execute("safe_quit")
    engine.execute.assert_called_once_with("safe_quit")


# ─── media commands ─────────────────────────────────────────────────

def test_send_photo_downloads_and_cleans_up(fetcher, tmp_path):
    client, engine = _client(fetcher=fetcher)
    seen = {}

    def execute(command):
        path = os.path.join(str(tmp_path), "cat.png")
        seen["exists"] = os.path.exists(path)
        seen["command"] = command
        return Response.acknowledged()

    engine.execute.side_effect = execute
    assert client.send_photo("Jane", "https://img.example.com/cat.png").ok
    assert seen["exists"]
    assert seen["command"] == (
        f'send_photo Jane "{os.path.realpath(tmp_path / "cat.png")}"'
    )
    assert not (tmp_path / "cat.png").exists()


def test_media_cleanup_runs_after_failure(fetcher, tmp_path):
    client, engine = _client(Response.failed(FailureReason.TIMEOUT), fetcher)
    response = client.send_document("Jane", "https://img.example.com/report.pdf")
    assert response.reason is FailureReason.TIMEOUT
    assert list(tmp_path.iterdir()) == []


def test_unavailable_media_is_not_sent(fetcher):
    client, engine = _client(fetcher=fetcher)
    response = client.send_video("Jane", "https://img.example.com/gone.png")
    assert response.kind is ResponseKind.FAILED
    assert response.reason is FailureReason.IO_ERROR
    engine.execute.assert_not_called()


@pytest.mark.parametrize("kind, peer", [("gif", "Jane"), ("photo", "")])
def test_invalid_media_arguments_skip_download(kind, peer):
    fetcher = MagicMock(spec=MediaFetcher)
    client, engine = _client(fetcher=fetcher)
    with pytest.raises(ValueError):
        client.send_media(kind, peer, "https://img.example.com/cat.png")
    fetcher.fetched.assert_not_called()
    engine.execute.assert_not_called()


def test_local_media_is_kept(fetcher, tmp_path):
    client, engine = _client(fetcher=fetcher)
    path = tmp_path / "voice.ogg"
    path.write_bytes(b"OggS")
    client.send_audio("Jane", str(path))
    client.send_text("Jane", str(path))
    client.chat_set_photo("Dev Team", str(path))
    client.set_profile_photo(str(path))
    assert path.exists()
    verbs = [c.args[0].split(" ", 1)[0] for c in engine.execute.call_args_list]
    assert verbs == ["send_audio", "send_text", "chat_set_photo", "set_profile_photo"]


def test_close_closes_engine_and_owned_fetcher():
    engine = MagicMock(spec=ProtocolEngine)
    with patch("telegram_cli_mcp.client.MediaFetcher") as fetcher_cls:
        client = TelegramClient(engine)
    client.close()
    engine.close.assert_called_once()
    fetcher_cls.return_value.close.assert_called_once()


def test_close_leaves_shared_fetcher_open():
    engine = MagicMock(spec=ProtocolEngine)
    shared = MagicMock(spec=MediaFetcher)
    with TelegramClient(engine, fetcher=shared):
        pass
    engine.close.assert_called_once()
    shared.close.assert_not_called()


def test_connect_failure_raises():
    with pytest.raises(ConnectionError):
        TelegramClient.connect("unix:///nonexistent/dir/tg.sck")
