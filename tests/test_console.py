"""Tests for the management console."""

import json
from unittest.mock import MagicMock

import pytest

from routinekit.config import MergedSettings
from routinekit.console import execute_command
from routinekit.console.handler import display_reply
from routinekit.main import main


@pytest.fixture
def sent(monkeypatch):
    send = MagicMock(return_value="DONE")
    monkeypatch.setattr("routinekit.console.handler.send_command", send)
    return send


@pytest.mark.parametrize("line", ["exit", "QUIT", "  quit  "])
def test_exit_words_close_the_console(line, sent):
    assert execute_command(line, "127.0.0.1", 8765) is True
    sent.assert_not_called()


def test_blank_line_is_ignored(sent):
    assert execute_command("   ", "127.0.0.1", 8765) is False
    sent.assert_not_called()


def test_help_is_local(sent, capsys):
    assert execute_command("help", "127.0.0.1", 8765) is False
    assert "Local commands" in capsys.readouterr().out
    sent.assert_not_called()


def test_other_commands_are_forwarded(sent, capsys):
    assert execute_command("start_worker:2", "127.0.0.1", 8765) is False
    sent.assert_called_once_with("127.0.0.1", 8765, "start_worker:2")
    assert capsys.readouterr().out.strip() == "DONE"


def test_remote_exit_alias(sent):
    execute_command("exit!", "127.0.0.1", 8765)
    sent.assert_called_once_with("127.0.0.1", 8765, "exit")


def test_display_json_reply(capsys):
    display_reply("status", '{"pid": 1, "status": "running"}')
    assert capsys.readouterr().out == '{\n  "pid": 1,\n  "status": "running"\n}\n'


def test_display_undelivered(capsys):
    display_reply("status", None)
    assert "could not be delivered" in capsys.readouterr().out


def test_one_shot_mode(sent, monkeypatch):
    monkeypatch.setattr("routinekit.main.setup_logging", lambda level: None)

    assert main(["--port", "9000", "list_workers"]) == 0
    sent.assert_called_once_with("127.0.0.1", 9000, "list_workers")


def test_interactive_mode_until_exit(sent, monkeypatch):
    monkeypatch.setattr("routinekit.main.setup_logging", lambda level: None)
    lines = iter(["add_worker", "exit"])
    monkeypatch.setattr("builtins.input", lambda prompt: next(lines))

    assert main([]) == 0
    sent.assert_called_once_with("127.0.0.1", 8765, "add_worker")


@pytest.fixture
def local_settings(tmp_path, monkeypatch):
    settings = MergedSettings(tmp_path / "overrides.json")
    monkeypatch.setattr("routinekit.console.handler.config", settings)
    return settings


def test_config_set_persists_override(local_settings, sent, capsys):
    assert execute_command("config set monitor_interval 30", "127.0.0.1", 8765) is False

    sent.assert_not_called()
    saved = json.loads(local_settings.OVERRIDES_JSON_PATH.read_text())
    assert saved["MONITOR_INTERVAL"] == "30"
    assert set(saved) == set(local_settings.MODIFIABLE_SETTINGS)
    assert local_settings.MONITOR_INTERVAL == 30.0
    assert MergedSettings(local_settings.OVERRIDES_JSON_PATH).MONITOR_INTERVAL == 30.0
    assert "saved to" in capsys.readouterr().out


def test_config_set_rejects_protected_key(local_settings, sent, capsys):
    execute_command("config set STOP_POLL_INTERVAL 1", "127.0.0.1", 8765)

    assert "not a modifiable setting" in capsys.readouterr().out
    assert not local_settings.OVERRIDES_JSON_PATH.exists()
    sent.assert_not_called()


def test_config_show_lists_modifiable_settings(local_settings, capsys):
    execute_command("config", "127.0.0.1", 8765)

    out = capsys.readouterr().out
    assert f"MONITOR_INTERVAL = {local_settings.MONITOR_INTERVAL}" in out
    assert "STOP_POLL_INTERVAL" not in out
