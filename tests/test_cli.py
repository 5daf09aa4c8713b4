"""Tests for the command line helpers."""

from unittest.mock import AsyncMock, patch

import pytest

from error_tracker.__main__ import main

ARGS = [
    "send-test",
    "--dsn", "http://localhost:7071",
    "--app-id", "cli-app",
    "--commit-hash", "abc123",
]


class TestSendTest:
    """Test cases for the send-test command."""

    def test_success(self, capsys):
        with patch("error_tracker.__main__.send_test", new=AsyncMock(return_value="evt-1")) as send:
            assert main(ARGS + ["--message", "ping"]) == 0

        client, message, level = send.call_args[0]
        assert message == "ping"
        assert level == "Warning"
        assert client.config.get("app_id") == "cli-app"
        assert client.config.get("auto_capture") is False

        out = capsys.readouterr().out
        assert "http://localhost:7071/api/ingest-error" in out
        assert "evt-1" in out

    def test_not_delivered(self, capsys):
        with patch("error_tracker.__main__.send_test", new=AsyncMock(return_value=None)):
            assert main(ARGS) == 1

        assert "not delivered" in capsys.readouterr().out

    def test_missing_configuration(self, capsys):
        assert main(["send-test"]) == 1

        assert "dsn is required" in capsys.readouterr().out

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])
