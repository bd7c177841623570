"""Tests for nfo logging setup."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

import pytest

from sharkmind import logging_setup
from sharkmind.env_config import EnvConfig


@pytest.fixture(autouse=True)
def reset_logger(monkeypatch):
    monkeypatch.setattr(logging_setup, "_logger", None)


class TestSetupLogging:
    def test_configures_nfo_once(self):
        fake = MagicMock()
        with patch.object(logging_setup, "configure", return_value=fake) as mock_configure:
            assert logging_setup.setup_logging("debug") is fake
            assert logging_setup.setup_logging("info") is fake
        mock_configure.assert_called_once()
        kwargs = mock_configure.call_args.kwargs
        assert kwargs["name"] == "sharkmind"
        assert kwargs["level"] == "DEBUG"
        assert kwargs["env_prefix"] == "SHARKMIND_NFO_"
        assert kwargs["bridge_stdlib"] is True
        assert len(kwargs["sinks"]) == 1

    def test_markdown_sink_added(self, tmp_path):
        with patch.object(logging_setup, "configure", return_value=MagicMock()) as mock_configure:
            logging_setup.setup_logging(markdown_file=str(tmp_path / "sharkmind.log.md"))
        assert len(mock_configure.call_args.kwargs["sinks"]) == 2

    def test_noisy_loggers_capped(self):
        with patch.object(logging_setup, "configure", return_value=MagicMock()):
            logging_setup.setup_logging("debug")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("LiteLLM").level == logging.WARNING

    def test_level_is_normalized(self):
        with patch.object(logging_setup, "configure", return_value=MagicMock()) as mock_configure:
            logging_setup.setup_logging(" warn ")
        assert mock_configure.call_args.kwargs["level"] == "WARNING"

    def test_unknown_level_and_format_fall_back(self):
        with patch.object(logging_setup, "configure", return_value=MagicMock()) as mock_configure, \
                patch.object(logging_setup, "TerminalSink") as mock_sink:
            logging_setup.setup_logging("verbose", terminal_format="html")
        assert mock_configure.call_args.kwargs["level"] == "INFO"
        assert mock_sink.call_args.kwargs["format"] == "color"


class TestSetupLoggingFromEnv:
    def test_uses_env_config(self, tmp_path):
        env = EnvConfig(log_level="debug", log_file=str(tmp_path / "sm.log.md"), log_format="ascii")
        with patch.object(logging_setup, "configure", return_value=MagicMock()) as mock_configure, \
                patch.object(logging_setup, "TerminalSink") as mock_sink, \
                patch.object(logging_setup, "MarkdownSink") as mock_markdown:
            logging_setup.setup_logging_from_env(env)
        assert mock_configure.call_args.kwargs["level"] == "DEBUG"
        assert mock_sink.call_args.kwargs["format"] == "ascii"
        mock_markdown.assert_called_once_with(file_path=str(tmp_path / "sm.log.md"))

    def test_reads_environment_when_no_config_given(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("SHARKMIND_LOG_LEVEL", "error")
        monkeypatch.delenv("SHARKMIND_NFO_LOG_FILE", raising=False)
        monkeypatch.delenv("SHARKMIND_NFO_FORMAT", raising=False)
        with patch.object(logging_setup, "configure", return_value=MagicMock()) as mock_configure:
            logging_setup.setup_logging_from_env()
        assert mock_configure.call_args.kwargs["level"] == "ERROR"
        assert len(mock_configure.call_args.kwargs["sinks"]) == 1

    def test_cli_initializes_from_env(self):
        from sharkmind import cli

        with patch.object(logging_setup, "setup_logging_from_env") as mock_setup:
            cli._init_logging()
        mock_setup.assert_called_once_with()
