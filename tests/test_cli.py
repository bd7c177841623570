"""Tests for the sharkmind CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from sharkmind import cli
from sharkmind.cli import app

runner = CliRunner()


@pytest.fixture
def db(tmp_path: Path, monkeypatch) -> Path:
    """Isolated working dir and database; no provider keys, so every answer is the canned fallback."""
    for var in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "DEEPSEEK_API_KEY", "SHARKMIND_CONFIG", "SHARKMIND_DB_PATH"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr(cli, "_init_logging", lambda: None)
    return tmp_path / "cli.db"


class TestInitDb:
    def test_creates_and_seeds(self, db: Path):
        result = runner.invoke(app, ["init-db", "--db", str(db)])
        assert result.exit_code == 0
        assert "5 knowledge entries added" in result.output
        assert db.exists()

        again = runner.invoke(app, ["init-db", "--db", str(db)])
        assert "0 knowledge entries added" in again.output


class TestUsers:
    def test_add_user_and_usage(self, db: Path):
        result = runner.invoke(app, ["add-user", "ana@example.com", "--plan", "basic", "--credits", "3", "--db", str(db)])
        assert result.exit_code == 0
        assert "User 1 created" in result.output

        usage = runner.invoke(app, ["usage", "1", "--db", str(db)])
        assert usage.exit_code == 0
        assert "basic" in usage.output
        assert "Credits:  3" in usage.output

    def test_usage_json(self, db: Path):
        runner.invoke(app, ["add-user", "bia@example.com", "--db", str(db)])
        result = runner.invoke(app, ["usage", "1", "--json", "--db", str(db)])
        assert result.exit_code == 0
        assert '"plan": "free"' in result.output
        assert '"credits": 5' in result.output

    def test_usage_unknown_user(self, db: Path):
        result = runner.invoke(app, ["usage", "42", "--db", str(db)])
        assert result.exit_code == 1


class TestAsk:
    def test_fallback_without_keys(self, db: Path):
        result = runner.invoke(app, ["ask", "Analise o WINFUT para day trade hoje", "--mode", "daytrade", "--db", str(db)])
        assert result.exit_code == 0
        assert "daytrade → fallback" in result.output
        assert "stop loss" in result.output
        assert "Provider unavailable" in result.output

    def test_ask_meters_user(self, db: Path):
        runner.invoke(app, ["add-user", "caio@example.com", "--credits", "2", "--db", str(db)])
        result = runner.invoke(app, ["ask", "Como está o IBOVESPA hoje?", "--user", "1", "--json", "--db", str(db)])
        assert result.exit_code == 0
        assert '"provider_id": "fallback"' in result.output

        usage = runner.invoke(app, ["usage", "1", "--db", str(db)])
        assert "Credits:  1" in usage.output
        assert "Messages: 1" in usage.output

    def test_invalid_mode(self, db: Path):
        result = runner.invoke(app, ["ask", "oi", "--mode", "scalper", "--db", str(db)])
        assert result.exit_code != 0


class TestProviders:
    def test_lists_missing_keys(self, db: Path, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-deepseek")
        result = runner.invoke(app, ["providers"])
        assert result.exit_code == 0
        assert "OPENAI_API_KEY not set" in result.output
        assert "DEEPSEEK_API_KEY set" in result.output
