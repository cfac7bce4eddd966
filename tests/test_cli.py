"""Tests for the command-line interface."""

import pytest
from typer.testing import CliRunner

from wine_pipeline import __version__
from wine_pipeline.cli.main import app
from wine_pipeline.db.engine import reset_engine

runner = CliRunner()


@pytest.fixture
def cli_db(temp_db_path, monkeypatch):
    """Route the CLI's database to a temporary file."""
    monkeypatch.setenv("DATABASE_URL", str(temp_db_path))
    reset_engine()
    yield temp_db_path
    reset_engine()


class TestCli:
    """Tests for CLI commands."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_stats_on_empty_database(self, cli_db) -> None:
        result = runner.invoke(app, ["stats"])
        assert result.exit_code == 0
        assert "Verification rate" in result.output
        assert cli_db.exists()

    def test_ingest_without_ai_key(self, cli_db, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("AI_PROVIDER", "anthropic")
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        wine_list = tmp_path / "wines.txt"
        wine_list.write_text("Ridge Monte Bello 2018\n")

        result = runner.invoke(app, ["ingest", str(wine_list)])

        assert result.exit_code == 1
        assert "ANTHROPIC_API_KEY" in result.output
