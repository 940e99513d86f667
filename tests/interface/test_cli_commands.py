"""Tests for CLI commands: help, config, decks, session and progress subcommands."""

import json

import pytest
from typer.testing import CliRunner

from lexis.consts import VERSION
from lexis.interface.cli import app

runner = CliRunner()

DECK = """\
name: French basics
cards:
  - word: maison
    translation: house
  - word: pomme
    translation: apple
  - word: livre
    translation: book
"""


@pytest.fixture
def cli(mock_home, tmp_path):
    decks = tmp_path / "decks"
    decks.mkdir()
    (decks / "french.yaml").write_text(DECK, encoding="utf-8")
    base = ["--data-dir", str(tmp_path / "data"), "--decks-dir", str(decks), "--seed", "1"]

    def invoke(*args, input=None):
        return runner.invoke(app, [*base, *args], input=input)

    return invoke


def as_json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


# --- Root ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "spaced-repetition vocabulary trainer" in result.stdout
    assert "session" in result.stdout
    assert "progress" in result.stdout


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.stdout.strip() == VERSION


def test_config_show(cli, tmp_path):
    data = as_json(cli("config", "show"))
    assert data["data_dir"] == str((tmp_path / "data").resolve())
    assert data["seed"] == 1


def test_decks_list(cli):
    result = cli("decks", "list")
    assert result.exit_code == 0
    assert "french  (3 cards)" in result.stdout


# --- Session ---


def test_session_flow(cli):
    started = as_json(cli("session", "start", "french", "--round-size", "2", "--json"))
    assert started["session"]["totalCards"] == 3
    assert started["session"]["totalRounds"] == 2

    item = as_json(cli("session", "next", "--json"))
    assert item["type"] == "single"
    card_id = item["cards"][0]["id"]

    answered = as_json(cli("session", "answer", card_id, "not-remember", "--json"))
    assert answered["retryIn"] == 10

    retries = as_json(cli("session", "retries", "--all", "--json"))
    assert retries["retryCards"][0]["cardId"] == card_id

    skipped = as_json(cli("session", "skip-retry", "--json"))
    assert skipped["cardsReady"] == 1

    retry = as_json(cli("session", "next", "--json"))
    assert retry["isRetry"] is True

    status = as_json(cli("session", "status", "--json"))
    assert status["progress"]["position"] == 2

    summary = as_json(cli("session", "complete", "--json"))
    assert summary["summary"]["forgottenCards"] == 1

    assert cli("session", "status").exit_code == 1


def test_session_human_output(cli):
    result = cli("session", "start", "french")
    assert result.exit_code == 0
    assert "3 cards" in result.stdout

    result = cli("session", "next")
    assert "Card 1/3" in result.stdout


def test_start_unknown_deck_fails(cli):
    result = cli("session", "start", "german")
    assert result.exit_code == 1


def test_invalid_round_size_fails(cli):
    result = cli("session", "start", "french", "--round-size", "500", "--json")
    assert result.exit_code == 1
    assert json.loads(result.stdout)["errorKind"] == "validation"


def test_pause_resume_and_undo(cli):
    cli("session", "start", "french")
    token = as_json(cli("session", "pause", "--json"))["resumeToken"]

    resumed = as_json(cli("session", "resume", token, "--json"))
    assert resumed["session"]["status"] == "active"

    undo = cli("session", "undo", "--json")
    assert undo.exit_code == 1


def test_answer_without_session(cli):
    result = cli("session", "answer", "french:maison", "remember")
    assert result.exit_code == 1


# --- Progress ---


def test_progress_commands(cli, tmp_path):
    cli("session", "start", "french")
    card_id = as_json(cli("session", "next", "--json"))["cards"][0]["id"]
    cli("session", "answer", card_id, "remember")

    shown = as_json(cli("progress", "show", card_id))
    assert shown["review_count"] == 1

    assert cli("progress", "suspend", card_id).exit_code == 0
    assert as_json(cli("progress", "show", card_id))["status"] == "suspended"
    assert cli("progress", "unsuspend", card_id).exit_code == 0

    stats = as_json(cli("progress", "stats", "--json"))
    assert stats["total_words"] == 1
    assert stats["current_streak"] == 1

    export_path = tmp_path / "export.json"
    assert cli("progress", "export", "-o", str(export_path)).exit_code == 0

    assert cli("progress", "reset", card_id, "--yes").exit_code == 0
    assert as_json(cli("progress", "show", card_id))["review_count"] == 0

    assert cli("progress", "import", str(export_path), "--yes").exit_code == 0
    assert as_json(cli("progress", "show", card_id))["review_count"] == 1


def test_progress_reset_requires_confirmation(cli):
    result = cli("progress", "reset", "french:maison", input="n\n")
    assert result.exit_code == 1


def test_progress_show_unknown(cli):
    assert cli("progress", "show", "french:nope").exit_code == 1


def test_progress_due(cli):
    assert "Nothing due." in cli("progress", "due").stdout
