# ABOUTME: Verifies the behavior CLI registers its commands and runs against a temp store.
# ABOUTME: Uses Typer's CliRunner so no real user data directory is touched.

import tempfile
from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from src.behavior import cli

runner = CliRunner()


def _common(tmpdir):
    return ["--store-dir", str(Path(tmpdir) / "store"), "--config", str(Path(tmpdir) / "missing.yaml")]


def test_cli_has_expected_commands():
    command_names = {cmd.name or cmd.callback.__name__ for cmd in cli.app.registered_commands}
    assert {"track", "insights", "report", "prune", "export"} <= command_names


def test_track_then_read_back():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = runner.invoke(
            cli.app,
            ["track", "--user-id", "u1", "--event-type", "quiz_attempt", "--metadata", '{"subject": "math", "score": 90}']
            + _common(tmpdir),
        )
        assert result.exit_code == 0, result.output
        assert "Recorded" in result.output

        result = runner.invoke(cli.app, ["insights", "--user-id", "u1"] + _common(tmpdir))
        assert result.exit_code == 0, result.output
        assert "Insights for u1" in result.output

        result = runner.invoke(cli.app, ["report", "--user-id", "u1", "--period", "monthly"] + _common(tmpdir))
        assert result.exit_code == 0, result.output
        assert "Quiz attempts" in result.output

        out = Path(tmpdir) / "export" / "u1.parquet"
        result = runner.invoke(cli.app, ["export", "--user-id", "u1", "--out", str(out)] + _common(tmpdir))
        assert result.exit_code == 0, result.output
        frame = pd.read_parquet(out)
        assert list(frame["event_type"]) == ["quiz_attempt"]


def test_track_rejects_bad_input():
    with tempfile.TemporaryDirectory() as tmpdir:
        bad_json = runner.invoke(
            cli.app, ["track", "--user-id", "u1", "--event-type", "page_view", "--metadata", "{nope"] + _common(tmpdir)
        )
        assert bad_json.exit_code != 0

        bad_type = runner.invoke(cli.app, ["track", "--user-id", "u1", "--event-type", "logout"] + _common(tmpdir))
        assert bad_type.exit_code == 1


def test_prune_and_bad_period():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = runner.invoke(cli.app, ["prune", "--retention-days", "30"] + _common(tmpdir))
        assert result.exit_code == 0, result.output
        assert "Pruned 0 events" in result.output

        result = runner.invoke(cli.app, ["report", "--user-id", "u1", "--period", "daily"] + _common(tmpdir))
        assert result.exit_code != 0
