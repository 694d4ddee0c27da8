# -*- coding: utf-8 -*-
"""Tests for the ecotrack command line interface."""

import json

import pytest
from typer.testing import CliRunner

from ecotrack import __version__
from ecotrack.cli import app

runner = CliRunner()

LOG = """\
- user_id: alice
  category: transportation
  activity: bus
  quantity: 12
  signed_emission: 1.068
  timestamp: '2025-03-12T08:00:00+00:00'
- user_id: alice
  category: waste
  activity: recycling
  quantity: 5
  signed_emission: -1.0
  timestamp: '2025-03-11T08:00:00+00:00'
- user_id: bob
  category: food
  activity: beef
  quantity: 1
  signed_emission: 27.0
  timestamp: '2025-03-11T19:00:00+00:00'
"""


@pytest.fixture(autouse=True)
def _no_metrics(monkeypatch):
    monkeypatch.setenv("ECOTRACK_ENABLE_METRICS", "false")


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "log.yaml"
    path.write_text(LOG, encoding="utf-8")
    return path


class TestVersionAndParse:

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_parse(self):
        result = runner.invoke(app, ["parse", "I drove 10 km to work"])

        assert result.exit_code == 0
        assert "2.1 kg CO₂ emitted" in result.output

    def test_parse_no_match(self):
        result = runner.invoke(app, ["parse", "hello there"])

        assert result.exit_code == 1
        assert "WARN" in result.output

    def test_parse_overflowing_amount(self):
        result = runner.invoke(app, ["parse", "I drove " + "9" * 400 + " km to work"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)

    def test_parse_json(self):
        result = runner.invoke(app, ["parse", "--json", "I walked 3 km"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["status"] == "calculated"
        assert data["analysis"]["activity"] == "walking"


class TestFactors:

    def test_single_category(self):
        result = runner.invoke(app, ["factors", "--category", "waste"])

        assert result.exit_code == 0
        assert "recycling" in result.output
        assert "driving" not in result.output

    def test_invalid_category(self):
        result = runner.invoke(app, ["factors", "--category", "space"])

        assert result.exit_code != 0


class TestLogCommands:

    def test_badges(self, log_file):
        result = runner.invoke(
            app, ["badges", str(log_file), "--user", "alice", "--as-of", "2025-03-12T12:00:00"],
        )

        assert result.exit_code == 0
        assert "Badges for alice" in result.output
        assert "Total points: 0" in result.output

    def test_badges_all_users(self, log_file):
        result = runner.invoke(app, ["badges", str(log_file), "--as-of", "2025-03-12T12:00:00"])

        assert result.exit_code == 0
        assert "Badges for alice" in result.output
        assert "Badges for bob" in result.output

    def test_missing_log(self, tmp_path):
        result = runner.invoke(app, ["badges", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "FAIL" in result.output

    def test_summary(self, log_file):
        result = runner.invoke(app, ["summary", str(log_file), "--user", "bob"])

        assert result.exit_code == 0
        assert "Emitted: 27.0 kg CO₂" in result.output
        assert "Top emitters: beef" in result.output
