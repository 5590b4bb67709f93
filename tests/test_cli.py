"""Tests for the dockerstats CLI."""

import json

import pytest
from typer.testing import CliRunner

from dockerstats import cli
from dockerstats.collector import StatsCollector
from dockerstats.exceptions import ClientInitError, StatsConnectionError
from dockerstats.models import CollectionResult, ContainerMetrics

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet(monkeypatch, tmp_path):
    """Keep the CLI from reconfiguring logging or reading a local .env."""
    monkeypatch.setattr(cli, "setup_logging", lambda settings: None)
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DOCKER_HOST", raising=False)


@pytest.fixture
def round_result(sample_stats):
    """Return a round with one record and one error."""
    record = ContainerMetrics.model_validate(sample_stats).model_copy(
        update={"id": "a" * 64, "name": "web"}
    )
    error = StatsConnectionError("Error obtaining container stats for b", container_id="b")
    return CollectionResult(results=[record], errors=[error])


@pytest.fixture
def patch_round(monkeypatch, round_result):
    """Make collection rounds return ``round_result`` and record the collector."""
    seen = []

    async def fake_round(self):
        seen.append(self)
        return round_result

    monkeypatch.setattr(StatsCollector, "collect_round", fake_round)
    return seen


class TestCollectCommand:
    """Tests for `dockerstats collect`."""

    def test_json_output(self, patch_round, sample_stats):
        """Test JSON output carries raw values and errors."""
        result = runner.invoke(cli.app, ["collect", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["results"][0]["name"] == "web"
        assert payload["results"][0]["memory_stats"]["usage"] == 6537216
        assert payload["results"][0]["networks"]["eth0"]["rx_bytes"] == 5338
        assert payload["errors"][0]["type"] == "StatsConnectionError"
        assert payload["errors"][0]["details"]["container_id"] == "b"

    def test_table_output(self, patch_round):
        """Test table output lists containers and errors."""
        result = runner.invoke(cli.app, ["collect"])

        assert result.exit_code == 0
        assert "web" in result.stdout
        assert "StatsConnectionError" in result.stdout

    def test_overrides(self, patch_round):
        """Test command-line options override configuration."""
        result = runner.invoke(
            cli.app, ["collect", "--json", "-H", "tcp://docker:2375", "--timeout", "4"]
        )

        assert result.exit_code == 0
        collector = patch_round[0]
        assert collector.docker_url == "tcp://docker:2375"
        assert collector.round_timeout == 4

    def test_no_timeout(self, patch_round):
        """Test --no-timeout disables the round deadline."""
        result = runner.invoke(cli.app, ["collect", "--json", "--no-timeout"])

        assert result.exit_code == 0
        assert patch_round[0].round_timeout is None

    def test_zero_timeout_disables_deadline(self, patch_round):
        """Test --timeout 0 disables the round deadline."""
        result = runner.invoke(cli.app, ["collect", "--json", "--timeout", "0"])

        assert result.exit_code == 0
        assert patch_round[0].round_timeout is None

    @pytest.mark.parametrize(
        "args",
        [["-H", "foo"], ["--timeout=-1"]],
    )
    def test_invalid_overrides_rejected(self, patch_round, args):
        """Test command-line overrides get the same validation as settings."""
        result = runner.invoke(cli.app, ["collect", *args])

        assert result.exit_code == 1
        assert "Invalid option" in result.stdout
        assert patch_round == []

    def test_round_failure_exits_nonzero(self, monkeypatch):
        """Test hard failures exit with status 1."""

        async def failing_round(self):
            raise ClientInitError("Cannot connect to Docker daemon at unix:///nope")

        monkeypatch.setattr(StatsCollector, "collect_round", failing_round)

        result = runner.invoke(cli.app, ["collect"])

        assert result.exit_code == 1
        assert "Cannot connect to Docker daemon" in result.stdout

    def test_invalid_config_exits_nonzero(self, monkeypatch):
        """Test invalid settings exit with status 1."""
        monkeypatch.setenv("DOCKER_HOST", "bogus")

        result = runner.invoke(cli.app, ["collect"])

        assert result.exit_code == 1
        assert "Invalid dockerstats configuration" in result.stdout


class TestWatchCommand:
    """Tests for `dockerstats watch`."""

    def test_count(self, patch_round):
        """Test watch stops after --count rounds."""
        result = runner.invoke(
            cli.app, ["watch", "--count", "2", "--interval", "0.01", "--json"]
        )

        assert result.exit_code == 0
        lines = [line for line in result.stdout.splitlines() if line.strip()]
        assert len(lines) == 2
        assert all(json.loads(line)["results"][0]["name"] == "web" for line in lines)

    def test_watch_no_timeout(self, patch_round):
        """Test watch accepts --no-timeout."""
        result = runner.invoke(
            cli.app, ["watch", "--count", "1", "--interval", "0.01", "--json", "--no-timeout"]
        )

        assert result.exit_code == 0
        assert patch_round[0].round_timeout is None


def test_result_to_dict(round_result):
    """Test result serialization keeps timestamps."""
    payload = cli.result_to_dict(round_result)
    assert payload["started_at"]
    assert payload["finished_at"] is None
    assert "error" not in payload["results"][0]
