"""Tests for the command-line entry point."""

import json

import pytest

from main import main
from weaklru.config import reset_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


class TestSimulate:
    def test_tiered_simulation_reports_stats(self, capsys) -> None:
        main(["simulate", "--keys", "500", "--capacity", "16", "--policy", "tiered"])
        result = json.loads(capsys.readouterr().out)
        assert result["policy"]["capacity"] == 16
        assert result["policy"]["resident"] <= 64
        assert result["cache"]["entry_count"] >= result["policy"]["resident"]
        assert result["externally_held"] > 0

    def test_null_simulation_keeps_only_held_values(self, capsys) -> None:
        main(["simulate", "--keys", "200", "--policy", "null", "--hold", "0.5", "--seed", "3"])
        result = json.loads(capsys.readouterr().out)
        assert result["cache"]["entry_count"] == result["externally_held"]

    def test_unknown_policy_is_rejected(self) -> None:
        with pytest.raises(SystemExit):
            main(["simulate", "--policy", "fifo"])


class TestConfigCommand:
    def test_prints_effective_settings(self, capsys) -> None:
        main(["config"])
        data = json.loads(capsys.readouterr().out)
        assert data["cache"]["capacity"] == 8192
        assert data["sweep"]["force_threshold"] == 3000


def test_no_command_exits() -> None:
    with pytest.raises(SystemExit):
        main([])
