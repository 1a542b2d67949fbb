"""
Tests for the command-line interface.
"""

import json

import pytest

from ..cli import main


class TestSimulateCommand:

    def test_prints_summary(self, capsys):
        main(["simulate", "--turns", "2", "--seed", "3"])

        out = capsys.readouterr().out
        assert "Turn 1:" in out
        assert "Turn 2:" in out
        assert "Turns played: 2" in out

    def test_json_summary(self, capsys):
        main(["simulate", "--turns", "3", "--seed", "3", "--json"])

        summary = json.loads(capsys.readouterr().out)
        assert summary["turns_played"] == 3
        assert summary["tokens_used"] <= 3

    def test_no_command(self):
        with pytest.raises(SystemExit):
            main([])
