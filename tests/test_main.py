"""Tests for the testdb command line."""

from __future__ import annotations

import pytest

from testdb import main as cli


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TESTDB_HOOK_ERRORS", raising=False)


class TestMain:
    def test_setup_prints_tables(self, monkeypatch, capsys):
        async def fake_setup(config):
            return ("bot", "vote", "voter")

        monkeypatch.setattr(cli, "_setup", fake_setup)
        cli.main(["setup"])
        assert capsys.readouterr().out.splitlines() == ["bot", "vote", "voter"]

    def test_truncate_runs_truncate(self, monkeypatch, capsys):
        calls = []

        async def fake_truncate(config):
            calls.append(config.database.database)
            return ("voter",)

        monkeypatch.setattr(cli, "_truncate", fake_truncate)
        cli.main(["truncate"])
        assert calls == ["good_bot_bad_bot_test"]
        assert capsys.readouterr().out.strip() == "voter"

    def test_failure_exits_nonzero(self, monkeypatch):
        async def failing_setup(config):
            raise RuntimeError("boom")

        monkeypatch.setattr(cli, "_setup", failing_setup)
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["setup"])
        assert exc_info.value.code == 1

    def test_requires_command(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code == 2

    def test_setup_provisions_and_closes(self, server, schema_file, monkeypatch):
        original = cli.TestDatabaseFixture

        def build(config, schema_path=None):
            return original(config, schema_path=schema_file, connect_fn=server.connect)

        monkeypatch.setattr(cli, "TestDatabaseFixture", build)
        cli.main(["setup"])
        assert server.connections[0].closed
        assert server.executed()[-1] == "SET foreign_key_checks = 1;"
