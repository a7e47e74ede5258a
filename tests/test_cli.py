"""Tests for the typer CLI."""
from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from activity_sync import cli
from activity_sync.cli import app
from activity_sync.client import PROBE_POLICY, WAIT_POLICY
from activity_sync.config import BUFFER_KEY
from activity_sync.store import KeyValueStore

runner = CliRunner()


def invoke(*args: str):
    return runner.invoke(app, list(args))


class TestCli:
    def test_record_requires_enable(self, tmp_path: Path):
        store = str(tmp_path / "s.sqlite3")
        result = invoke("record", "https://a.example/", "A", "--store", store)
        assert result.exit_code == 1
        assert "ignored" in result.output

    def test_enable_record_show_clear(self, tmp_path: Path):
        store = str(tmp_path / "s.sqlite3")
        assert invoke("enable", "--store", store).exit_code == 0
        result = invoke("record", "https://a.example/page", "Page A", "--store", store)
        assert result.exit_code == 0, result.output
        shown = invoke("show", "--store", store)
        assert "https://a.example/page" in shown.output
        assert invoke("clear", "--yes", "--store", store).exit_code == 0
        assert "No buffered activity" in invoke("show", "--store", store).output

    def test_sync_skipped_without_policy(self, tmp_path: Path):
        store = str(tmp_path / "s.sqlite3")
        policy = str(tmp_path / "none.json")
        result = invoke("sync", "--store", store, "--policy", policy)
        assert result.exit_code == 0
        assert "skipped" in result.output

    def test_status(self, tmp_path: Path):
        store = str(tmp_path / "s.sqlite3")
        policy = str(tmp_path / "none.json")
        result = invoke("status", "--store", store, "--policy", policy)
        assert result.exit_code == 0
        assert "Recording enabled: False" in result.output
        assert "Last sync:         never" in result.output

    def test_show_and_status_fail_cleanly_on_corrupt_buffer(self, tmp_path: Path):
        store_path = tmp_path / "s.sqlite3"
        kv = KeyValueStore(store_path)
        try:
            kv.set(BUFFER_KEY, {"not": "a list"})
        finally:
            kv.close()
        policy = str(tmp_path / "none.json")
        for args in (("show",), ("status", "--policy", policy)):
            result = invoke(*args, "--store", str(store_path))
            assert result.exit_code == 1, result.output
            assert "Failed to read buffer" in result.output
            assert isinstance(result.exception, SystemExit)

    def test_probe_wait_retries_without_limit(self, monkeypatch):
        policies = []

        def fake_collector_check(url, policy):
            policies.append(policy)
            return {"hostname": "collector.example"}

        monkeypatch.setattr(cli, "probe_collector", fake_collector_check)
        assert invoke("probe", "https://collector.example/info").exit_code == 0
        result = invoke("probe", "--wait", "https://collector.example/info")
        assert result.exit_code == 0
        assert "collector.example" in result.output
        assert policies == [PROBE_POLICY, WAIT_POLICY]
        assert WAIT_POLICY.forever and not PROBE_POLICY.forever
