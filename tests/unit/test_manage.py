"""Tests for the management CLI helpers."""

from pathlib import Path

import manage


class TestBuildParser:
    """Tests for argument parsing."""

    def test_seed_takes_a_path(self):
        args = manage.build_parser().parse_args(["seed", "catalog.json"])

        assert args.func is manage.cmd_seed
        assert args.file == Path("catalog.json")

    def test_dev_defaults_to_loopback(self):
        args = manage.build_parser().parse_args(["dev"])

        assert args.host == "127.0.0.1"
        assert args.port == 8000


class TestServerProcess:
    """Tests for PID file handling."""

    def test_missing_pid_file(self, tmp_path: Path):
        assert manage.ServerProcess(tmp_path / "none.pid").pid() is None

    def test_garbage_pid_file(self, tmp_path: Path):
        pid_file = tmp_path / "bad.pid"
        pid_file.write_text("not-a-pid")

        assert manage.ServerProcess(pid_file).pid() is None

    def test_stale_pid_file_removed(self, tmp_path: Path, monkeypatch):
        pid_file = tmp_path / "stale.pid"
        pid_file.write_text("424242")
        monkeypatch.setattr(manage.ServerProcess, "alive", staticmethod(lambda pid: False))

        assert manage.ServerProcess(pid_file).pid() is None
        assert not pid_file.exists()
