#!/usr/bin/env python3
"""
Sales Order Desk management CLI.

Usage:
    python manage.py start            Migrate, then run the API in the background
    python manage.py stop             Stop the background API
    python manage.py dev              Run the API in the foreground with reload
    python manage.py status           Report whether the API is running
    python manage.py migrate          Apply pending database migrations
    python manage.py db-status        List applied and pending migrations
    python manage.py verify           Run database integrity checks
    python manage.py seed FILE.json   Load products and price tables
"""

import argparse
import asyncio
import os
import signal
import socket
import subprocess
import sys
import time
from contextlib import suppress
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent
PID_FILE = ROOT_DIR / ".orderdesk.pid"
IS_WINDOWS = os.name == "nt"


class ServerProcess:
    """Background uvicorn process tracked through a PID file."""

    def __init__(self, pid_file: Path = PID_FILE):
        self.pid_file = pid_file

    @staticmethod
    def alive(pid: int) -> bool:
        if IS_WINDOWS:
            listing = subprocess.run(
                ["tasklist", "/FI", f"PID eq {pid}", "/NH"], capture_output=True, text=True
            )
            return str(pid) in listing.stdout
        try:
            os.kill(pid, 0)
        except OSError:
            return False
        return True

    def pid(self) -> int | None:
        """PID of the running server; a stale PID file is removed."""
        try:
            pid = int(self.pid_file.read_text().strip())
        except (FileNotFoundError, ValueError):
            return None
        if self.alive(pid):
            return pid
        self.pid_file.unlink(missing_ok=True)
        return None

    def spawn(self, command: list[str]) -> int:
        extra = {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP} if IS_WINDOWS else {}
        proc = subprocess.Popen(command, cwd=str(ROOT_DIR), **extra)
        self.pid_file.write_text(str(proc.pid))
        return proc.pid

    def terminate(self, pid: int, wait_seconds: float = 3.0) -> bool:
        """Signal the server and wait for it to exit."""
        if IS_WINDOWS:
            subprocess.run(["taskkill", "/PID", str(pid), "/T", "/F"], capture_output=True)
        else:
            with suppress(ProcessLookupError):
                os.kill(pid, signal.SIGTERM)
        deadline = time.monotonic() + wait_seconds
        while time.monotonic() < deadline and self.alive(pid):
            time.sleep(0.1)
        self.pid_file.unlink(missing_ok=True)
        return not self.alive(pid)


def port_in_use(port: int, host: str = "127.0.0.1") -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return True
    return False


def uvicorn_command(host: str, port: int, reload: bool = False) -> list[str]:
    command = [sys.executable, "-m", "uvicorn", "src.api.main:app", "--host", host, "--port", str(port)]
    return command + ["--reload"] if reload else command


def _setup() -> None:
    from src.config import configure_logging

    configure_logging()


def cmd_start(args: argparse.Namespace) -> int:
    server = ServerProcess()
    if (pid := server.pid()) is not None:
        print(f"Server already running (PID {pid}). Use 'stop' first.")
        return 1
    if port_in_use(args.port):
        print(f"Error: port {args.port} is in use.")
        return 1
    if cmd_migrate(args) != 0:
        return 1

    pid = server.spawn(uvicorn_command(args.host, args.port))
    print(f"Server started (PID {pid}) at http://{args.host}:{args.port}/api")
    return 0


def cmd_stop(args: argparse.Namespace) -> int:
    server = ServerProcess()
    pid = server.pid()
    if pid is None:
        print("Server is not running.")
        return 0
    print(f"Stopping server (PID {pid})...")
    if server.terminate(pid):
        print("Server stopped.")
        return 0
    print("Warning: server did not exit within 3 seconds.")
    return 1


def cmd_dev(args: argparse.Namespace) -> int:
    print(f"Starting API on {args.host}:{args.port} with reload...")
    try:
        return subprocess.run(uvicorn_command(args.host, args.port, reload=True), cwd=str(ROOT_DIR)).returncode
    except KeyboardInterrupt:
        return 0


def cmd_status(args: argparse.Namespace) -> int:
    pid = ServerProcess().pid()
    if pid is not None:
        print(f"Server is running (PID {pid}).")
    elif port_in_use(args.port):
        print(f"No PID file, but port {args.port} is taken by another process.")
    else:
        print(f"Server is not running (port {args.port} is free).")
    return 0


def cmd_migrate(args: argparse.Namespace) -> int:
    from src.infrastructure.storage.sqlite.migrations import initialize_database

    _setup()
    results = asyncio.run(initialize_database(create_backup_before=not args.no_backup))
    if not results:
        print("Database is up to date.")
    for result in results:
        outcome = "ok" if result.success else f"FAILED ({result.error})"
        print(f"  v{result.version}_{result.name}: {outcome} [{result.execution_time_ms}ms]")
    return 0 if all(r.success for r in results) else 1


def cmd_db_status(args: argparse.Namespace) -> int:
    from src.infrastructure.storage.sqlite.migrations import get_migration_status

    status = asyncio.run(get_migration_status())
    if status["exists"]:
        print(f"Current version: {status['current_version'] or 'none'}")
        print(f"Applied: {', '.join(status['applied_migrations']) or 'none'}")
    else:
        print("Database does not exist yet.")
    print(f"Pending: {', '.join(status['pending_migrations']) or 'none'}")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    from src.infrastructure.storage.sqlite.migrations import verify_schema_integrity

    checks = asyncio.run(verify_schema_integrity())
    for check in checks:
        print(f"  {check['check']}: {check['status']}")
    return 0 if all(c["status"] == "PASS" for c in checks) else 1


def cmd_seed(args: argparse.Namespace) -> int:
    from src.infrastructure.storage.sqlite import SQLiteCatalogStore, close_pool
    from src.infrastructure.storage.sqlite.catalog_seed import load_catalog_file
    from src.infrastructure.storage.sqlite.migrations import initialize_database

    _setup()

    async def run() -> tuple[int, int]:
        await initialize_database(create_backup_before=False)
        try:
            return await load_catalog_file(args.file, SQLiteCatalogStore())
        finally:
            await close_pool()

    products, prices = asyncio.run(run())
    print(f"Loaded {products} products and {prices} prices from {args.file}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sales Order Desk management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def server_args(p: argparse.ArgumentParser, host: str) -> None:
        p.add_argument("--host", default=host, help=f"Bind host (default: {host})")
        p.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")

    p = sub.add_parser("start", help="Migrate and start the API in the background")
    server_args(p, "0.0.0.0")
    p.add_argument("--no-backup", action="store_true", help="Skip the pre-migration backup")
    p.set_defaults(func=cmd_start)

    sub.add_parser("stop", help="Stop the background API").set_defaults(func=cmd_stop)

    p = sub.add_parser("dev", help="Run the API with auto-reload")
    server_args(p, "127.0.0.1")
    p.set_defaults(func=cmd_dev)

    p = sub.add_parser("status", help="Check whether the API is running")
    p.add_argument("--port", type=int, default=8000, help="Port to check (default: 8000)")
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("migrate", help="Apply pending migrations")
    p.add_argument("--no-backup", action="store_true", help="Skip the pre-migration backup")
    p.set_defaults(func=cmd_migrate)

    sub.add_parser("db-status", help="Show migration status").set_defaults(func=cmd_db_status)
    sub.add_parser("verify", help="Run database integrity checks").set_defaults(func=cmd_verify)

    p = sub.add_parser("seed", help="Load products and price tables from JSON")
    p.add_argument("file", type=Path, help="Catalog file")
    p.set_defaults(func=cmd_seed)

    return parser


def main() -> None:
    args = build_parser().parse_args()
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
