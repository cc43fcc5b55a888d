"""
Versioned SQL migrations for the order database.

Files are named ``vNNN_name.sql`` and applied in version order. Each one runs
in its own transaction together with its ``schema_migrations`` row, so a
broken script leaves the schema at the previous version. An existing database
is snapshotted with SQLite's online backup first and copied back if the run
blows up outside a migration.
"""

import hashlib
import re
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiosqlite

from src.config import get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

MIGRATION_FILE = re.compile(r"^v(?P<version>\d+)_(?P<name>\w+)\.sql$")

REQUIRED_TABLES = (
    "products",
    "packagings",
    "price_tables",
    "price_table_items",
    "sales_orders",
    "sales_order_items",
    "schema_migrations",
)


@dataclass(frozen=True)
class MigrationInfo:
    """A migration script on disk."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = MIGRATION_FILE.match(path.name)
        if match is None:
            raise ValueError(f"Invalid migration filename: {path.name}")
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        return cls(match["version"], match["name"], path, digest[:16])

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")


@dataclass
class MigrationResult:
    """Outcome of one attempted migration."""

    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[MigrationInfo]:
    """Migration scripts in ``directory``, lowest version first."""
    found: list[MigrationInfo] = []
    for path in directory.glob("v*.sql"):
        try:
            found.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("skipping_invalid_migration", path=str(path), error=str(e))
    return sorted(found, key=lambda m: int(m.version))


async def _applied_checksums(conn: aiosqlite.Connection) -> dict[str, str]:
    cursor = await conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_migrations'"
    )
    if await cursor.fetchone() is None:
        return {}
    cursor = await conn.execute("SELECT version, checksum FROM schema_migrations ORDER BY version")
    return {version: checksum for version, checksum in await cursor.fetchall()}


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


async def _apply(conn: aiosqlite.Connection, migration: MigrationInfo) -> MigrationResult:
    logger.info("applying_migration", version=migration.version, name=migration.name)
    started = time.perf_counter()
    try:
        # executescript leaves the explicit BEGIN open until commit/rollback
        await conn.executescript(f"BEGIN;\n{migration.read()}")
        elapsed = _elapsed_ms(started)
        await conn.execute(
            "INSERT OR REPLACE INTO schema_migrations (version, name, checksum, execution_time_ms) "
            "VALUES (?, ?, ?, ?)",
            (migration.version, migration.name, migration.checksum, elapsed),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        logger.error("migration_failed", version=migration.version, name=migration.name, error=str(e))
        return MigrationResult(migration.version, migration.name, False, _elapsed_ms(started), str(e))

    logger.info("migration_applied", version=migration.version, execution_time_ms=elapsed)
    return MigrationResult(migration.version, migration.name, True, elapsed)


async def _copy_database(source_path: Path, target_path: Path) -> None:
    async with aiosqlite.connect(source_path) as source, aiosqlite.connect(target_path) as target:
        await source.backup(target)


async def _snapshot(db_path: Path) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = db_path.with_name(f"{db_path.stem}.backup_{stamp}{db_path.suffix}")
    await _copy_database(db_path, backup_path)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def _discard(backup_path: Path) -> None:
    for leftover in backup_path.parent.glob(f"{backup_path.name}*"):
        leftover.unlink()


async def _migrate(db_path: Path, migrations: list[MigrationInfo]) -> list[MigrationResult]:
    results: list[MigrationResult] = []
    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")
        applied = await _applied_checksums(conn)

        for migration in migrations:
            recorded = applied.get(migration.version)
            if recorded is not None:
                if recorded != migration.checksum:
                    logger.warning(
                        "migration_checksum_changed",
                        version=migration.version,
                        applied=recorded,
                        current=migration.checksum,
                    )
                continue

            result = await _apply(conn, migration)
            results.append(result)
            if not result.success:
                break
    return results


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Bring the database up to the latest schema version.

    Args:
        db_path: Database file, defaults to the configured storage path
        create_backup_before: Snapshot an existing database before migrating

    Returns:
        One result per migration attempted; empty when already current
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    migrations = discover_migrations()
    if not migrations:
        logger.warning("no_migrations_found", directory=str(MIGRATIONS_DIR))
        return []

    backup_path = await _snapshot(db_path) if create_backup_before and db_path.exists() else None
    logger.info("initializing_database", db_path=str(db_path), available=len(migrations))

    try:
        results = await _migrate(db_path, migrations)
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        if backup_path is not None:
            await _copy_database(backup_path, db_path)
            logger.info("database_restored_from_backup", backup_path=str(backup_path))
        raise

    if backup_path is not None:
        if all(r.success for r in results):
            _discard(backup_path)
        else:
            logger.warning("database_backup_kept", backup_path=str(backup_path))
    return results


run_migrations = initialize_database


async def get_migration_status(db_path: Path | None = None) -> dict:
    """Current version with applied and pending migration versions."""
    db_path = db_path or get_settings().storage.db_path
    available = [m.version for m in discover_migrations()]

    applied: dict[str, str] = {}
    if db_path.exists():
        async with aiosqlite.connect(db_path) as conn:
            applied = await _applied_checksums(conn)

    return {
        "exists": db_path.exists(),
        "current_version": max(applied, key=int, default=None),
        "applied_migrations": sorted(applied, key=int),
        "pending_migrations": [v for v in available if v not in applied],
        "total_migrations": len(available),
    }


async def verify_schema_integrity(db_path: Path | None = None) -> list[dict]:
    """Foreign key, page integrity and required table checks."""
    db_path = db_path or get_settings().storage.db_path

    async with aiosqlite.connect(db_path) as conn:
        fk_violations = await (await conn.execute("PRAGMA foreign_key_check")).fetchall()
        (integrity,) = await (await conn.execute("PRAGMA integrity_check")).fetchone()
        tables = {
            name
            for (name,) in await (
                await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            ).fetchall()
        }

    missing = [t for t in REQUIRED_TABLES if t not in tables]
    return [
        {
            "check": "foreign_keys",
            "status": "FAIL" if fk_violations else "PASS",
            "violations": len(fk_violations),
        },
        {
            "check": "integrity",
            "status": "PASS" if integrity == "ok" else "FAIL",
            "result": integrity,
        },
        {
            "check": "required_tables",
            "status": "FAIL" if missing else "PASS",
            "missing": missing,
        },
    ]
