"""Database migrations module."""

from src.infrastructure.storage.sqlite.migrations.migrator import (
    REQUIRED_TABLES,
    MigrationInfo,
    MigrationResult,
    discover_migrations,
    get_migration_status,
    initialize_database,
    run_migrations,
    verify_schema_integrity,
)

__all__ = [
    "REQUIRED_TABLES",
    "MigrationInfo",
    "MigrationResult",
    "discover_migrations",
    "get_migration_status",
    "initialize_database",
    "run_migrations",
    "verify_schema_integrity",
]
