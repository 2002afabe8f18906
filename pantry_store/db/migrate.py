"""Database migration system.

Applies the dialect's ``*.sql`` files in filename order and records each one
in the ``migrations`` ledger so it is never applied twice. Around the files it
runs the additive upgrades that SQL files cannot express portably: adding
columns missing from legacy tables, giving existing tenants a free-tier
subscription, and verifying the resulting schema.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

from sqlalchemy import Connection, Engine, inspect, insert, select, text
from sqlalchemy.ext.asyncio import AsyncEngine

from pantry_store.database import Base, table_names, utc_now_iso
from pantry_store.errors import MigrationError
from pantry_store.models import MigrationRecord, UserSubscriptionRecord

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).with_name("migrations")

migrations = MigrationRecord.__table__
user_subscriptions = UserSubscriptionRecord.__table__


@dataclass(frozen=True)
class LegacyColumn:
    """A column added after the first release of a table."""

    table: str
    column: str
    ddl_type: str
    backfill: Any = None
    tenant_key: bool = False  # backfill with the configured legacy tenant


# Columns that databases created before multi-tenancy may lack. SQLite cannot
# add NOT NULL to an existing column, so these stay nullable on upgraded
# databases and the application always writes them.
LEGACY_COLUMNS: tuple[LegacyColumn, ...] = (
    LegacyColumn("pantry_items", "user_id", "TEXT", tenant_key=True),
    LegacyColumn("pantry_items", "barcode", "TEXT"),
    LegacyColumn("activities", "user_id", "TEXT", tenant_key=True),
    LegacyColumn("activities", "source", "TEXT", "MANUAL"),
)


def migration_files(dialect_name: str) -> list[Path]:
    """Migration files for a dialect, in the order they must be applied."""
    directory = MIGRATIONS_DIR / dialect_name
    if not directory.exists():
        return []
    return sorted(directory.glob("*.sql"))


def split_statements(sql: str) -> list[str]:
    """Split a migration file into individual statements.

    Full-line ``--`` comments are dropped. Statements must not contain
    semicolons inside string literals.
    """
    lines = [line for line in sql.splitlines() if not line.strip().startswith("--")]
    return [stmt.strip() for stmt in "\n".join(lines).split(";") if stmt.strip()]


# ---------------------------------------------------------------------------
# Steps that run on a synchronous connection (also used via run_sync)
# ---------------------------------------------------------------------------


def create_migrations_table(conn: Connection) -> None:
    migrations.create(conn, checkfirst=True)


def applied_migrations(conn: Connection) -> set[str]:
    return set(conn.execute(select(migrations.c.filename)).scalars())


def record_migration(conn: Connection, filename: str) -> None:
    conn.execute(insert(migrations).values(filename=filename, applied_at=utc_now_iso()))


def upgrade_legacy_columns(conn: Connection, legacy_user_id: str) -> list[str]:
    """Add any missing legacy column and backfill existing rows.

    Tables that do not exist yet are skipped; their migration creates them
    with every column. Returns the ``table.column`` names that were added.
    """
    inspector = inspect(conn)
    added = []
    for legacy in LEGACY_COLUMNS:
        if not inspector.has_table(legacy.table):
            continue
        columns = {col["name"] for col in inspector.get_columns(legacy.table)}
        if legacy.column in columns:
            continue

        logger.info(f"[MIGRATION] Adding column {legacy.table}.{legacy.column}")
        conn.exec_driver_sql(
            f"ALTER TABLE {legacy.table} ADD COLUMN {legacy.column} {legacy.ddl_type}"
        )
        value = legacy_user_id if legacy.tenant_key else legacy.backfill
        if value is not None:
            result = conn.execute(
                text(
                    f"UPDATE {legacy.table} SET {legacy.column} = :value "
                    f"WHERE {legacy.column} IS NULL"
                ),
                {"value": value},
            )
            logger.info(
                f"[MIGRATION] Backfilled {result.rowcount} rows of {legacy.table}.{legacy.column}"
            )
        added.append(f"{legacy.table}.{legacy.column}")
    return added


def backfill_free_tier_subscriptions(conn: Connection) -> int:
    """Give every tenant with pantry items but no subscription the free tier."""
    missing = conn.execute(
        text(
            "SELECT DISTINCT p.user_id FROM pantry_items p "
            "LEFT JOIN user_subscriptions s ON s.user_id = p.user_id "
            "WHERE s.id IS NULL AND p.user_id IS NOT NULL"
        )
    ).scalars().all()

    now = utc_now_iso()
    for user_id in missing:
        conn.execute(
            insert(user_subscriptions).values(
                id=str(uuid4()), user_id=user_id, tier="free", updated_at=now
            )
        )

    if missing:
        logger.info(f"[MIGRATION] User subscriptions: {len(missing)} migrated to free tier")
    return len(missing)


def verify_schema(conn: Connection) -> None:
    """Fail fast when a declared table or column is missing."""
    inspector = inspect(conn)
    for table_name in table_names():
        if not inspector.has_table(table_name):
            raise MigrationError(f"missing required table: {table_name}")
        columns = {col["name"] for col in inspector.get_columns(table_name)}
        expected = {col.name for col in Base.metadata.tables[table_name].columns}
        missing = expected - columns
        if missing:
            missing_list = ", ".join(sorted(missing))
            raise MigrationError(f"schema mismatch for {table_name}; missing columns: {missing_list}")


# ---------------------------------------------------------------------------
# Runners
# ---------------------------------------------------------------------------


def run_migrations(engine: Engine, *, legacy_user_id: str) -> list[str]:
    """Run all pending migrations on a synchronous engine.

    Returns the filenames applied by this call.
    """
    applied_now: list[str] = []
    try:
        with engine.begin() as conn:
            create_migrations_table(conn)
            upgrade_legacy_columns(conn, legacy_user_id)
            applied = applied_migrations(conn)

        for path in migration_files(engine.dialect.name):
            if path.name in applied:
                logger.debug(f"[MIGRATION] Skipping {path.name} (already applied)")
                continue

            logger.info(f"[MIGRATION] Applying {path.name}...")
            with engine.begin() as conn:
                for statement in split_statements(path.read_text(encoding="utf-8")):
                    conn.exec_driver_sql(statement)
                record_migration(conn, path.name)
            applied_now.append(path.name)
            logger.info(f"[MIGRATION] Applied {path.name}")

        with engine.begin() as conn:
            backfill_free_tier_subscriptions(conn)
            verify_schema(conn)
    except Exception as e:
        logger.error(f"[MIGRATION] Migration failed: {e}")
        raise

    return applied_now


async def run_migrations_async(engine: AsyncEngine, *, legacy_user_id: str) -> list[str]:
    """Run all pending migrations on an async engine, awaiting each statement."""
    applied_now: list[str] = []
    try:
        async with engine.begin() as conn:
            await conn.run_sync(create_migrations_table)
            await conn.run_sync(upgrade_legacy_columns, legacy_user_id)
            applied = await conn.run_sync(applied_migrations)

        for path in migration_files(engine.dialect.name):
            if path.name in applied:
                logger.debug(f"[MIGRATION] Skipping {path.name} (already applied)")
                continue

            logger.info(f"[MIGRATION] Applying {path.name}...")
            async with engine.begin() as conn:
                for statement in split_statements(path.read_text(encoding="utf-8")):
                    await conn.exec_driver_sql(statement)
                await conn.execute(
                    insert(migrations).values(filename=path.name, applied_at=utc_now_iso())
                )
            applied_now.append(path.name)
            logger.info(f"[MIGRATION] Applied {path.name}")

        async with engine.begin() as conn:
            await conn.run_sync(backfill_free_tier_subscriptions)
            await conn.run_sync(verify_schema)
    except Exception as e:
        logger.error(f"[MIGRATION] Migration failed: {e}")
        raise

    return applied_now
