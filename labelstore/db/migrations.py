"""
Versioned schema migrations.

Migration files live next to this module in `sql/` and are named
`<version>_<description>.sql`, e.g. `0001_create_labels.sql`. Each file is
applied once, in version order, and recorded in `schema_migrations` with a
SHA-256 checksum of its contents. Editing a file after it was applied is an
error.

Migrations run on the sync engine (psycopg driver).

Usage:
    from labelstore.core.db import get_engine
    from labelstore.db.migrations import run_migrations

    applied = run_migrations(get_engine())
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine

from labelstore.core.errors import MigrationError

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "sql"

# Session-level advisory lock held while migrating; serializes concurrent runners.
MIGRATION_LOCK_KEY = 0x6C6162656C73

_FILENAME_RE = re.compile(r"^(?P<version>\d+)_(?P<description>[A-Za-z0-9_]+)\.sql$")
_DOLLAR_TAG_RE = re.compile(r"\$[A-Za-z_][A-Za-z0-9_]*\$|\$\$")

_CREATE_TRACKING_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version     BIGINT PRIMARY KEY,
    description TEXT NOT NULL,
    checksum    TEXT NOT NULL,
    applied_at  TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""


@dataclass(frozen=True)
class Migration:
    """A single versioned SQL migration."""

    version: int
    description: str
    sql: str
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> Migration:
        match = _FILENAME_RE.match(path.name)
        if not match:
            raise MigrationError(
                f"Invalid migration file name '{path.name}'",
                details={"file": path.name, "expected": "<version>_<description>.sql"},
            )

        content = path.read_bytes()
        return cls(
            version=int(match.group("version")),
            description=match.group("description").replace("_", " "),
            sql=content.decode("utf-8"),
            checksum=hashlib.sha256(content).hexdigest(),
        )


def load_migrations(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """
    Read every migration file in a directory, sorted by version.

    Raises:
        MigrationError: On a malformed file name or a duplicated version
    """
    migrations: dict[int, Migration] = {}
    for path in sorted(directory.glob("*.sql")):
        migration = Migration.from_file(path)
        if migration.version in migrations:
            raise MigrationError(
                f"Duplicate migration version {migration.version}",
                details={"version": migration.version, "file": path.name},
            )
        migrations[migration.version] = migration

    return [migrations[version] for version in sorted(migrations)]


def plan_migrations(
    available: Iterable[Migration], applied: Mapping[int, str]
) -> list[Migration]:
    """
    Work out which migrations still need to run.

    Args:
        available: Migrations found on disk
        applied: version -> checksum, as recorded in schema_migrations

    Returns:
        Pending migrations in version order

    Raises:
        MigrationError: If an applied migration is missing locally or was modified
    """
    by_version = {migration.version: migration for migration in available}

    for version, checksum in sorted(applied.items()):
        migration = by_version.get(version)
        if migration is None:
            raise MigrationError(
                f"Migration {version} was applied but is missing locally",
                details={"version": version},
            )
        if migration.checksum != checksum:
            raise MigrationError(
                f"Migration {version} was modified after it was applied",
                details={
                    "version": version,
                    "applied_checksum": checksum,
                    "local_checksum": migration.checksum,
                },
            )

    return [by_version[version] for version in sorted(by_version) if version not in applied]


def _is_escape_string_prefix(sql: str, quote: int) -> bool:
    """True if the quote at `quote` opens an E'...' string constant."""
    if quote == 0 or sql[quote - 1] not in "eE":
        return False
    return quote == 1 or not (sql[quote - 2].isalnum() or sql[quote - 2] in "_$")


def split_sql_statements(sql: str) -> list[str]:
    """
    Split SQL content into individual statements on top-level semicolons.

    Semicolons inside quoted strings (including E'...' strings with backslash
    escapes), quoted identifiers, dollar-quoted bodies and comments do not
    end a statement. Statements consisting only of comments are dropped.
    """
    statements: list[str] = []
    start = 0
    has_code = False
    i = 0
    n = len(sql)

    while i < n:
        ch = sql[i]

        if sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end == -1 else end + 1
            continue

        if sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue

        if ch in ("'", '"'):
            backslash_escapes = ch == "'" and _is_escape_string_prefix(sql, i)
            end = i + 1
            while end < n:
                if backslash_escapes and sql[end] == "\\":
                    end += 2
                    continue
                if sql[end] == ch:
                    # Doubled quote is an escaped quote.
                    if end + 1 < n and sql[end + 1] == ch:
                        end += 2
                        continue
                    break
                end += 1
            i = end + 1
            has_code = True
            continue

        if ch == "$":
            tag = _DOLLAR_TAG_RE.match(sql, i)
            if tag:
                end = sql.find(tag.group(0), tag.end())
                i = n if end == -1 else end + len(tag.group(0))
                has_code = True
                continue

        if ch == ";":
            if has_code:
                statements.append(sql[start:i].strip())
            start = i + 1
            has_code = False
        elif not ch.isspace():
            has_code = True

        i += 1

    if has_code:
        statements.append(sql[start:].strip())

    return statements


def run_migrations(engine: Engine, directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """
    Apply all pending migrations.

    Each migration runs in its own transaction together with its
    schema_migrations row, so a failed migration leaves no trace.

    Args:
        engine: Sync SQLAlchemy engine
        directory: Directory holding the migration files

    Returns:
        The migrations applied by this call (empty when up to date)

    Raises:
        MigrationError: If the migration set is inconsistent with the database
        sqlalchemy.exc.DBAPIError: If a migration statement fails
    """
    migrations = load_migrations(directory)
    applied_now: list[Migration] = []

    with engine.connect() as conn:
        conn.execute(text("SELECT pg_advisory_lock(:key)"), {"key": MIGRATION_LOCK_KEY})
        conn.commit()

        try:
            with conn.begin():
                conn.execute(text(_CREATE_TRACKING_TABLE))
                rows = conn.execute(text("SELECT version, checksum FROM schema_migrations"))
                applied = {row.version: row.checksum for row in rows}

            pending = plan_migrations(migrations, applied)
            if not pending:
                logger.info(
                    "Database schema is up to date",
                    extra={"applied_count": len(applied)},
                )

            for migration in pending:
                with conn.begin():
                    for statement in split_sql_statements(migration.sql):
                        # No bind parameters, so a literal % reaches the server as is.
                        conn.exec_driver_sql(
                            statement, execution_options={"no_parameters": True}
                        )
                    conn.execute(
                        text(
                            "INSERT INTO schema_migrations (version, description, checksum) "
                            "VALUES (:version, :description, :checksum)"
                        ),
                        {
                            "version": migration.version,
                            "description": migration.description,
                            "checksum": migration.checksum,
                        },
                    )

                logger.info(
                    f"Applied migration {migration.version}: {migration.description}",
                    extra={"version": migration.version},
                )
                applied_now.append(migration)
        finally:
            conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": MIGRATION_LOCK_KEY})
            conn.commit()

    return applied_now
