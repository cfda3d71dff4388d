"""Database errors and the versioned schema migrations."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

CURRENT_SCHEMA_VERSION = 4


class DbError(Exception):
    """Base class for storage errors."""


class UnsupportedSchemaVersionError(DbError):
    """The database was written by a newer schema than this code knows."""

    def __init__(self, current: int, supported: int) -> None:
        super().__init__(
            f"schema version {current} is newer than the supported version {supported}"
        )
        self.current = current
        self.supported = supported


class InvalidSourceTypeError(DbError):
    """A stored source_type value is not one of the known kinds."""

    def __init__(self, value: str) -> None:
        super().__init__(f"unknown source_type in database: {value}")
        self.value = value


@dataclass(frozen=True)
class Migration:
    version: int
    sql: str


def _script(*statements: str) -> str:
    return "".join(f"{statement};\n" for statement in statements)


def _table(name: str, *columns: str) -> str:
    return f"CREATE TABLE IF NOT EXISTS {name} ({', '.join(columns)})"


def _index(name: str, table: str, columns: str) -> str:
    return f"CREATE INDEX IF NOT EXISTS {name} ON {table}({columns})"


def _trigger(name: str, event: str, action: str) -> str:
    return f"CREATE TRIGGER IF NOT EXISTS {name} {event} BEGIN {action}; END"


_SOURCE_TYPES = ", ".join(f"'{kind}'" for kind in ("project", "conversation", "manual"))

# The vector table is created on demand, once the embedding dimension is known.
_SCHEMA_V1 = _script(
    "PRAGMA foreign_keys = ON",
    _table(
        "drawers",
        "id TEXT PRIMARY KEY",
        "content TEXT NOT NULL",
        "wing TEXT NOT NULL",
        "room TEXT",
        "source_file TEXT",
        f"source_type TEXT NOT NULL CHECK(source_type IN ({_SOURCE_TYPES}))",
        "added_at TEXT NOT NULL",
        "chunk_index INTEGER",
    ),
    _table(
        "triples",
        "id TEXT PRIMARY KEY",
        "subject TEXT NOT NULL",
        "predicate TEXT NOT NULL",
        "object TEXT NOT NULL",
        "valid_from TEXT",
        "valid_to TEXT",
        "confidence REAL DEFAULT 1.0",
        "source_drawer TEXT REFERENCES drawers(id)",
    ),
    _table(
        "taxonomy",
        "wing TEXT NOT NULL",
        "room TEXT NOT NULL DEFAULT ''",
        "display_name TEXT",
        "keywords TEXT",
        "PRIMARY KEY (wing, room)",
    ),
    _index("idx_drawers_wing", "drawers", "wing"),
    _index("idx_drawers_wing_room", "drawers", "wing, room"),
    _index("idx_triples_subject", "triples", "subject"),
    _index("idx_triples_object", "triples", "object"),
)

_SOFT_DELETE = _script(
    "ALTER TABLE drawers ADD COLUMN deleted_at TEXT",
    _index("idx_drawers_deleted_at", "drawers", "deleted_at"),
)

# Full-text index kept in step with inserts and soft deletes; a purge after a
# soft delete finds nothing left in the index to remove.
_FULL_TEXT = _script(
    "CREATE VIRTUAL TABLE IF NOT EXISTS drawers_fts USING fts5("
    "content, content='drawers', content_rowid='rowid')",
    "INSERT INTO drawers_fts(rowid, content) "
    "SELECT rowid, content FROM drawers WHERE deleted_at IS NULL",
    _trigger(
        "drawers_ai",
        "AFTER INSERT ON drawers",
        "INSERT INTO drawers_fts(rowid, content) VALUES (new.rowid, new.content)",
    ),
    _trigger(
        "drawers_au_softdelete",
        "AFTER UPDATE OF deleted_at ON drawers "
        "WHEN new.deleted_at IS NOT NULL AND old.deleted_at IS NULL",
        "INSERT INTO drawers_fts(drawers_fts, rowid, content) "
        "VALUES ('delete', old.rowid, old.content)",
    ),
)

_IMPORTANCE = _script("ALTER TABLE drawers ADD COLUMN importance INTEGER DEFAULT 0")

MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, _SCHEMA_V1),
    Migration(2, _SOFT_DELETE),
    Migration(3, _FULL_TEXT),
    Migration(4, _IMPORTANCE),
)


def read_user_version(conn: sqlite3.Connection) -> int:
    (version,) = conn.execute("PRAGMA user_version").fetchone()
    return int(version)


def set_user_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(f"PRAGMA user_version = {int(version)}")


def apply_migrations(conn: sqlite3.Connection) -> None:
    """Bring the schema up to :data:`CURRENT_SCHEMA_VERSION`."""
    current = read_user_version(conn)
    if current > CURRENT_SCHEMA_VERSION:
        raise UnsupportedSchemaVersionError(current, CURRENT_SCHEMA_VERSION)

    for migration in MIGRATIONS:
        if migration.version > current:
            conn.executescript(migration.sql)
            set_user_version(conn, migration.version)