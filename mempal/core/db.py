"""SQLite-backed storage for drawers, vectors, taxonomy and knowledge-graph triples."""

from __future__ import annotations

import json
import os
import sqlite3
import struct
from pathlib import Path
from typing import Any

from .schema import (
    DbError,
    InvalidSourceTypeError,
    apply_migrations,
    read_user_version,
)
from .types import Drawer, SourceType, TaxonomyEntry, Triple, TripleStats
from .utils import current_timestamp

_DRAWER_COLUMNS = (
    "id, content, wing, room, source_file, source_type, added_at, chunk_index, "
    "COALESCE(importance, 0) AS importance"
)
_TRIPLE_COLUMNS = (
    "id, subject, predicate, object, valid_from, valid_to, confidence, source_drawer"
)
_VECTORS_TABLE_EXISTS_SQL = (
    "SELECT EXISTS(SELECT 1 FROM sqlite_master "
    "WHERE type='table' AND name='drawer_vectors')"
)


def _vec_f32(value: Any) -> bytes:
    """Encode a JSON array of numbers as a packed little-endian float32 blob."""
    if isinstance(value, bytes):
        if len(value) % 4:
            raise ValueError("float32 blob length must be a multiple of 4")
        return value
    items = json.loads(value)
    if not isinstance(items, list) or not all(
        isinstance(item, (int, float)) and not isinstance(item, bool) for item in items
    ):
        raise ValueError("vector must be a JSON array of numbers")
    return struct.pack(f"<{len(items)}f", *items)


def _vec_length(blob: Any) -> int:
    if not isinstance(blob, bytes):
        raise ValueError("vector must be a float32 blob")
    return len(blob) // 4


def _register_vector_functions(conn: sqlite3.Connection) -> None:
    conn.create_function("vec_f32", 1, _vec_f32, deterministic=True)
    conn.create_function("vec_length", 1, _vec_length, deterministic=True)


def _create_vectors_table_sql(dim: int) -> str:
    dim = int(dim)
    if dim < 1:
        raise ValueError("vector dimension must be positive")
    return (
        "CREATE TABLE drawer_vectors ("
        "id TEXT PRIMARY KEY, "
        f"embedding BLOB NOT NULL CHECK (vec_length(embedding) = {dim}))"
    )


def _source_type_from_str(value: str) -> SourceType:
    try:
        return SourceType(value)
    except ValueError:
        raise InvalidSourceTypeError(value) from None


def _drawer_from_row(row: tuple) -> Drawer:
    (
        drawer_id,
        content,
        wing,
        room,
        source_file,
        source_type,
        added_at,
        chunk_index,
        importance,
    ) = row
    return Drawer(
        id=drawer_id,
        content=content,
        wing=wing,
        room=room,
        source_file=source_file,
        source_type=_source_type_from_str(source_type),
        added_at=added_at,
        chunk_index=chunk_index,
        importance=int(importance),
    )


def _triple_from_row(row: tuple) -> Triple:
    return Triple(*row)


def _parse_keywords(raw: str | None) -> list[str]:
    if raw is None:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DbError("failed to parse taxonomy keywords JSON") from exc
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def build_fts_match_query(query: str) -> str | None:
    """An FTS5 query matching every whitespace-separated term, or None if empty."""
    terms = [
        '"' + term.replace('"', '""') + '"' for term in query.split() if term.strip()
    ]
    return " AND ".join(terms) if terms else None


class Database:
    """A connection to the palace database with its schema brought up to date."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        parent = self.path.parent
        if str(parent):
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise DbError(
                    f"failed to create database directory for {parent}"
                ) from exc

        self.conn = sqlite3.connect(self.path, isolation_level=None)
        try:
            _register_vector_functions(self.conn)
            apply_migrations(self.conn)
        except BaseException:
            self.conn.close()
            raise

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # --- Drawers ---

    def insert_drawer(self, drawer: Drawer) -> None:
        self.conn.execute(
            """
            INSERT INTO drawers (
                id, content, wing, room, source_file, source_type,
                added_at, chunk_index, importance
            )
            VALUES (?1, ?2, ?3, ?4, ?5, ?6, ?7, ?8, ?9)
            """,
            (
                drawer.id,
                drawer.content,
                drawer.wing,
                drawer.room,
                drawer.source_file,
                SourceType(drawer.source_type).value,
                drawer.added_at,
                drawer.chunk_index,
                drawer.importance,
            ),
        )

    def top_drawers(self, limit: int) -> list[Drawer]:
        """Live drawers by importance (descending), then recency."""
        if limit < 0:
            raise ValueError("limit must not be negative")
        rows = self.conn.execute(
            f"""
            SELECT {_DRAWER_COLUMNS}
            FROM drawers
            WHERE deleted_at IS NULL
            ORDER BY importance DESC, CAST(added_at AS INTEGER) DESC, id DESC
            LIMIT ?1
            """,
            (limit,),
        ).fetchall()
        return [_drawer_from_row(row) for row in rows]

    def drawer_exists(self, drawer_id: str) -> bool:
        (exists,) = self.conn.execute(
            "SELECT EXISTS(SELECT 1 FROM drawers WHERE id = ?1 AND deleted_at IS NULL)",
            (drawer_id,),
        ).fetchone()
        return exists == 1

    def get_drawer(self, drawer_id: str) -> Drawer | None:
        row = self.conn.execute(
            f"""
            SELECT {_DRAWER_COLUMNS}
            FROM drawers
            WHERE id = ?1 AND deleted_at IS NULL
            """,
            (drawer_id,),
        ).fetchone()
        return None if row is None else _drawer_from_row(row)

    def drawer_count(self) -> int:
        (count,) = self.conn.execute(
            "SELECT COUNT(*) FROM drawers WHERE deleted_at IS NULL"
        ).fetchone()
        return count

    def deleted_drawer_count(self) -> int:
        (count,) = self.conn.execute(
            "SELECT COUNT(*) FROM drawers WHERE deleted_at IS NOT NULL"
        ).fetchone()
        return count

    def scope_counts(self) -> list[tuple[str, str | None, int]]:
        rows = self.conn.execute(
            """
            SELECT wing, room, COUNT(*)
            FROM drawers
            WHERE deleted_at IS NULL
            GROUP BY wing, room
            ORDER BY wing, room
            """
        ).fetchall()
        return [(wing, room, count) for wing, room, count in rows]

    def soft_delete_drawer(self, drawer_id: str) -> bool:
        cursor = self.conn.execute(
            "UPDATE drawers SET deleted_at = ?1 WHERE id = ?2 AND deleted_at IS NULL",
            (current_timestamp(), drawer_id),
        )
        return cursor.rowcount > 0

    def purge_deleted(self, before: str | None = None) -> int:
        """Physically remove soft-deleted drawers (and their vectors)."""
        if before is not None:
            rows = self.conn.execute(
                "SELECT id FROM drawers WHERE deleted_at IS NOT NULL AND deleted_at < ?1",
                (before,),
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT id FROM drawers WHERE deleted_at IS NOT NULL"
            ).fetchall()
        ids = [drawer_id for (drawer_id,) in rows]
        if not ids:
            return 0

        vectors_exist = self._vectors_table_exists()
        for drawer_id in ids:
            if vectors_exist:
                self.conn.execute(
                    "DELETE FROM drawer_vectors WHERE id = ?1", (drawer_id,)
                )
            self.conn.execute("DELETE FROM drawers WHERE id = ?1", (drawer_id,))
        return len(ids)

    def all_active_drawers(self) -> list[tuple[str, str]]:
        """Ids and content of every live drawer, for re-embedding."""
        rows = self.conn.execute(
            "SELECT id, content FROM drawers WHERE deleted_at IS NULL ORDER BY id"
        ).fetchall()
        return [(drawer_id, content) for drawer_id, content in rows]

    # --- Taxonomy ---

    def taxonomy_entries(self) -> list[TaxonomyEntry]:
        rows = self.conn.execute(
            "SELECT wing, room, display_name, keywords FROM taxonomy ORDER BY wing, room"
        ).fetchall()
        return [
            TaxonomyEntry(
                wing=wing,
                room=room,
                display_name=display_name,
                keywords=_parse_keywords(keywords),
            )
            for wing, room, display_name, keywords in rows
        ]

    def upsert_taxonomy_entry(self, entry: TaxonomyEntry) -> None:
        self.conn.execute(
            """
            INSERT INTO taxonomy (wing, room, display_name, keywords)
            VALUES (?1, ?2, ?3, ?4)
            ON CONFLICT(wing, room) DO UPDATE SET
                display_name = excluded.display_name,
                keywords = excluded.keywords
            """,
            (entry.wing, entry.room, entry.display_name, json.dumps(list(entry.keywords))),
        )

    def taxonomy_count(self) -> int:
        (count,) = self.conn.execute("SELECT COUNT(*) FROM taxonomy").fetchone()
        return count

    # --- Vectors ---

    def _vectors_table_exists(self) -> bool:
        (exists,) = self.conn.execute(_VECTORS_TABLE_EXISTS_SQL).fetchone()
        return bool(exists)

    def insert_vector(self, drawer_id: str, vector: list[float]) -> None:
        """Store an embedding; the table takes the dimension of the first vector."""
        values = list(vector)
        if not self._vectors_table_exists():
            self.conn.execute(_create_vectors_table_sql(len(values)))
        self.conn.execute(
            "INSERT INTO drawer_vectors (id, embedding) VALUES (?1, vec_f32(?2))",
            (drawer_id, json.dumps(values)),
        )

    def embedding_dim(self) -> int | None:
        """Dimension of the stored vectors, or None when there are none."""
        row = self.conn.execute(
            "SELECT vec_length(embedding) FROM drawer_vectors LIMIT 1"
        ).fetchone()
        return None if row is None else int(row[0])

    def recreate_vectors_table(self, dim: int) -> None:
        """Drop all vectors and recreate the table with a new dimension."""
        create_sql = _create_vectors_table_sql(dim)
        self.conn.executescript(f"DROP TABLE IF EXISTS drawer_vectors;\n{create_sql};")

    # --- Full-text search ---

    def search_fts(
        self,
        query: str,
        wing: str | None = None,
        room: str | None = None,
        limit: int = 10,
    ) -> list[tuple[str, float]]:
        """BM25-ranked drawer ids matching every term of ``query``."""
        match_query = build_fts_match_query(query)
        if match_query is None:
            return []
        if limit < 0:
            raise ValueError("limit must not be negative")
        rows = self.conn.execute(
            """
            SELECT d.id, fts.rank
            FROM drawers_fts fts
            JOIN drawers d ON d.rowid = fts.rowid
            WHERE drawers_fts MATCH ?1
              AND d.deleted_at IS NULL
              AND (?2 IS NULL OR d.wing = ?2)
              AND (?3 IS NULL OR d.room = ?3)
            ORDER BY fts.rank
            LIMIT ?4
            """,
            (match_query, wing, room, limit),
        ).fetchall()
        return [(drawer_id, float(rank)) for drawer_id, rank in rows]

    # --- Knowledge graph ---

    def insert_triple(self, triple: Triple) -> None:
        self.conn.execute(
            f"""
            INSERT OR REPLACE INTO triples ({_TRIPLE_COLUMNS})
            VALUES (?1, ?2, ?3, ?4, ?5, ?6, ?7, ?8)
            """,
            (
                triple.id,
                triple.subject,
                triple.predicate,
                triple.object,
                triple.valid_from,
                triple.valid_to,
                triple.confidence,
                triple.source_drawer,
            ),
        )

    def query_triples(
        self,
        subject: str | None = None,
        predicate: str | None = None,
        obj: str | None = None,
        active_only: bool = False,
    ) -> list[Triple]:
        active_clause = (
            "AND (valid_to IS NULL OR valid_to > strftime('%s', 'now'))"
            if active_only
            else ""
        )
        rows = self.conn.execute(
            f"""
            SELECT {_TRIPLE_COLUMNS}
            FROM triples
            WHERE (?1 IS NULL OR subject = ?1)
              AND (?2 IS NULL OR predicate = ?2)
              AND (?3 IS NULL OR object = ?3)
              {active_clause}
            ORDER BY confidence DESC, id
            """,
            (subject, predicate, obj),
        ).fetchall()
        return [_triple_from_row(row) for row in rows]

    def invalidate_triple(self, triple_id: str) -> bool:
        cursor = self.conn.execute(
            "UPDATE triples SET valid_to = ?1 WHERE id = ?2 AND valid_to IS NULL",
            (current_timestamp(), triple_id),
        )
        return cursor.rowcount > 0

    def triple_count(self) -> int:
        (count,) = self.conn.execute("SELECT COUNT(*) FROM triples").fetchone()
        return count

    def timeline_for_entity(self, entity: str) -> list[Triple]:
        rows = self.conn.execute(
            f"""
            SELECT {_TRIPLE_COLUMNS}
            FROM triples
            WHERE subject = ?1 OR object = ?1
            ORDER BY COALESCE(valid_from, '0') ASC, id ASC
            """,
            (entity,),
        ).fetchall()
        return [_triple_from_row(row) for row in rows]

    def triple_stats(self) -> TripleStats:
        total = self.triple_count()
        (active,) = self.conn.execute(
            "SELECT COUNT(*) FROM triples WHERE valid_to IS NULL"
        ).fetchone()
        (entities,) = self.conn.execute(
            """
            SELECT COUNT(DISTINCT entity) FROM (
                SELECT subject AS entity FROM triples
                UNION
                SELECT object AS entity FROM triples
            )
            """
        ).fetchone()
        top_predicates = [
            (predicate, count)
            for predicate, count in self.conn.execute(
                "SELECT predicate, COUNT(*) AS cnt FROM triples "
                "GROUP BY predicate ORDER BY cnt DESC LIMIT 5"
            )
        ]
        return TripleStats(
            total=total,
            active=active,
            expired=total - active,
            entities=entities,
            top_predicates=top_predicates,
        )

    # --- Tunnels ---

    def find_tunnels(self) -> list[tuple[str, list[str]]]:
        """Rooms that appear in more than one wing, with those wings."""
        rows = self.conn.execute(
            """
            SELECT room, GROUP_CONCAT(DISTINCT wing) AS wings
            FROM drawers
            WHERE deleted_at IS NULL AND room IS NOT NULL AND room != ''
            GROUP BY room
            HAVING COUNT(DISTINCT wing) > 1
            ORDER BY room
            """
        ).fetchall()
        return [(room, wings.split(",")) for room, wings in rows]

    # --- Metadata ---

    def database_size_bytes(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError as exc:
            raise DbError(f"failed to read database metadata for {self.path}") from exc

    def schema_version(self) -> int:
        return read_user_version(self.conn)