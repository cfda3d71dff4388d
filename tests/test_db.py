import sqlite3

import pytest

from mempal.core.db import Database, build_fts_match_query
from mempal.core.schema import (
    CURRENT_SCHEMA_VERSION,
    InvalidSourceTypeError,
    UnsupportedSchemaVersionError,
)
from mempal.core.types import Drawer, SourceType, TaxonomyEntry, Triple


def make_drawer(drawer_id, content="some content", wing="proj", room="auth",
                added_at="100", importance=0, source_type=SourceType.MANUAL):
    return Drawer(
        id=drawer_id,
        content=content,
        wing=wing,
        room=room,
        source_file=f"/src/{drawer_id}.md",
        source_type=source_type,
        added_at=added_at,
        chunk_index=0,
        importance=importance,
    )


def make_triple(triple_id, subject, predicate, obj, valid_from=None,
                valid_to=None, confidence=1.0):
    return Triple(
        id=triple_id,
        subject=subject,
        predicate=predicate,
        object=obj,
        valid_from=valid_from,
        valid_to=valid_to,
        confidence=confidence,
        source_drawer=None,
    )


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "nested" / "palace.db")
    yield database
    database.close()


def test_open_creates_parent_and_migrates(tmp_path):
    path = tmp_path / "a" / "b" / "palace.db"
    with Database(path) as database:
        assert path.exists()
        assert database.schema_version() == 4
        assert database.schema_version() == CURRENT_SCHEMA_VERSION
        assert database.drawer_count() == 0
        assert database.triple_count() == 0


def test_reopen_keeps_data(tmp_path):
    path = tmp_path / "palace.db"
    with Database(path) as database:
        database.insert_drawer(make_drawer("d1"))
    with Database(path) as database:
        assert database.drawer_exists("d1")
        assert database.schema_version() == 4


def test_newer_schema_rejected(tmp_path):
    path = tmp_path / "palace.db"
    Database(path).close()
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA user_version = 99")
    conn.close()
    with pytest.raises(UnsupportedSchemaVersionError) as info:
        Database(path)
    assert info.value.current == 99
    assert info.value.supported == CURRENT_SCHEMA_VERSION


def test_closed_database_rejects_use(tmp_path):
    with Database(tmp_path / "palace.db") as database:
        pass
    with pytest.raises(sqlite3.ProgrammingError):
        database.drawer_count()


def test_insert_and_get_drawer_round_trip(db):
    drawer = make_drawer("d1", content="hello world", importance=3,
                         source_type=SourceType.PROJECT)
    db.insert_drawer(drawer)
    assert db.get_drawer("d1") == drawer
    assert db.get_drawer("missing") is None
    assert db.drawer_exists("d1")
    assert not db.drawer_exists("missing")


def test_duplicate_drawer_id_raises(db):
    db.insert_drawer(make_drawer("d1"))
    with pytest.raises(sqlite3.IntegrityError):
        db.insert_drawer(make_drawer("d1"))


def test_invalid_stored_source_type(db):
    db.conn.execute("PRAGMA ignore_check_constraints = ON")
    db.conn.execute(
        "INSERT INTO drawers (id, content, wing, source_type, added_at) "
        "VALUES ('bad', 'x', 'w', 'bogus', '1')"
    )
    with pytest.raises(InvalidSourceTypeError) as info:
        db.get_drawer("bad")
    assert info.value.value == "bogus"


def test_soft_delete_and_counts(db):
    db.insert_drawer(make_drawer("d1"))
    db.insert_drawer(make_drawer("d2", content="other"))
    assert db.soft_delete_drawer("d1") is True
    assert db.soft_delete_drawer("d1") is False
    assert db.soft_delete_drawer("missing") is False
    assert not db.drawer_exists("d1")
    assert db.get_drawer("d1") is None
    assert db.drawer_count() == 1
    assert db.deleted_drawer_count() == 1


def test_purge_deleted_removes_rows_and_vectors(db):
    db.insert_drawer(make_drawer("d1"))
    db.insert_drawer(make_drawer("d2", content="kept"))
    db.insert_vector("d1", [0.1, 0.2])
    db.insert_vector("d2", [0.3, 0.4])
    db.soft_delete_drawer("d1")

    assert db.purge_deleted("0") == 0
    assert db.deleted_drawer_count() == 1

    assert db.purge_deleted(None) == 1
    assert db.deleted_drawer_count() == 0
    assert db.drawer_count() == 1
    remaining = [row[0] for row in db.conn.execute("SELECT id FROM drawer_vectors")]
    assert remaining == ["d2"]
    assert db.purge_deleted(None) == 0


def test_purge_without_vectors_table(db):
    db.insert_drawer(make_drawer("d1"))
    db.soft_delete_drawer("d1")
    assert db.purge_deleted(None) == 1
    assert db.drawer_count() == 0


def test_top_drawers_ordering_and_limit(db):
    db.insert_drawer(make_drawer("low_new", content="a", added_at="300", importance=1))
    db.insert_drawer(make_drawer("high", content="b", added_at="100", importance=5))
    db.insert_drawer(make_drawer("low_old", content="c", added_at="200", importance=1))
    db.insert_drawer(make_drawer("gone", content="d", added_at="400", importance=5))
    db.soft_delete_drawer("gone")

    ids = [drawer.id for drawer in db.top_drawers(10)]
    assert ids == ["high", "low_new", "low_old"]
    assert [drawer.id for drawer in db.top_drawers(1)] == ["high"]
    assert db.top_drawers(0) == []
    with pytest.raises(ValueError):
        db.top_drawers(-1)


def test_taxonomy_upsert_and_entries(db):
    db.upsert_taxonomy_entry(TaxonomyEntry("proj", "auth", "Auth", ["login", "token"]))
    db.upsert_taxonomy_entry(TaxonomyEntry("proj", "db", None, ["sql"]))
    db.upsert_taxonomy_entry(TaxonomyEntry("proj", "auth", "Authentication", ["oauth"]))

    entries = db.taxonomy_entries()
    assert db.taxonomy_count() == 2
    assert entries == [
        TaxonomyEntry("proj", "auth", "Authentication", ["oauth"]),
        TaxonomyEntry("proj", "db", None, ["sql"]),
    ]


def test_taxonomy_null_or_non_array_keywords(db):
    db.conn.execute("INSERT INTO taxonomy (wing, room) VALUES ('w', 'a')")
    db.conn.execute(
        "INSERT INTO taxonomy (wing, room, keywords) VALUES ('w', 'b', '[\"k\", 3]')"
    )
    db.conn.execute(
        "INSERT INTO taxonomy (wing, room, keywords) VALUES ('w', 'c', '{\"x\": 1}')"
    )
    keywords = [entry.keywords for entry in db.taxonomy_entries()]
    assert keywords == [[], ["k"], []]


def test_vectors_dimension_tracking(db):
    db.insert_drawer(make_drawer("d1"))
    db.insert_vector("d1", [0.5, 0.25, 1.0])
    assert db.embedding_dim() == 3
    with pytest.raises(sqlite3.IntegrityError):
        db.insert_vector("d2", [0.5, 0.25])
    with pytest.raises(sqlite3.IntegrityError):
        db.insert_vector("d1", [0.1, 0.2, 0.3])


def test_recreate_vectors_table(db):
    db.insert_vector("d1", [1.0, 2.0])
    db.recreate_vectors_table(4)
    assert db.embedding_dim() is None
    db.insert_vector("d1", [1.0, 2.0, 3.0, 4.0])
    assert db.embedding_dim() == 4


def test_embedding_dim_without_table_raises(db):
    with pytest.raises(sqlite3.OperationalError):
        db.embedding_dim()


def test_build_fts_match_query():
    assert build_fts_match_query("   ") is None
    assert build_fts_match_query("") is None
    assert build_fts_match_query("rust  sqlite") == '"rust" AND "sqlite"'
    assert build_fts_match_query('say "hi"') == '"say" AND """hi"""'


def test_search_fts_filters(db):
    db.insert_drawer(make_drawer("d1", content="we chose clerk for auth", wing="app"))
    db.insert_drawer(make_drawer("d2", content="clerk pricing notes", wing="other"))
    db.insert_drawer(make_drawer("d3", content="database migration plan", wing="app"))

    ids = {drawer_id for drawer_id, _ in db.search_fts("clerk", None, None, 10)}
    assert ids == {"d1", "d2"}

    scoped = db.search_fts("clerk", "app", None, 10)
    assert [drawer_id for drawer_id, _ in scoped] == ["d1"]

    assert db.search_fts("clerk auth", None, None, 10)[0][0] == "d1"
    assert db.search_fts("clerk", None, "nope", 10) == []
    assert db.search_fts("   ", None, None, 10) == []
    assert len(db.search_fts("clerk", None, None, 1)) == 1


def test_search_fts_skips_soft_deleted(db):
    db.insert_drawer(make_drawer("d1", content="unique keyword zebra"))
    assert [hit[0] for hit in db.search_fts("zebra", None, None, 10)] == ["d1"]
    db.soft_delete_drawer("d1")
    assert db.search_fts("zebra", None, None, 10) == []


def test_triples_query_and_invalidate(db):
    t1 = make_triple("t1", "kai", "prefers", "clerk", confidence=0.9)
    t2 = make_triple("t2", "kai", "uses", "rust", confidence=0.5)
    t3 = make_triple("t3", "ana", "prefers", "clerk", valid_to="9999999999")
    for triple in (t1, t2, t3):
        db.insert_triple(triple)

    assert db.triple_count() == 3
    assert db.query_triples(subject="kai") == [t1, t2]
    assert db.query_triples(predicate="prefers") == [t3, t1]
    assert db.query_triples(obj="rust") == [t2]

    assert db.invalidate_triple("t1") is True
    assert db.invalidate_triple("t1") is False
    assert db.invalidate_triple("t3") is False
    active_ids = [triple.id for triple in db.query_triples(active_only=True)]
    assert active_ids == ["t3", "t2"]
    assert len(db.query_triples(active_only=False)) == 3


def test_insert_triple_replaces_same_id(db):
    db.insert_triple(make_triple("t1", "a", "p", "b"))
    db.insert_triple(make_triple("t1", "a", "p", "c"))
    assert db.triple_count() == 1
    assert db.query_triples()[0].object == "c"


def test_timeline_for_entity(db):
    db.insert_triple(make_triple("t2", "kai", "joined", "team", valid_from="200"))
    db.insert_triple(make_triple("t1", "kai", "met", "ana", valid_from="100"))
    db.insert_triple(make_triple("t3", "bob", "mentors", "kai"))
    db.insert_triple(make_triple("t4", "bob", "likes", "ana", valid_from="50"))

    ids = [triple.id for triple in db.timeline_for_entity("kai")]
    assert ids == ["t3", "t1", "t2"]


def test_triple_stats(db):
    db.insert_triple(make_triple("t1", "kai", "uses", "rust"))
    db.insert_triple(make_triple("t2", "ana", "uses", "go"))
    db.insert_triple(make_triple("t3", "kai", "knows", "ana"))
    db.invalidate_triple("t3")

    stats = db.triple_stats()
    assert stats.total == 3
    assert stats.active == 2
    assert stats.expired == stats.total - stats.active
    assert stats.entities == len({"kai", "rust", "ana", "go"})
    assert stats.top_predicates == [("uses", 2), ("knows", 1)]


def test_find_tunnels_and_scope_counts(db):
    db.insert_drawer(make_drawer("d1", content="1", wing="app", room="auth"))
    db.insert_drawer(make_drawer("d2", content="2", wing="web", room="auth"))
    db.insert_drawer(make_drawer("d3", content="3", wing="app", room="db"))
    db.insert_drawer(make_drawer("d4", content="4", wing="web", room=None))
    db.insert_drawer(make_drawer("d5", content="5", wing="app", room=None))

    tunnels = db.find_tunnels()
    assert [room for room, _ in tunnels] == ["auth"]
    assert sorted(tunnels[0][1]) == ["app", "web"]

    assert db.scope_counts() == [
        ("app", None, 1),
        ("app", "auth", 1),
        ("app", "db", 1),
        ("web", None, 1),
        ("web", "auth", 1),
    ]

    db.soft_delete_drawer("d2")
    assert db.find_tunnels() == []


def test_all_active_drawers(db):
    db.insert_drawer(make_drawer("b", content="second"))
    db.insert_drawer(make_drawer("a", content="first"))
    db.insert_drawer(make_drawer("c", content="third"))
    db.soft_delete_drawer("c")
    assert db.all_active_drawers() == [("a", "first"), ("b", "second")]


def test_database_size_bytes(db):
    assert db.database_size_bytes() == db.path.stat().st_size
    assert db.database_size_bytes() > 0