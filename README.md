# mempal

A memory store for coding agents. Notes ("drawers") are kept word for word
in a SQLite database and grouped by *wing* and *room*. The store offers
full-text search, soft deletion and a small knowledge graph of triples with
validity windows. Alongside it sits AAAK, a short line-based notation for
memories that stays legible as plain text.

Everything runs on the Python standard library (Python 3.11 or later).

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The store

```python
from mempal.core.db import Database
from mempal.core.types import Drawer, SourceType, Triple
from mempal.core.utils import (
    build_drawer_id,
    build_triple_id,
    current_timestamp,
    source_file_or_synthetic,
)

with Database("palace.db") as db:
    content = "We chose SQLite FTS5 because it ships with Python."
    drawer_id = build_drawer_id("myapp", "storage", content)
    if not db.drawer_exists(drawer_id):
        db.insert_drawer(Drawer(
            id=drawer_id,
            content=content,
            wing="myapp",
            room="storage",
            source_file=source_file_or_synthetic(drawer_id, None),
            source_type=SourceType.MANUAL,
            added_at=current_timestamp(),
            chunk_index=0,
            importance=3,
        ))

    hits = db.search_fts("sqlite fts5", "myapp", None, 10)   # [(drawer_id, rank), ...]
    print(db.drawer_count(), db.scope_counts())

    db.insert_triple(Triple(
        id=build_triple_id("myapp", "uses", "sqlite"),
        subject="myapp", predicate="uses", object="sqlite",
        valid_from=current_timestamp(), valid_to=None,
        confidence=1.0, source_drawer=drawer_id,
    ))
    print(db.query_triples("myapp", None, None, True))
    print(db.triple_stats())
```

Opening a `Database` creates the parent directory when needed and migrates
the schema to the current version. A database with a newer schema raises
`UnsupportedSchemaVersionError` (a `DbError`). Deletion is soft
(`soft_delete_drawer`), and `purge_deleted` removes soft-deleted rows for
good. `top_drawers` orders drawers by importance and then recency.
`find_tunnels` lists rooms that appear in more than one wing.

Vectors can be stored with `insert_vector`. The table takes its dimension
from the first vector stored and holds each vector as a float32 blob.
`embedding_dim` and `recreate_vectors_table` report and reset that dimension.

`route_room_from_taxonomy` picks a room by matching taxonomy keywords against
content. It returns `"default"` when nothing matches.

## Configuration

`Config.load()` reads `~/.mempal/config.toml`. If the file is missing you get
the defaults: the database at `~/.mempal/palace.db` and the embedding backend
`model2vec`. `Config.load_from(path)` reads any other file. A file that cannot
be read or parsed raises `ConfigError`.

```toml
db_path = "~/.mempal/palace.db"

[embed]
backend = "model2vec"
```

## AAAK

```python
from mempal.aaak.codec import AaakCodec
from mempal.aaak.model import AaakDocument, AaakMeta
from mempal.aaak.signals import analyze
from mempal.aaak.spec import generate_spec

codec = AaakCodec.with_entity_aliases({"Kai": "KAI"})
out = codec.encode(
    "Kai recommended Clerk over Auth0 based on pricing and DX.",
    AaakMeta(wing="myapp", room="auth", date="2026-04-08", source="notes"),
)
text = str(out.document)            # header line plus one zettel line
doc = AaakDocument.parse(text)      # ParseError subclasses on bad input
print(codec.decode(doc))
print(out.report.coverage, out.report.lost_assertions)

print(analyze("We decided to migrate the database").flags)   # ['DECISION', 'TECHNICAL']
print(generate_spec())
```

A document starts with a header line `V{version}|{wing}|{room}|{date}|{source}`.
After it come zettel lines
`{id}:{ENTITIES}|{topics}|"{quote}"|{stars}|{emotions}|{FLAGS}`, tunnels
`T:{left}<->{right}|{label}` and arcs `ARC:{emo1}->{emo2}`.
`generate_spec()` writes out the full description of the notation. It takes
its emotion codes, its flags and a worked example from the codec's own tables.

Entities and topics come from simple heuristics. Entities are capitalised
ASCII words, plus CJK names that end in a place or organisation suffix.
Topics are lower-cased content words. There is no dictionary-based word
segmentation.

`mempal.core.protocol.MEMORY_PROTOCOL` is a text for agents. It tells them
when to search, save and cite memories, and is meant to be shown to them
unchanged.

## What it does not do

- There is no command-line program, and no HTTP or MCP server.
- No embedding model is included. `insert_vector` stores vectors you supply,
  and there is no vector similarity search. The `[embed]` configuration is
  read, but nothing uses it.
- Search is SQLite FTS5 full-text search only.