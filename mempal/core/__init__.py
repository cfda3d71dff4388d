"""SQLite storage, schema migrations, configuration, shared types and helpers."""