"""SQLite storage: connection, migrations and named queries."""
