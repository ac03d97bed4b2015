"""SQLite storage: SQLModel tables, engine policy, and Alembic migrations."""
