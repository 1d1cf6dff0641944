"""SQLite storage: engine policy, ORM tables and migrations."""
