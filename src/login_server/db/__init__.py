"""SQLite persistence for accounts and the session log."""
