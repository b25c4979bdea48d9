"""SQLite persistence for the commit store."""
