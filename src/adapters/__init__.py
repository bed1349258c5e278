"""Adapters connecting the core to gammu-json and to SQLite storage."""
