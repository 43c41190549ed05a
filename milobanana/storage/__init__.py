"""Record store."""

from milobanana.storage.sqlite_store import (
    GenerationSettings,
    PromptRecord,
    SqliteRecordStore,
    UserRecord,
)

__all__ = ["GenerationSettings", "PromptRecord", "SqliteRecordStore", "UserRecord"]
