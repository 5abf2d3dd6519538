"""
Storage module for Dear Future.

This module provides the JSON-file repository that owns every capsule.
The whole collection lives in memory and is rewritten to disk on every
change.

Design principles:
    - Write-through: the file always reflects the last successful change
    - Atomic: rewrites go to a temporary file that is renamed into place
    - Lenient reads: a missing or corrupt file starts an empty collection
    - Loud writes: failed rewrites raise StorageWriteError
"""

from dearfuture.store.repository import TRASH_RETENTION_DAYS, CapsuleStore

__all__ = [
    "CapsuleStore",
    "TRASH_RETENTION_DAYS",
]
