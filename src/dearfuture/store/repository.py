"""
JSON file storage for Dear Future.

This module keeps the full capsule collection in memory and mirrors it to a
single JSON file. Every mutation rewrites the whole file.

Design Principles:
    - Write-through: each mutating call performs exactly one full rewrite
    - Atomic swap: the new file is written beside the old one, fsynced and
      renamed over it, so a crash never leaves a half-written file
    - Rollback: if the rewrite fails, the in-memory collection is put back the
      way it was and StorageWriteError is raised
    - Lenient load: a missing file is an empty collection; an unreadable or
      malformed file is also treated as empty, logged, and reported through
      ``load_error`` instead of raising

File layout:
    A pretty-printed JSON array of capsule records, in insertion order:

    [
      {
        "id": 1,
        "title": "...",
        "message": "...",
        "color": "#FFFFFF",
        "unlockDate": "2030-01-01T09:30:00",
        "category": "Reminder",
        "dateCreated": "2025-01-01T12:00:00.123456",
        "isOpened": false,
        "isDeleted": false,
        "deletedAt": null
      }
    ]
"""

import contextlib
import json
import logging
import os
import stat
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

from pydantic import TypeAdapter, ValidationError

from dearfuture.errors import StorageReadError, StorageWriteError
from dearfuture.schema import Capsule

logger = logging.getLogger(__name__)

# Days a capsule may stay in the trash before evict_stale removes it
TRASH_RETENTION_DAYS = 15

_CAPSULE_LIST = TypeAdapter(list[Capsule])
_MUTABLE_FIELDS = tuple(
    name for name, info in Capsule.model_fields.items() if not info.frozen
)


class CapsuleStore:
    """
    File-backed repository of capsules.

    One store owns one file for the lifetime of the process. The store does
    no locking; callers sharing it between threads must serialize access.

    Usage:
        store = CapsuleStore("data/capsules.json")
        store.add(capsule)
        store.soft_delete(capsule.id)
        store.close()

    Or use as context manager:
        with CapsuleStore("data/capsules.json") as store:
            ...
    """

    def __init__(self, path: str | Path) -> None:
        """
        Initialize the store and load the backing file.

        Args:
            path: Path to the JSON file. It is created on the first write.
        """
        self.path = Path(path)
        self.load_error: StorageReadError | None = None
        self._capsules: list[Capsule] = []
        self.load()

    def close(self) -> None:
        """
        Close the store.

        Every mutation is already on disk when it returns, so there is nothing
        left to flush. The collection is kept; a later mutation still rewrites
        the full set of capsules.
        """
        logger.debug("Closing capsule store %s (%d records)", self.path, len(self._capsules))

    def __enter__(self) -> "CapsuleStore":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> list[Capsule]:
        """
        (Re)load the collection from the backing file.

        Never raises. On failure the collection is empty and ``load_error``
        describes what was ignored.

        Returns:
            The loaded capsules (all states)
        """
        self.load_error = None
        self._capsules = []

        if not self.path.exists():
            logger.debug("No capsule file at %s, starting empty", self.path)
            return list(self._capsules)

        try:
            text = self.path.read_text(encoding="utf-8")
            data = json.loads(text) if text.strip() else []
            self._capsules = _CAPSULE_LIST.validate_python(data)
        except (OSError, ValueError, ValidationError) as e:
            self.load_error = StorageReadError(
                operation="load",
                path=str(self.path),
                underlying_error=_summarize(e),
            )
            logger.warning("Ignoring unreadable capsule file %s: %s", self.path, e)
            return list(self._capsules)

        logger.debug("Loaded %d capsules from %s", len(self._capsules), self.path)
        return list(self._capsules)

    def save(self) -> None:
        """
        Rewrite the backing file from the in-memory collection.

        Raises:
            StorageWriteError: If the file cannot be written
        """
        self._write("save")

    def _write(self, operation: str) -> None:
        """Serialize every capsule and atomically replace the backing file."""
        payload = json.dumps(
            [capsule.to_record() for capsule in self._capsules],
            ensure_ascii=False,
            indent=2,
        ) + "\n"

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=self.path.parent,
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                with contextlib.suppress(FileNotFoundError):
                    os.chmod(tmp_name, stat.S_IMODE(self.path.stat().st_mode))
                os.replace(tmp_name, self.path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error("Failed to write %s during %s: %s", self.path, operation, e)
            raise StorageWriteError(
                operation=operation,
                path=str(self.path),
                underlying_error=str(e),
            ) from e

        logger.debug("Wrote %d capsules to %s (%s)", len(self._capsules), self.path, operation)

    @contextmanager
    def _mutation(self, operation: str) -> Generator[None, None, None]:
        """
        Context manager for a single persisted change.

        The body mutates the collection; on exit the file is rewritten once.
        If the body or the write fails, membership and field values are put
        back as they were before the body ran.
        """
        members = list(self._capsules)
        saved = [capsule.model_copy() for capsule in members]
        try:
            yield
            self._write(operation)
        except Exception:
            for original, copy in zip(members, saved):
                for name in _MUTABLE_FIELDS:
                    setattr(original, name, getattr(copy, name))
            self._capsules = members
            raise

    # =========================================================================
    # Queries
    # =========================================================================

    def all(self) -> list[Capsule]:
        """Live (non-deleted) capsules in insertion order."""
        return [c for c in self._capsules if not c.is_deleted]

    def by_id(self, capsule_id: int) -> Capsule | None:
        """The live capsule with this id, or None."""
        for capsule in self._capsules:
            if capsule.id == capsule_id and not capsule.is_deleted:
                return capsule
        return None

    def trashed(self) -> list[Capsule]:
        """Capsules currently in the trash."""
        return [c for c in self._capsules if c.is_deleted]

    def records(self) -> list[Capsule]:
        """Every held capsule regardless of state (id generation, import collisions)."""
        return list(self._capsules)

    def __len__(self) -> int:
        return len(self._capsules)

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, capsule: Capsule) -> None:
        """
        Append a capsule and persist.

        A capsule whose id is already held replaces the held one in place,
        which is how callers persist changes to an existing capsule.

        Raises:
            StorageWriteError: If the file cannot be written (nothing changes)
        """
        with self._mutation("add"):
            index = self._index_of(capsule.id)
            if index is None:
                self._capsules.append(capsule)
            else:
                self._capsules[index] = capsule

    def soft_delete(self, capsule_id: int, now: datetime | None = None) -> None:
        """Move a capsule (in any state) to the trash. Unknown ids are ignored."""
        index = self._index_of(capsule_id)
        if index is None:
            logger.debug("soft_delete: no capsule %d", capsule_id)
            return
        with self._mutation("soft_delete"):
            self._capsules[index].soft_delete(now)

    def restore(self, capsule_id: int) -> None:
        """Take a capsule out of the trash. Unknown ids are ignored."""
        index = self._index_of(capsule_id)
        if index is None:
            logger.debug("restore: no capsule %d", capsule_id)
            return
        with self._mutation("restore"):
            self._capsules[index].restore()

    def permanently_delete(self, capsule_id: int) -> None:
        """Remove a capsule in any state. Unknown ids are ignored."""
        index = self._index_of(capsule_id)
        if index is None:
            logger.debug("permanently_delete: no capsule %d", capsule_id)
            return
        with self._mutation("permanently_delete"):
            del self._capsules[index]

    def evict_stale(
        self,
        now: datetime | None = None,
        threshold_days: int = TRASH_RETENTION_DAYS,
    ) -> int:
        """
        Purge trashed capsules deleted more than ``threshold_days`` ago.

        The file is rewritten once, whether or not anything was removed.

        Returns:
            Number of capsules removed
        """
        now = now or datetime.now()
        with self._mutation("evict_stale"):
            kept = [c for c in self._capsules if not c.is_stale(now, threshold_days)]
            removed = len(self._capsules) - len(kept)
            self._capsules = kept

        if removed:
            logger.info("Evicted %d capsules older than %d days from trash", removed, threshold_days)
        return removed

    def _index_of(self, capsule_id: int) -> int | None:
        for index, capsule in enumerate(self._capsules):
            if capsule.id == capsule_id:
                return index
        return None


def _summarize(error: Exception) -> str:
    """Short one-line description of a load failure."""
    if isinstance(error, ValidationError):
        return f"{error.error_count()} invalid field(s) in capsule records"
    return str(error)
