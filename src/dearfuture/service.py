"""
Capsule lifecycle service.

The service is the only entry point the CLI uses. It validates input,
assigns ids, derives the locked/archived/trash views and statistics, and
hands every mutation to the CapsuleStore.

Not-found handling differs per operation and callers rely on it:
    - open_capsule returns the text "Capsule not found."
    - delete/restore/permanently_delete silently do nothing
    - require_capsule raises CapsuleNotFoundError
Storage write failures are never swallowed; StorageWriteError propagates.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from dearfuture import transfer
from dearfuture.errors import CapsuleNotFoundError
from dearfuture.schema import (
    Capsule,
    CapsuleColor,
    CapsuleStatistics,
    SortKey,
    UnlockTrends,
)
from dearfuture.sorting import Comparator, parallel_merge_sort
from dearfuture.store import TRASH_RETENTION_DAYS, CapsuleStore

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Capsule not found."
STILL_LOCKED_MESSAGE = "This capsule is still locked!"

# Gap between the highest existing id and the next one handed out.
# Existing capsule files were written with this spacing.
ID_STEP = 2


def _cmp(a: object, b: object) -> int:
    return (a > b) - (a < b)  # type: ignore[operator]


COMPARATORS: dict[SortKey, Comparator] = {
    SortKey.TITLE_ASC: lambda a, b: _cmp(a.title.casefold(), b.title.casefold()),
    SortKey.TITLE_DESC: lambda a, b: _cmp(b.title.casefold(), a.title.casefold()),
    SortKey.UNLOCK_SOONEST: lambda a, b: _cmp(a.unlock_at, b.unlock_at),
    SortKey.UNLOCK_LATEST: lambda a, b: _cmp(b.unlock_at, a.unlock_at),
    SortKey.CREATED_NEWEST: lambda a, b: _cmp(b.created_at, a.created_at),
    SortKey.CREATED_OLDEST: lambda a, b: _cmp(a.created_at, b.created_at),
    SortKey.CATEGORY_ASC: lambda a, b: _cmp(a.category.casefold(), b.category.casefold()),
    SortKey.CATEGORY_DESC: lambda a, b: _cmp(b.category.casefold(), a.category.casefold()),
    SortKey.UNORDERED: lambda a, b: 0,
}


class CapsuleService:
    """
    Business operations over a CapsuleStore.

    Usage:
        with CapsuleStore("data/capsules.json") as store:
            service = CapsuleService(store)
            capsule = service.create_capsule("Hi", "Hello, future me", unlock_at)
            print(service.open_capsule(capsule.id))
    """

    def __init__(
        self,
        store: CapsuleStore,
        clock: Callable[[], datetime] = datetime.now,
        sort_workers: int | None = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            store: Repository that owns the capsules
            clock: Source of "now" (naive local time)
            sort_workers: Worker count for sorting (defaults to CPU count)
        """
        self._store = store
        self._clock = clock
        self._sort_workers = sort_workers

    @property
    def store(self) -> CapsuleStore:
        """The underlying repository."""
        return self._store

    # =========================================================================
    # Creation
    # =========================================================================

    def add_capsule(self, capsule: Capsule) -> bool:
        """
        Add a capsule if its title and message are non-blank.

        Returns:
            True if stored, False if validation failed (nothing is stored)
        """
        if not capsule.title.strip() or not capsule.raw_message.strip():
            logger.info("Rejected capsule %d: empty title or message", capsule.id)
            return False
        self._store.add(capsule)
        logger.info("Added capsule %d", capsule.id)
        return True

    def generate_id(self) -> int:
        """Next id: highest id held (trash included) plus ID_STEP, or 1."""
        ids = [capsule.id for capsule in self._store.records()]
        if not ids:
            return 1
        return max(ids) + ID_STEP

    def create_capsule(
        self,
        title: str,
        message: str,
        unlock_at: datetime,
        category: str = "",
        color: CapsuleColor = CapsuleColor.WHITE,
    ) -> Capsule | None:
        """Build a capsule with a fresh id and add it; None if validation failed."""
        capsule = Capsule(
            id=self.generate_id(),
            title=title,
            raw_message=message,
            unlock_at=unlock_at,
            category=category,
            color=color,
            created_at=self._clock(),
        )
        return capsule if self.add_capsule(capsule) else None

    # =========================================================================
    # Views
    # =========================================================================

    def get_capsule(self, capsule_id: int) -> Capsule | None:
        """The live capsule with this id, or None."""
        return self._store.by_id(capsule_id)

    def require_capsule(self, capsule_id: int) -> Capsule:
        """
        The live capsule with this id.

        Raises:
            CapsuleNotFoundError: If no live capsule has this id
        """
        capsule = self._store.by_id(capsule_id)
        if capsule is None:
            raise CapsuleNotFoundError(capsule_id=capsule_id)
        return capsule

    def all_capsules(self) -> list[Capsule]:
        return self._store.all()

    def locked_capsules(self) -> list[Capsule]:
        """Live capsules that have not been opened."""
        return [c for c in self._store.all() if not c.is_opened]

    def archived_capsules(self) -> list[Capsule]:
        """Live capsules that have been opened."""
        return [c for c in self._store.all() if c.is_opened]

    def deleted_capsules(self) -> list[Capsule]:
        """Capsules in the trash."""
        return self._store.trashed()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def open_capsule(self, capsule_id: int) -> str:
        """
        Try to open a capsule.

        Returns:
            The message on success, otherwise NOT_FOUND_MESSAGE or
            STILL_LOCKED_MESSAGE

        Raises:
            StorageWriteError: If the opened state could not be saved
        """
        capsule = self._store.by_id(capsule_id)
        if capsule is None:
            return NOT_FOUND_MESSAGE

        opened = capsule.model_copy()
        if not opened.try_open(self._clock()):
            return STILL_LOCKED_MESSAGE

        self._store.add(opened)
        logger.info("Opened capsule %d", capsule_id)
        return opened.visible_message()

    def delete_capsule(self, capsule_id: int) -> None:
        self._store.soft_delete(capsule_id, self._clock())

    def restore_capsule(self, capsule_id: int) -> None:
        self._store.restore(capsule_id)

    def permanently_delete_capsule(self, capsule_id: int) -> None:
        self._store.permanently_delete(capsule_id)

    def cleanup_old_deleted_capsules(self) -> int:
        """Purge capsules that have been in the trash too long."""
        return self._store.evict_stale(self._clock(), TRASH_RETENTION_DAYS)

    # =========================================================================
    # Reports
    # =========================================================================

    def statistics(self) -> CapsuleStatistics:
        """Counts, category/color breakdowns and unlock trends."""
        now = self._clock()
        live = self._store.all()

        categories = Counter(c.category for c in live)
        colors = Counter(c.color for c in live)

        def unlocked_within(days: int) -> int:
            start = now - timedelta(days=days)
            return sum(1 for c in live if start < c.unlock_at < now)

        def unlocking_within(days: int) -> int:
            end = now + timedelta(days=days)
            return sum(1 for c in live if now < c.unlock_at < end)

        return CapsuleStatistics(
            total=len(live),
            locked=sum(1 for c in live if not c.is_opened),
            opened=sum(1 for c in live if c.is_opened),
            trashed=len(self._store.trashed()),
            most_common_category=categories.most_common(1)[0][0] if categories else None,
            categories=dict(categories),
            most_used_color=colors.most_common(1)[0][0] if colors else None,
            colors={color.value: count for color, count in colors.items()},
            unlock_trends=UnlockTrends(
                last_7_days=unlocked_within(7),
                last_30_days=unlocked_within(30),
                last_365_days=unlocked_within(365),
                next_7_days=unlocking_within(7),
                next_30_days=unlocking_within(30),
                next_365_days=unlocking_within(365),
            ),
        )

    def sort_capsules(self, key: SortKey | str) -> list[Capsule]:
        """
        Live capsules ordered by ``key``.

        Unrecognized keys sort as SortKey.UNORDERED (input order kept).

        Raises:
            SortError: If the concurrent sort fails
        """
        sort_key = SortKey.parse(key)
        return parallel_merge_sort(
            self._store.all(),
            COMPARATORS[sort_key],
            max_workers=self._sort_workers,
        )

    # =========================================================================
    # Import / Export
    # =========================================================================

    def export_capsules(self, path: Path | str, fmt: str) -> int:
        """Write all live capsules to ``path``; returns how many."""
        return transfer.export_capsules(self._store.all(), path, fmt)

    def import_capsules(self, path: Path | str, fmt: str) -> int:
        """
        Add capsules from ``path`` one by one through add_capsule.

        Imported ids that are already held get a fresh id.

        Returns:
            Number of capsules added (invalid ones are skipped)
        """
        added = 0
        for capsule in transfer.import_capsules(path, fmt):
            if any(held.id == capsule.id for held in self._store.records()):
                capsule = capsule.model_copy(update={"id": self.generate_id()})
            if self.add_capsule(capsule):
                added += 1
        return added
