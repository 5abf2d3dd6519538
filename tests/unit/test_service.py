"""
Unit tests for CapsuleService.

Tests cover:
- Id generation and add validation
- Views (active, locked, archived, trash)
- Opening, deleting, restoring and purging
- Trash cleanup
- Statistics and sorting
- Import/export through the service
"""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from dearfuture import service as service_module
from dearfuture.errors import CapsuleNotFoundError, SortError, StorageWriteError
from dearfuture.schema import CapsuleColor, SortKey
from dearfuture.service import NOT_FOUND_MESSAGE, STILL_LOCKED_MESSAGE, CapsuleService
from dearfuture.store import CapsuleStore


# =============================================================================
# Creation
# =============================================================================


class TestGenerateId:
    """Tests for generate_id."""

    def test_empty_store_starts_at_one(self, service: CapsuleService) -> None:
        assert service.generate_id() == 1

    def test_highest_plus_two(self, service: CapsuleService, make_capsule) -> None:
        for i in (1, 3, 7):
            service.add_capsule(make_capsule(i))
        assert service.generate_id() == 9

    def test_counts_trashed_capsules(self, service: CapsuleService, make_capsule) -> None:
        """Ids of trashed capsules are never reused."""
        service.add_capsule(make_capsule(1))
        service.add_capsule(make_capsule(5))
        service.delete_capsule(5)
        assert service.generate_id() == 7

    def test_create_sequence(self, service: CapsuleService, now: datetime) -> None:
        ids = [service.create_capsule(f"t{i}", "m", now).id for i in range(3)]
        assert ids == [1, 3, 5]


class TestAddCapsule:
    """Tests for add_capsule validation."""

    def test_valid_capsule_stored(self, service: CapsuleService, make_capsule) -> None:
        assert service.add_capsule(make_capsule(1)) is True
        assert service.get_capsule(1) is not None

    @pytest.mark.parametrize(
        "overrides",
        [{"title": ""}, {"title": "   "}, {"raw_message": ""}, {"raw_message": "\n\t"}],
    )
    def test_blank_fields_rejected(self, service: CapsuleService, make_capsule, overrides: dict) -> None:
        """Blank title or message returns False and stores nothing."""
        assert service.add_capsule(make_capsule(1, **overrides)) is False
        assert service.store.records() == []

    def test_create_capsule_fields(self, service: CapsuleService, now: datetime) -> None:
        unlock = now + timedelta(days=30)
        capsule = service.create_capsule(
            "Birthday", "Happy birthday!", unlock, category="Event", color=CapsuleColor.PURPLE
        )

        assert capsule.title == "Birthday"
        assert capsule.unlock_at == unlock
        assert capsule.category == "Event"
        assert capsule.color == CapsuleColor.PURPLE
        assert capsule.created_at == now
        assert capsule.is_opened is False

    def test_create_capsule_invalid_returns_none(self, service: CapsuleService, now: datetime) -> None:
        assert service.create_capsule("", "message", now) is None
        assert service.all_capsules() == []

    def test_write_failure_propagates(self, temp_dir: Path, make_capsule, now: datetime) -> None:
        service = CapsuleService(CapsuleStore(temp_dir), clock=lambda: now)
        with pytest.raises(StorageWriteError):
            service.add_capsule(make_capsule(1))


# =============================================================================
# Views
# =============================================================================


class TestViews:
    """Tests for the derived capsule views."""

    @pytest.fixture
    def populated(self, service: CapsuleService, make_capsule, now: datetime) -> CapsuleService:
        service.add_capsule(make_capsule(1))  # locked
        service.add_capsule(make_capsule(3, unlock_at=now - timedelta(days=1)))
        service.open_capsule(3)  # archived
        service.add_capsule(make_capsule(5))
        service.delete_capsule(5)  # trash
        return service

    def test_all_capsules(self, populated: CapsuleService) -> None:
        assert [c.id for c in populated.all_capsules()] == [1, 3]

    def test_locked(self, populated: CapsuleService) -> None:
        assert [c.id for c in populated.locked_capsules()] == [1]

    def test_archived(self, populated: CapsuleService) -> None:
        assert [c.id for c in populated.archived_capsules()] == [3]

    def test_trash(self, populated: CapsuleService) -> None:
        assert [c.id for c in populated.deleted_capsules()] == [5]

    def test_get_capsule_skips_trash(self, populated: CapsuleService) -> None:
        assert populated.get_capsule(5) is None

    def test_require_capsule(self, populated: CapsuleService) -> None:
        assert populated.require_capsule(1).id == 1
        with pytest.raises(CapsuleNotFoundError) as exc_info:
            populated.require_capsule(5)
        assert exc_info.value.context["capsule_id"] == 5


# =============================================================================
# Lifecycle
# =============================================================================


class TestOpenCapsule:
    """Tests for open_capsule."""

    def test_open_past_capsule(self, service: CapsuleService, make_capsule, now: datetime) -> None:
        service.add_capsule(make_capsule(1, unlock_at=now - timedelta(days=1)))

        assert service.open_capsule(1) == "Secret message 1"
        assert service.get_capsule(1).is_opened is True

    def test_open_persists(self, service: CapsuleService, make_capsule, now: datetime, data_file: Path) -> None:
        """The opened flag survives a reload and no duplicate record appears."""
        service.add_capsule(make_capsule(1, unlock_at=now - timedelta(days=1)))
        service.open_capsule(1)

        reloaded = CapsuleStore(data_file)
        assert len(reloaded) == 1
        assert reloaded.by_id(1).is_opened is True

    def test_open_future_capsule(self, service: CapsuleService, make_capsule) -> None:
        service.add_capsule(make_capsule(1))

        assert service.open_capsule(1) == STILL_LOCKED_MESSAGE
        assert service.get_capsule(1).is_opened is False

    def test_open_exactly_at_unlock(self, service: CapsuleService, make_capsule, now: datetime) -> None:
        service.add_capsule(make_capsule(1, unlock_at=now))
        assert service.open_capsule(1) == "Secret message 1"

    def test_open_missing(self, service: CapsuleService) -> None:
        assert service.open_capsule(42) == NOT_FOUND_MESSAGE

    def test_open_trashed_is_not_found(self, service: CapsuleService, make_capsule, now: datetime) -> None:
        service.add_capsule(make_capsule(1, unlock_at=now - timedelta(days=1)))
        service.delete_capsule(1)
        assert service.open_capsule(1) == NOT_FOUND_MESSAGE

    def test_reopen_returns_message(self, service: CapsuleService, make_capsule, now: datetime) -> None:
        service.add_capsule(make_capsule(1, unlock_at=now - timedelta(days=1)))
        service.open_capsule(1)
        assert service.open_capsule(1) == "Secret message 1"

    def test_failed_write_leaves_capsule_locked(
        self, service: CapsuleService, make_capsule, now: datetime, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        service.add_capsule(make_capsule(1, unlock_at=now - timedelta(days=1)))

        def fail(operation: str) -> None:
            raise StorageWriteError(operation=operation, path="x", underlying_error="read-only")

        monkeypatch.setattr(service.store, "_write", fail)

        with pytest.raises(StorageWriteError):
            service.open_capsule(1)
        assert service.get_capsule(1).is_opened is False


class TestTrash:
    """Tests for delete/restore/purge/cleanup."""

    def test_delete_stamps_clock_time(self, service: CapsuleService, make_capsule, now: datetime) -> None:
        service.add_capsule(make_capsule(1))
        service.delete_capsule(1)

        trashed = service.deleted_capsules()[0]
        assert trashed.deleted_at == now

    def test_delete_then_restore_round_trip(self, service: CapsuleService, make_capsule) -> None:
        service.add_capsule(make_capsule(1))
        before = service.get_capsule(1).model_dump()

        service.delete_capsule(1)
        service.restore_capsule(1)

        assert service.get_capsule(1).model_dump() == before

    def test_missing_ids_are_silent(self, service: CapsuleService) -> None:
        service.delete_capsule(99)
        service.restore_capsule(99)
        service.permanently_delete_capsule(99)
        assert service.store.records() == []

    def test_permanently_delete(self, service: CapsuleService, make_capsule) -> None:
        service.add_capsule(make_capsule(1))
        service.delete_capsule(1)
        service.permanently_delete_capsule(1)
        assert service.store.records() == []

    def test_cleanup_old_deleted(self, store: CapsuleStore, make_capsule, now: datetime) -> None:
        old = CapsuleService(store, clock=lambda: now - timedelta(days=20))
        old.add_capsule(make_capsule(1))
        old.delete_capsule(1)

        recent = CapsuleService(store, clock=lambda: now - timedelta(days=10))
        recent.add_capsule(make_capsule(3))
        recent.delete_capsule(3)

        service = CapsuleService(store, clock=lambda: now)
        assert service.cleanup_old_deleted_capsules() == 1
        assert [c.id for c in service.deleted_capsules()] == [3]


# =============================================================================
# Statistics
# =============================================================================


class TestStatistics:
    """Tests for statistics."""

    def test_empty(self, service: CapsuleService) -> None:
        stats = service.statistics()
        assert stats.total == 0
        assert stats.most_common_category is None
        assert stats.most_used_color is None
        assert stats.categories == {}

    def test_counts_and_breakdowns(self, service: CapsuleService, make_capsule, now: datetime) -> None:
        service.add_capsule(make_capsule(1, category="Event", color=CapsuleColor.RED))
        service.add_capsule(make_capsule(3, category="Event", color=CapsuleColor.RED))
        service.add_capsule(
            make_capsule(5, category="Reflection", unlock_at=now - timedelta(days=3))
        )
        service.open_capsule(5)
        service.add_capsule(make_capsule(7, category="Trash only"))
        service.delete_capsule(7)

        stats = service.statistics()

        assert stats.total == 3
        assert stats.locked == 2
        assert stats.opened == 1
        assert stats.trashed == 1
        assert stats.categories == {"Event": 2, "Reflection": 1}
        assert stats.most_common_category == "Event"
        assert stats.most_used_color == CapsuleColor.RED
        assert stats.colors == {"#E74C3C": 2, "#3498DB": 1}

    def test_unlock_trends(self, service: CapsuleService, make_capsule, now: datetime) -> None:
        offsets = [-200, -20, -3, 2, 10, 100, 400]
        for i, days in enumerate(offsets, start=1):
            service.add_capsule(make_capsule(i, unlock_at=now + timedelta(days=days)))

        trends = service.statistics().unlock_trends

        assert trends.last_7_days == 1
        assert trends.last_30_days == 2
        assert trends.last_365_days == 3
        assert trends.next_7_days == 1
        assert trends.next_30_days == 2
        assert trends.next_365_days == 3

    def test_unlock_exactly_now_in_no_window(self, service: CapsuleService, make_capsule, now: datetime) -> None:
        service.add_capsule(make_capsule(1, unlock_at=now))
        trends = service.statistics().unlock_trends
        assert trends.last_7_days == 0
        assert trends.next_7_days == 0


# =============================================================================
# Sorting
# =============================================================================


class TestSortCapsules:
    """Tests for sort_capsules."""

    @pytest.fixture
    def sorted_service(self, store: CapsuleStore, make_capsule, now: datetime) -> CapsuleService:
        service = CapsuleService(store, clock=lambda: now, sort_workers=4)
        service.add_capsule(
            make_capsule(1, title="banana", category="b", unlock_at=now + timedelta(days=3),
                         created_at=now - timedelta(days=2))
        )
        service.add_capsule(
            make_capsule(3, title="Apple", category="C", unlock_at=now + timedelta(days=1),
                         created_at=now - timedelta(days=1))
        )
        service.add_capsule(
            make_capsule(5, title="cherry", category="a", unlock_at=now + timedelta(days=2),
                         created_at=now - timedelta(days=3))
        )
        return service

    @pytest.mark.parametrize(
        "key,expected",
        [
            (SortKey.TITLE_ASC, [3, 1, 5]),
            (SortKey.TITLE_DESC, [5, 1, 3]),
            (SortKey.UNLOCK_SOONEST, [3, 5, 1]),
            (SortKey.UNLOCK_LATEST, [1, 5, 3]),
            (SortKey.CREATED_NEWEST, [3, 1, 5]),
            (SortKey.CREATED_OLDEST, [5, 1, 3]),
            (SortKey.CATEGORY_ASC, [5, 1, 3]),
            (SortKey.CATEGORY_DESC, [3, 1, 5]),
            (SortKey.UNORDERED, [1, 3, 5]),
        ],
    )
    def test_orderings(self, sorted_service: CapsuleService, key: SortKey, expected: list[int]) -> None:
        assert [c.id for c in sorted_service.sort_capsules(key)] == expected

    def test_label_string_accepted(self, sorted_service: CapsuleService) -> None:
        assert [c.id for c in sorted_service.sort_capsules("Title A-Z")] == [3, 1, 5]

    def test_unknown_key_keeps_order(self, sorted_service: CapsuleService) -> None:
        assert [c.id for c in sorted_service.sort_capsules("by mood")] == [1, 3, 5]

    def test_excludes_trash(self, sorted_service: CapsuleService) -> None:
        sorted_service.delete_capsule(3)
        assert [c.id for c in sorted_service.sort_capsules(SortKey.TITLE_ASC)] == [1, 5]

    def test_ties_keep_store_order(self, store: CapsuleStore, make_capsule, now: datetime) -> None:
        service = CapsuleService(store, clock=lambda: now, sort_workers=4)
        for i in range(1, 41):
            service.add_capsule(make_capsule(i, category="same"))
        result = service.sort_capsules(SortKey.CATEGORY_ASC)
        assert [c.id for c in result] == list(range(1, 41))

    def test_sort_does_not_touch_store(self, sorted_service: CapsuleService) -> None:
        sorted_service.sort_capsules(SortKey.TITLE_ASC)
        assert [c.id for c in sorted_service.all_capsules()] == [1, 3, 5]

    def test_sort_failure_raises(
        self, sorted_service: CapsuleService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken(a, b):
            raise RuntimeError("comparator exploded")

        monkeypatch.setitem(service_module.COMPARATORS, SortKey.TITLE_ASC, broken)
        with pytest.raises(SortError):
            sorted_service.sort_capsules(SortKey.TITLE_ASC)


# =============================================================================
# Import / Export
# =============================================================================


class TestTransfer:
    """Tests for import/export through the service."""

    def test_export_live_only(self, service: CapsuleService, make_capsule, temp_dir: Path) -> None:
        service.add_capsule(make_capsule(1))
        service.add_capsule(make_capsule(3))
        service.delete_capsule(3)

        assert service.export_capsules(temp_dir / "out.json", "json") == 1

    def test_import_into_empty_store(
        self, service: CapsuleService, make_capsule, temp_dir: Path, store: CapsuleStore, now: datetime
    ) -> None:
        source = CapsuleService(CapsuleStore(temp_dir / "other.json"), clock=lambda: now)
        source.add_capsule(make_capsule(1))
        source.add_capsule(make_capsule(3))
        source.export_capsules(temp_dir / "out.csv", "csv")

        assert service.import_capsules(temp_dir / "out.csv", "csv") == 2
        assert [c.id for c in store.all()] == [1, 3]
        assert store.by_id(1).raw_message == "Secret message 1"

    def test_import_reassigns_colliding_ids(
        self, service: CapsuleService, make_capsule, temp_dir: Path, now: datetime
    ) -> None:
        service.add_capsule(make_capsule(1, title="Mine"))
        service.export_capsules(temp_dir / "out.json", "json")

        assert service.import_capsules(temp_dir / "out.json", "json") == 1

        ids = [c.id for c in service.all_capsules()]
        assert ids == [1, 3]
        assert service.get_capsule(3).title == "Mine"
        assert service.get_capsule(3).created_at == service.get_capsule(1).created_at

    def test_import_skips_blank_records(self, service: CapsuleService, temp_dir: Path) -> None:
        path = temp_dir / "in.json"
        path.write_text(
            '[{"id": 1, "title": "", "message": "m", "unlockDate": "2030-01-01T00:00:00"},'
            ' {"id": 2, "title": "ok", "message": "m", "unlockDate": "2030-01-01T00:00:00"}]'
        )
        assert service.import_capsules(path, "json") == 1
        assert [c.id for c in service.all_capsules()] == [2]
