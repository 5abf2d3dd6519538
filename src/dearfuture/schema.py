"""
Schema definitions for Dear Future.

This module defines the Pydantic models used throughout Dear Future:
- Capsule: A message locked until its unlock date, with lifecycle flags
- CapsuleColor/CapsuleStatus/SortKey: Closed vocabularies
- CapsuleStatistics: Read-only report over the live capsules

Design Decisions:
    - JSON keys are camelCase aliases (unlockDate, isOpened, ...) so the
      capsule file keeps its established layout; Python code uses snake_case
    - Date-times are naive local times; aware values are converted on input
    - id and created_at are frozen fields, everything else mutates in place
    - The raw message is only reachable through raw_message; display code
      goes through visible_message()
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dearfuture.errors import CapsuleValidationError


LOCKED_MESSAGE = "This capsule is locked!"

# Formats accepted by parse_datetime, tried in order after ISO-8601
INPUT_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


# =============================================================================
# Enums
# =============================================================================


class CapsuleColor(str, Enum):
    """Fixed palette of capsule colors (hex codes)."""

    RED = "#E74C3C"
    BLUE = "#3498DB"
    GREEN = "#2ECC71"
    YELLOW = "#F1C40F"
    PURPLE = "#9B59B6"
    ORANGE = "#D35400"
    WHITE = "#FFFFFF"

    @classmethod
    def parse(cls, value: str) -> "CapsuleColor":
        """Accept either a palette name ("red") or a hex code ("#e74c3c")."""
        text = value.strip()
        for color in cls:
            if text.upper() in (color.name, color.value):
                return color
        raise CapsuleValidationError(
            field_name="color",
            value=value,
            suggestion="Choose one of: " + ", ".join(c.name.lower() for c in cls),
        )


class CapsuleStatus(str, Enum):
    """Derived lifecycle state of a capsule."""

    LOCKED = "locked"
    OPENED = "opened"
    DELETED = "deleted"


class SortKey(str, Enum):
    """
    Display orderings offered for capsule collections.

    UNORDERED is the fallback for anything unrecognized: every pair compares
    equal, so a stable sort leaves the input order untouched.
    """

    TITLE_ASC = "Title A-Z"
    TITLE_DESC = "Title Z-A"
    UNLOCK_SOONEST = "Unlock Soonest"
    UNLOCK_LATEST = "Unlock Latest"
    CREATED_NEWEST = "Created Newest"
    CREATED_OLDEST = "Created Oldest"
    CATEGORY_ASC = "Category A-Z"
    CATEGORY_DESC = "Category Z-A"
    UNORDERED = "Unordered"

    @classmethod
    def parse(cls, value: "str | SortKey") -> "SortKey":
        """Resolve a label ("Title A-Z") or member name ("title_asc")."""
        if isinstance(value, SortKey):
            return value
        text = value.strip()
        for key in cls:
            if text.lower() in (key.value.lower(), key.name.lower()):
                return key
        return cls.UNORDERED


# =============================================================================
# Helpers
# =============================================================================


def parse_datetime(value: str, field_name: str = "unlockDate") -> datetime:
    """
    Parse user or file input into a naive local datetime.

    Accepts ISO-8601 ("2030-01-01T09:30:00") as well as the shorter
    "YYYY-MM-DD HH:MM" and "YYYY-MM-DD" forms.

    Raises:
        CapsuleValidationError: If no format matches
    """
    text = value.strip()
    try:
        return _to_local(datetime.fromisoformat(text))
    except ValueError:
        pass
    for fmt in INPUT_DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise CapsuleValidationError(
        field_name=field_name,
        value=value,
        suggestion="Use the format YYYY-MM-DD HH:MM",
    )


def _to_local(value: datetime) -> datetime:
    """Drop timezone info, converting aware values to local wall time first."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# =============================================================================
# Capsule
# =============================================================================


class Capsule(BaseModel):
    """
    A time capsule.

    The message stays hidden until the capsule has been opened, which is only
    possible once ``unlock_at`` has passed. Trashing is reversible until the
    capsule is purged or evicted by the store.

    Attributes:
        id: Unique identifier, immutable once assigned
        title: Short title shown in listings
        raw_message: The stored message text (JSON key "message")
        color: Palette color tag
        unlock_at: When the capsule may be opened (JSON key "unlockDate")
        category: Free-form category (e.g. Reminder, Reflection, Event)
        created_at: Creation time, never changed (JSON key "dateCreated")
        is_opened: Whether the capsule has been opened; never reverts
        is_deleted: Whether the capsule is in the trash
        deleted_at: When it was trashed; set iff is_deleted
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: int = Field(..., description="Unique identifier", frozen=True)
    title: str = Field(..., description="Capsule title")
    raw_message: str = Field(..., alias="message", description="Stored message text")
    color: CapsuleColor = Field(default=CapsuleColor.WHITE, description="Palette color")
    unlock_at: datetime = Field(..., alias="unlockDate", description="Unlock time")
    category: str = Field(default="", description="Free-form category")
    created_at: datetime = Field(
        default_factory=datetime.now,
        alias="dateCreated",
        description="Creation time",
        frozen=True,
    )
    is_opened: bool = Field(default=False, alias="isOpened")
    is_deleted: bool = Field(default=False, alias="isDeleted")
    deleted_at: datetime | None = Field(default=None, alias="deletedAt")

    @field_validator("unlock_at", "created_at", "deleted_at")
    @classmethod
    def strip_timezone(cls, v: datetime | None) -> datetime | None:
        """Store all timestamps as naive local time."""
        if v is None:
            return None
        return _to_local(v)

    @model_validator(mode="after")
    def check_deleted_at(self) -> "Capsule":
        """deleted_at must be present exactly when the capsule is trashed."""
        if self.is_deleted and self.deleted_at is None:
            raise ValueError("deletedAt is required when isDeleted is true")
        if not self.is_deleted and self.deleted_at is not None:
            raise ValueError("deletedAt must be null when isDeleted is false")
        return self

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def status(self) -> CapsuleStatus:
        """Derived state; trash takes precedence over opened/locked."""
        if self.is_deleted:
            return CapsuleStatus.DELETED
        if self.is_opened:
            return CapsuleStatus.OPENED
        return CapsuleStatus.LOCKED

    def is_unlocked(self, now: datetime | None = None) -> bool:
        """Whether the unlock time has been reached."""
        now = now or datetime.now()
        return now >= self.unlock_at

    def try_open(self, now: datetime | None = None) -> bool:
        """
        Open the capsule if its unlock time has been reached.

        Returns:
            True if the capsule is (now) opened, False if it is still locked
        """
        if self.is_opened:
            return True
        if not self.is_unlocked(now):
            return False
        self.is_opened = True
        return True

    def soft_delete(self, now: datetime | None = None) -> None:
        """Move to the trash. Already-trashed capsules keep their deleted_at."""
        if self.is_deleted:
            return
        self.deleted_at = now or datetime.now()
        self.is_deleted = True

    def restore(self) -> None:
        """Take the capsule out of the trash."""
        if not self.is_deleted:
            return
        self.is_deleted = False
        self.deleted_at = None

    def is_stale(self, now: datetime, threshold_days: int) -> bool:
        """Whether the capsule has been in the trash longer than the threshold."""
        if not self.is_deleted or self.deleted_at is None:
            return False
        return self.deleted_at < now - timedelta(days=threshold_days)

    def visible_message(self) -> str:
        """The message if opened, otherwise the locked placeholder."""
        return self.raw_message if self.is_opened else LOCKED_MESSAGE

    def to_record(self) -> dict[str, Any]:
        """Serialize to the JSON record layout used on disk and in exports."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Statistics
# =============================================================================


class UnlockTrends(BaseModel):
    """Counts of unlock dates falling in windows around "now"."""

    model_config = ConfigDict(frozen=True)

    last_7_days: int = 0
    last_30_days: int = 0
    last_365_days: int = 0
    next_7_days: int = 0
    next_30_days: int = 0
    next_365_days: int = 0


class CapsuleStatistics(BaseModel):
    """
    Summary of the capsule collection.

    Counts are over live capsules except ``trashed``, which counts the trash.
    """

    model_config = ConfigDict(frozen=True)

    total: int = 0
    locked: int = 0
    opened: int = 0
    trashed: int = 0
    most_common_category: str | None = None
    categories: dict[str, int] = Field(default_factory=dict)
    most_used_color: CapsuleColor | None = None
    colors: dict[str, int] = Field(default_factory=dict)
    unlock_trends: UnlockTrends = Field(default_factory=UnlockTrends)
