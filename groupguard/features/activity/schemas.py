"""
Pydantic schemas for activity log queries and writes.
"""
from datetime import date, datetime, time, timezone
from math import ceil
from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from groupguard.features.activity.models import ActivityAction


MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20
END_OF_DAY = time(23, 59, 59, 999000)
# Keeps the row offset within a signed 64-bit integer
MAX_PAGE = (2**63 - 1) // MAX_PAGE_SIZE


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ============================================================================
# Entries
# ============================================================================

class ActorSummary(BaseModel):
    id: str
    name: str | None = None
    email: str


class GroupSummary(BaseModel):
    id: str
    name: str


class ActivityLogEntry(BaseModel):
    """Serialized log entry with actor and group denormalized."""
    id: str
    action: ActivityAction
    description: str
    metadata: Dict[str, Any] | None = None
    timestamp: datetime
    user: ActorSummary | None = None
    group: GroupSummary | None = None

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        # ISO-8601 in UTC with millisecond precision, e.g. 2024-01-05T23:59:59.999Z
        return to_naive_utc(value).isoformat(timespec="milliseconds") + "Z"


# ============================================================================
# Filters and pagination
# ============================================================================

class ActivityFilters(BaseModel):
    """
    Closed set of activity log filters. Every field is optional.

    ``start_date`` is compared as given (a bare date means midnight UTC).
    ``end_date`` is a calendar date and covers that whole day, so equal start
    and end dates select a single day.
    """
    group_id: str | None = None
    action: ActivityAction | None = None
    user_id: str | None = None
    start_date: datetime | None = None
    end_date: date | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("start_date", mode="before")
    @classmethod
    def date_only_start(cls, value: Any) -> Any:
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time.min)
        if isinstance(value, str) and len(value) == 10:
            return datetime.combine(date.fromisoformat(value), time.min)
        return value

    @field_validator("end_date", mode="before")
    @classmethod
    def calendar_end(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        return value

    @model_validator(mode="after")
    def check_range(self) -> "ActivityFilters":
        start, end = self.timestamp_bounds()
        if start is not None and end is not None and start > end:
            raise ValueError("start_date must not be after end_date")
        return self

    def timestamp_bounds(self) -> tuple[datetime | None, datetime | None]:
        """Inclusive (start, end) bounds as naive UTC datetimes."""
        start = to_naive_utc(self.start_date) if self.start_date is not None else None
        end = datetime.combine(self.end_date, END_OF_DAY) if self.end_date is not None else None
        return start, end


class PageRequest(BaseModel):
    """1-based page number and page size. Sizes above 100 are clamped."""
    page: int = Field(default=1, ge=1, le=MAX_PAGE)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)

    model_config = ConfigDict(frozen=True)

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, value: int) -> int:
        return min(value, MAX_PAGE_SIZE)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class PageInfo(BaseModel):
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def build(cls, page: PageRequest, total_count: int) -> "PageInfo":
        return cls(
            page=page.page,
            limit=page.limit,
            total_count=total_count,
            total_pages=ceil(total_count / page.limit),
            has_next=page.skip + page.limit < total_count,
            has_prev=page.page > 1,
        )


class ActivityPage(BaseModel):
    entries: list[ActivityLogEntry]
    page_info: PageInfo

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Writes
# ============================================================================

class ActivityCreate(BaseModel):
    """Schema for a caller recording an activity entry."""
    group_id: str | None = None
    action: ActivityAction
    description: str = Field(..., min_length=1, max_length=2000)
    metadata: Dict[str, Any] | None = None

    model_config = ConfigDict(extra="forbid")


class ActivityRecordResponse(BaseModel):
    """``recorded`` is False when the log store could not take the entry."""
    recorded: bool
    entry: ActivityLogEntry | None = None
