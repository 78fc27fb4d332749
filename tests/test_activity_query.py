"""
Tests for activity log filtering and pagination.
"""
from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from groupguard.core.errors import AppError, ErrorKind
from groupguard.features.activity.models import ActivityAction, ActivityLog
from groupguard.features.activity.schemas import (
    MAX_PAGE,
    MAX_PAGE_SIZE,
    ActivityCreate,
    ActivityFilters,
    PageRequest,
)
from groupguard.features.activity.service import query_activity, record_activity_for_caller
from groupguard.features.groups.models import GroupRole
from groupguard.features.users.models import GlobalRole


async def add_entry(db, timestamp, action=ActivityAction.SCORE_RECORDED, user_id=None, group_id=None):
    entry = ActivityLog(
        user_id=user_id,
        group_id=group_id,
        action=action,
        description=f"{action.value} at {timestamp.isoformat()}",
        timestamp=timestamp,
    )
    db.add(entry)
    await db.commit()
    return entry


# =============================================================================
# Pagination
# =============================================================================

async def test_second_page_of_twenty_five(db):
    start = datetime(2024, 1, 1)
    for i in range(25):
        await add_entry(db, start + timedelta(minutes=i))

    result = await query_activity(db, ActivityFilters(), PageRequest(page=2, limit=20))

    assert len(result.entries) == 5
    info = result.page_info
    assert info.total_count == 25
    assert info.total_pages == 2
    assert info.has_next is False
    assert info.has_prev is True
    # Oldest five, still newest first
    assert [e.timestamp for e in result.entries] == [start + timedelta(minutes=i) for i in range(4, -1, -1)]


async def test_first_page_is_newest_first(db):
    start = datetime(2024, 1, 1)
    for i in range(3):
        await add_entry(db, start + timedelta(hours=i))

    result = await query_activity(db, ActivityFilters(), PageRequest(page=1, limit=2))

    assert [e.timestamp for e in result.entries] == [start + timedelta(hours=2), start + timedelta(hours=1)]
    assert result.page_info.has_next is True
    assert result.page_info.has_prev is False


async def test_empty_log(db):
    result = await query_activity(db, ActivityFilters(), PageRequest())

    assert result.entries == []
    assert result.page_info.total_count == 0
    assert result.page_info.total_pages == 0
    assert result.page_info.has_next is False


def test_limit_is_clamped():
    assert PageRequest(limit=500).limit == 100


@pytest.mark.parametrize("kwargs", [{"page": 0}, {"page": -1}, {"limit": 0}])
def test_invalid_pages_are_rejected(kwargs):
    with pytest.raises(ValidationError):
        PageRequest(**kwargs)


def test_page_number_is_bounded():
    assert PageRequest(page=MAX_PAGE, limit=MAX_PAGE_SIZE).skip < 2**63
    with pytest.raises(ValidationError):
        PageRequest(page=MAX_PAGE + 1)
    with pytest.raises(ValidationError):
        PageRequest(page=10**19)


async def test_last_allowed_page_is_empty(db):
    await add_entry(db, datetime(2024, 1, 1))

    result = await query_activity(db, ActivityFilters(), PageRequest(page=MAX_PAGE, limit=MAX_PAGE_SIZE))

    assert result.entries == []
    assert result.page_info.total_count == 1
    assert result.page_info.has_next is False


def test_page_info_serializes_camel_case():
    from groupguard.features.activity.schemas import PageInfo

    dumped = PageInfo.build(PageRequest(page=2, limit=20), 25).model_dump(by_alias=True)
    assert dumped == {
        "page": 2,
        "limit": 20,
        "totalCount": 25,
        "totalPages": 2,
        "hasNext": False,
        "hasPrev": True,
    }


# =============================================================================
# Filters
# =============================================================================

async def test_end_date_covers_the_whole_day(db):
    await add_entry(db, datetime(2024, 1, 5, 23, 59, 59, 999000))
    await add_entry(db, datetime(2024, 1, 6, 0, 0, 0))

    result = await query_activity(db, ActivityFilters(end_date="2024-01-05"), PageRequest())

    assert [e.timestamp for e in result.entries] == [datetime(2024, 1, 5, 23, 59, 59, 999000)]


async def test_equal_start_and_end_select_one_day(db):
    await add_entry(db, datetime(2024, 1, 4, 23, 0))
    await add_entry(db, datetime(2024, 1, 5, 0, 0))
    await add_entry(db, datetime(2024, 1, 5, 12, 0))
    await add_entry(db, datetime(2024, 1, 6, 0, 0))

    filters = ActivityFilters(start_date="2024-01-05", end_date="2024-01-05")
    result = await query_activity(db, filters, PageRequest())

    assert [e.timestamp for e in result.entries] == [datetime(2024, 1, 5, 12, 0), datetime(2024, 1, 5, 0, 0)]


async def test_start_date_is_compared_as_given(db):
    await add_entry(db, datetime(2024, 1, 5, 9, 0))
    await add_entry(db, datetime(2024, 1, 5, 11, 0))

    filters = ActivityFilters(start_date=datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc))
    result = await query_activity(db, filters, PageRequest())

    assert [e.timestamp for e in result.entries] == [datetime(2024, 1, 5, 11, 0)]


def test_start_after_end_is_rejected():
    with pytest.raises(ValidationError):
        ActivityFilters(start_date="2024-01-06", end_date=date(2024, 1, 5))


def test_unknown_filter_is_rejected():
    with pytest.raises(ValidationError):
        ActivityFilters(ip_address="10.0.0.1")


def test_unknown_action_is_rejected():
    with pytest.raises(ValidationError):
        ActivityFilters(action="NOT_AN_ACTION")


async def test_filters_by_group_action_and_user(db, make_user, make_group):
    alice = await make_user("alice@example.com")
    bob = await make_user("bob@example.com")
    league = await make_group("League", [(alice, GroupRole.OWNER)])
    cup = await make_group("Cup", [(bob, GroupRole.OWNER)])
    t = datetime(2024, 2, 1)
    await add_entry(db, t, ActivityAction.SCORE_RECORDED, alice.id, league.id)
    await add_entry(db, t + timedelta(minutes=1), ActivityAction.GROUP_UPDATED, alice.id, league.id)
    await add_entry(db, t + timedelta(minutes=2), ActivityAction.SCORE_RECORDED, bob.id, cup.id)

    by_group = await query_activity(db, ActivityFilters(group_id=league.id), PageRequest())
    by_action = await query_activity(db, ActivityFilters(action=ActivityAction.SCORE_RECORDED), PageRequest())
    combined = await query_activity(
        db, ActivityFilters(user_id=bob.id, action=ActivityAction.SCORE_RECORDED), PageRequest()
    )

    assert by_group.page_info.total_count == 2
    assert by_action.page_info.total_count == 2
    assert combined.page_info.total_count == 1
    assert combined.entries[0].group.name == "Cup"


async def test_entries_carry_actor_and_group_summaries(db, make_user, make_group):
    alice = await make_user("alice@example.com", name="Alice")
    league = await make_group("League", [(alice, GroupRole.OWNER)])
    await add_entry(db, datetime(2024, 3, 1, 8, 30), ActivityAction.GROUP_UPDATED, alice.id, league.id)
    await add_entry(db, datetime(2024, 3, 1, 8, 0), ActivityAction.LOGIN_FAILED)

    result = await query_activity(db, ActivityFilters(), PageRequest())

    first, second = result.entries
    assert first.user.model_dump() == {"id": alice.id, "name": "Alice", "email": "alice@example.com"}
    assert first.group.model_dump() == {"id": league.id, "name": "League"}
    assert second.user is None
    assert second.group is None

    wire = first.model_dump(mode="json")
    assert wire["timestamp"] == "2024-03-01T08:30:00.000Z"
    assert wire["action"] == "GROUP_UPDATED"
    assert wire["metadata"] is None


# =============================================================================
# Write path
# =============================================================================

async def test_non_member_cannot_write_to_group(db, recorder, make_user, make_group):
    alice = await make_user("alice@example.com")
    outsider = await make_user("outsider@example.com")
    league = await make_group("League", [(alice, GroupRole.OWNER)])

    payload = ActivityCreate(group_id=league.id, action=ActivityAction.SCORE_RECORDED, description="Scored")
    with pytest.raises(AppError) as exc:
        await record_activity_for_caller(db, recorder, outsider, payload)

    assert exc.value.kind == ErrorKind.PERMISSION_DENIED
    assert (await query_activity(db, ActivityFilters(), PageRequest())).page_info.total_count == 0


async def test_member_and_global_admin_can_write(db, recorder, make_user, make_group):
    alice = await make_user("alice@example.com")
    admin = await make_user("admin@example.com", GlobalRole.ADMIN)
    league = await make_group("League", [(alice, GroupRole.MEMBER)])

    for caller in (alice, admin):
        payload = ActivityCreate(group_id=league.id, action=ActivityAction.SCORE_RECORDED, description="Scored")
        response = await record_activity_for_caller(db, recorder, caller, payload)
        assert response.recorded
        assert response.entry.user.id == caller.id
        assert response.entry.group.name == "League"


async def test_write_to_missing_group(db, recorder, make_user):
    admin = await make_user("admin@example.com", GlobalRole.ADMIN)

    payload = ActivityCreate(group_id="nope", action=ActivityAction.SCORE_RECORDED, description="Scored")
    with pytest.raises(AppError) as exc:
        await record_activity_for_caller(db, recorder, admin, payload)

    assert exc.value.kind == ErrorKind.NOT_FOUND


async def test_write_without_group(db, recorder, make_user):
    alice = await make_user("alice@example.com")

    payload = ActivityCreate(action=ActivityAction.USER_LOGIN, description="Logged in", metadata={"via": "sso"})
    response = await record_activity_for_caller(db, recorder, alice, payload)

    assert response.recorded
    assert response.entry.group is None
    assert response.entry.metadata == {"via": "sso"}


async def test_write_reports_unrecorded_when_store_is_down(db, broken_recorder, make_user):
    alice = await make_user("alice@example.com")

    payload = ActivityCreate(action=ActivityAction.USER_LOGIN, description="Logged in")
    response = await record_activity_for_caller(db, broken_recorder, alice, payload)

    assert response.recorded is False
    assert response.entry is None
