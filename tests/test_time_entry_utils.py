"""
Tests for manually logged time entries.
"""
from datetime import datetime, timedelta

import pytest
from pytz import UTC

from billable.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError, ValidationError
from billable.schemas.time_entries import CreateTimeEntry, EditTimeEntry
from billable.schemas.timer import StartTimer
from billable.utils.time_entry_utils import (delete_time_entry, get_time_entry, list_time_entries,
                                             log_time_entry, update_time_entry)

T0 = datetime(2024, 3, 4, 9, 0, tzinfo=UTC)


def books(**kwargs):
    kwargs.setdefault("date", T0)
    kwargs.setdefault("elapsed_seconds", 5400)
    return CreateTimeEntry(task_id="task-books", **kwargs)


@pytest.mark.asyncio
async def test_log_fills_in_client_and_package_from_task(stores, alice, clock):
    entry = await log_time_entry(stores, alice, books(description="Bank feeds"), clock)

    assert entry.id
    assert entry.employee_id == "emp-alice"
    assert entry.client_id == "client-acme"
    assert entry.package_id == "pkg-monthly"
    assert entry.start_time == T0
    assert entry.end_time == T0 + timedelta(minutes=90)
    assert entry.created_at == clock.now
    assert not entry.is_active


@pytest.mark.asyncio
async def test_log_rejects_mismatched_relationships(stores, alice, clock):
    with pytest.raises(ValidationError, match="Task does not belong"):
        await log_time_entry(stores, alice, books(package_id="pkg-quarterly"), clock)

    with pytest.raises(ValidationError, match="Package does not belong"):
        await log_time_entry(
            stores, alice,
            CreateTimeEntry(package_id="pkg-setup", client_id="client-acme", date=T0, elapsed_seconds=60),
            clock,
        )

    with pytest.raises(NotFoundError, match="Client not found"):
        await log_time_entry(
            stores, alice, CreateTimeEntry(client_id="client-missing", date=T0, elapsed_seconds=60), clock
        )


@pytest.mark.asyncio
async def test_log_rejects_end_before_start(stores, alice, clock):
    with pytest.raises(ValidationError):
        await log_time_entry(stores, alice, books(end_time=T0 - timedelta(hours=1)), clock)


@pytest.mark.asyncio
async def test_only_admins_log_for_others(stores, alice, admin, clock):
    with pytest.raises(PermissionDeniedError):
        await log_time_entry(stores, alice, books(employee_id="emp-bob"), clock)

    entry = await log_time_entry(stores, admin, books(employee_id="emp-bob"), clock)
    assert entry.employee_id == "emp-bob"


@pytest.mark.asyncio
async def test_update_own_entry(stores, alice, clock):
    entry = await log_time_entry(stores, alice, books(), clock)
    clock.advance(hours=1)

    updated = await update_time_entry(
        stores, alice, entry.id, EditTimeEntry(description="Corrected", elapsed_seconds=3600), clock
    )

    assert updated.description == "Corrected"
    assert updated.elapsed_seconds == 3600
    assert updated.date == T0
    assert updated.updated_at == clock.now


@pytest.mark.asyncio
async def test_update_ignores_null_required_fields(stores, alice, clock):
    entry = await log_time_entry(stores, alice, books(), clock)

    updated = await update_time_entry(stores, alice, entry.id, EditTimeEntry(date=None, elapsed_seconds=None), clock)

    assert updated.date == T0
    assert updated.elapsed_seconds == 5400


@pytest.mark.asyncio
async def test_update_permissions(stores, alice, bob, admin, clock):
    entry = await log_time_entry(stores, alice, books(), clock)

    with pytest.raises(PermissionDeniedError):
        await update_time_entry(stores, bob, entry.id, EditTimeEntry(description="mine now"), clock)
    with pytest.raises(PermissionDeniedError, match="cannot change the employee ID"):
        await update_time_entry(stores, alice, entry.id, EditTimeEntry(employee_id="emp-bob"), clock)

    moved = await update_time_entry(stores, admin, entry.id, EditTimeEntry(employee_id="emp-bob"), clock)
    assert moved.employee_id == "emp-bob"


@pytest.mark.asyncio
async def test_update_rechecks_relationships(stores, alice, clock):
    entry = await log_time_entry(stores, alice, books(), clock)

    with pytest.raises(ValidationError):
        await update_time_entry(stores, alice, entry.id, EditTimeEntry(package_id="pkg-setup"), clock)


@pytest.mark.asyncio
async def test_active_timer_cannot_be_edited(stores, service, alice, clock):
    entry = await service.start(alice, StartTimer(task_id="task-books"))

    with pytest.raises(InvalidStateError):
        await update_time_entry(stores, alice, entry.id, EditTimeEntry(elapsed_seconds=99999), clock)

    assert (await stores.time_entries.get(entry.id)).is_running


@pytest.mark.asyncio
async def test_delete(stores, alice, bob, clock):
    entry = await log_time_entry(stores, alice, books(), clock)

    with pytest.raises(PermissionDeniedError):
        await delete_time_entry(stores, bob, entry.id)

    deleted = await delete_time_entry(stores, alice, entry.id)
    assert deleted.id == entry.id
    with pytest.raises(NotFoundError, match="Time entry not found"):
        await get_time_entry(stores, entry.id)


@pytest.mark.asyncio
async def test_list_is_scoped_to_the_employee(stores, alice, bob, admin, clock):
    await log_time_entry(stores, alice, books(date=T0), clock)
    await log_time_entry(stores, alice, books(date=T0 + timedelta(days=1)), clock)
    await log_time_entry(stores, bob, CreateTimeEntry(task_id="task-vat", date=T0, elapsed_seconds=60), clock)

    own = await list_time_entries(stores, alice)
    assert own.pagination.total == 2
    assert {entry.employee_id for entry in own.time_entries} == {"emp-alice"}

    with pytest.raises(PermissionDeniedError):
        await list_time_entries(stores, alice, employee_id="emp-bob")

    everyone = await list_time_entries(stores, admin, page=1, limit=2)
    assert everyone.pagination.total == 3
    assert everyone.pagination.pages == 2
    assert len(everyone.time_entries) == 2
    assert everyone.time_entries[0].date == T0 + timedelta(days=1)

    last_page = await list_time_entries(stores, admin, page=2, limit=2)
    assert len(last_page.time_entries) == 1

    filtered = await list_time_entries(stores, admin, package_id="pkg-quarterly")
    assert [entry.employee_id for entry in filtered.time_entries] == ["emp-bob"]


@pytest.mark.asyncio
async def test_list_rejects_bad_paging(stores, admin):
    with pytest.raises(ValidationError):
        await list_time_entries(stores, admin, page=0)


def test_naive_datetimes_are_read_as_utc():
    payload = CreateTimeEntry(task_id="task-books", date=datetime(2024, 3, 4, 9, 0), elapsed_seconds=60)
    assert payload.date == T0
    assert payload.date.tzinfo is not None

    changes = EditTimeEntry(start_time=datetime(2024, 3, 4, 9, 0))
    assert changes.start_time == T0

    timer = StartTimer(task_id="task-books", date=datetime(2024, 3, 4, 9, 0))
    assert timer.date == T0


@pytest.mark.asyncio
async def test_log_mixes_naive_and_aware_times(stores, alice, clock):
    entry = await log_time_entry(
        stores, alice, books(date=T0, end_time=datetime(2024, 3, 4, 10, 30)), clock
    )
    assert entry.end_time == T0 + timedelta(minutes=90)


@pytest.mark.asyncio
async def test_list_accepts_naive_bounds(stores, service, alice, clock):
    await service.start(alice, StartTimer(task_id="task-books"))
    await log_time_entry(stores, alice, books(date=datetime(2024, 2, 20, 9, 0)), clock)

    page = await list_time_entries(
        stores, alice, start_date=datetime(2024, 3, 1), end_date=datetime(2024, 3, 31, 23, 59)
    )
    assert page.pagination.total == 1
    assert page.time_entries[0].is_running
