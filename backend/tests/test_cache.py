"""Tests for the leave cache: versioning, listeners, TTL and directory lookups."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from app.services.cache import LeaveCache
from app.services.employee import load_employee

if TYPE_CHECKING:
    from collections.abc import Callable

    from app.schemas.employee import EmployeeInfo
    from app.services.employee import InMemoryEmployeeService


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_invalidate_bumps_version() -> None:
    cache = LeaveCache()
    employee_id = uuid.uuid4()
    assert cache.version == 0
    assert cache.employee_version(employee_id) == 0

    assert cache.invalidate(employee_id) == 1
    assert cache.invalidate() == 2
    assert cache.version == 2
    assert cache.employee_version(employee_id) == 1


def test_listeners_are_notified_until_unsubscribed() -> None:
    cache = LeaveCache()
    seen: list[tuple[int, uuid.UUID | None]] = []
    unsubscribe = cache.subscribe(lambda version, emp: seen.append((version, emp)))
    employee_id = uuid.uuid4()

    cache.invalidate(employee_id)
    cache.invalidate()
    unsubscribe()
    cache.invalidate()

    assert seen == [(1, employee_id), (2, None)]


def test_failing_listener_does_not_block_others() -> None:
    cache = LeaveCache()
    seen: list[int] = []

    def _broken(version: int, employee_id: uuid.UUID | None) -> None:
        raise RuntimeError("listener down")

    cache.subscribe(_broken)
    cache.subscribe(lambda version, emp: seen.append(version))

    assert cache.invalidate() == 1
    assert seen == [1]


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache = LeaveCache(ttl_seconds=60, clock=clock)
    cache.set("k", "v")

    clock.now += 59
    assert cache.get("k") == "v"
    clock.now += 1
    assert cache.get("k") is None


def test_employee_invalidation_drops_only_that_employee() -> None:
    cache = LeaveCache()
    alice, bob = uuid.uuid4(), uuid.uuid4()
    cache.set(f"{alice}:employee", "alice")
    cache.set(f"{bob}:employee", "bob")

    cache.invalidate(alice)

    assert cache.get(f"{alice}:employee") is None
    assert cache.get(f"{bob}:employee") == "bob"

    cache.invalidate()
    assert cache.get(f"{bob}:employee") is None


async def test_get_or_load_does_not_cache_missing_values() -> None:
    cache = LeaveCache()
    calls = 0

    async def _loader() -> str | None:
        nonlocal calls
        calls += 1
        return None if calls == 1 else "found"

    assert await cache.get_or_load("k", _loader) is None
    assert await cache.get_or_load("k", _loader) == "found"
    assert await cache.get_or_load("k", _loader) == "found"
    assert calls == 2


async def test_load_employee_serves_from_cache_until_invalidated(
    make_employee: Callable[..., EmployeeInfo],
    employee_service: InMemoryEmployeeService,
) -> None:
    cache = LeaveCache()
    employee = make_employee(first_name="Alice")
    assert (await load_employee(employee.id, cache)).first_name == "Alice"  # type: ignore[union-attr]

    employee_service.seed(employee.model_copy(update={"first_name": "Alicia"}))
    assert (await load_employee(employee.id, cache)).first_name == "Alice"  # type: ignore[union-attr]
    assert (await load_employee(employee.id)).first_name == "Alicia"  # type: ignore[union-attr]

    cache.invalidate(employee.id)
    assert (await load_employee(employee.id, cache)).first_name == "Alicia"  # type: ignore[union-attr]


async def test_load_unknown_employee_returns_none() -> None:
    assert await load_employee(uuid.uuid4(), LeaveCache()) is None
