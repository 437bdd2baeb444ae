"""Tests for the directory and notification service stubs."""

from __future__ import annotations

import logging
import uuid

import pytest

from app.models.enums import NotificationType
from app.schemas.employee import EmployeeInfo
from app.services.cache import LeaveCache
from app.services.employee import InMemoryEmployeeService, load_employee, set_employee_service
from app.services.notification import InMemoryNotificationService, send_notification, set_notification_service

ENTITY_A = uuid.uuid4()
ENTITY_B = uuid.uuid4()


def _make_employee(entity_id: uuid.UUID | None, name: str = "Jane") -> EmployeeInfo:
    return EmployeeInfo(
        id=uuid.uuid4(),
        entity_id=entity_id,
        first_name=name,
        last_name="Doe",
        email=f"{name.lower()}@example.com",
        hours_per_week=38.0,
    )


# ---------------------------------------------------------------------------
# InMemoryEmployeeService tests
# ---------------------------------------------------------------------------


async def test_employee_service_get_not_found() -> None:
    svc = InMemoryEmployeeService()
    result = await svc.get_employee(uuid.uuid4())
    assert result is None


async def test_employee_service_seed_and_get() -> None:
    svc = InMemoryEmployeeService()
    emp = _make_employee(ENTITY_A)
    svc.seed(emp)
    result = await svc.get_employee(emp.id)
    assert result is not None
    assert result.id == emp.id
    assert result.entity_id == ENTITY_A
    assert result.full_name == "Jane Doe"


async def test_employee_service_seed_replaces_record() -> None:
    svc = InMemoryEmployeeService()
    emp = _make_employee(ENTITY_A)
    svc.seed(emp)
    svc.seed(emp.model_copy(update={"hours_per_week": 19.0}))
    result = await svc.get_employee(emp.id)
    assert result is not None
    assert result.hours_per_week == 19.0


async def test_employee_service_list_empty() -> None:
    svc = InMemoryEmployeeService()
    result = await svc.list_employees()
    assert result == []


async def test_employee_service_list_filters_by_entity() -> None:
    svc = InMemoryEmployeeService()
    emp_a = _make_employee(ENTITY_A, "Alice")
    emp_b = _make_employee(ENTITY_B, "Bob")
    emp_none = _make_employee(None, "Carol")
    for emp in (emp_a, emp_b, emp_none):
        svc.seed(emp)

    result_a = await svc.list_employees(ENTITY_A)
    assert [e.id for e in result_a] == [emp_a.id]

    result_b = await svc.list_employees(ENTITY_B)
    assert [e.id for e in result_b] == [emp_b.id]

    everyone = await svc.list_employees()
    assert len(everyone) == 3


async def test_load_employee_without_cache_reads_through() -> None:
    svc = InMemoryEmployeeService()
    set_employee_service(svc)
    emp = _make_employee(ENTITY_A)
    svc.seed(emp)

    first = await load_employee(emp.id)
    svc.seed(emp.model_copy(update={"first_name": "Janet"}))
    second = await load_employee(emp.id)

    assert first is not None
    assert second is not None
    assert second.first_name == "Janet"


async def test_load_employee_unknown_with_cache() -> None:
    assert await load_employee(uuid.uuid4(), LeaveCache()) is None


# ---------------------------------------------------------------------------
# Notification tests
# ---------------------------------------------------------------------------


class _FailingNotificationService:
    async def notify(
        self,
        user_id: uuid.UUID,
        type: NotificationType,
        message: str,
        link: str | None = None,
    ) -> None:
        raise RuntimeError("mail server down")


async def test_send_notification_records_message(notifications: InMemoryNotificationService) -> None:
    user_id = uuid.uuid4()
    sent = await send_notification(user_id, NotificationType.LEAVE_APPROVED, "Approved", link="/requests/1")

    assert sent is True
    assert len(notifications.sent) == 1
    note = notifications.sent[0]
    assert note.user_id == user_id
    assert note.type is NotificationType.LEAVE_APPROVED
    assert note.message == "Approved"
    assert note.link == "/requests/1"


async def test_send_notification_without_recipient(notifications: InMemoryNotificationService) -> None:
    sent = await send_notification(None, NotificationType.LEAVE_SUBMITTED, "Submitted")
    assert sent is False
    assert notifications.sent == []


async def test_send_notification_failure_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    set_notification_service(_FailingNotificationService())
    with caplog.at_level(logging.ERROR, logger="app.services.notification"):
        sent = await send_notification(uuid.uuid4(), NotificationType.LEAVE_DECLINED, "Declined")

    assert sent is False
    assert "Failed to deliver leave_declined notification" in caplog.text
