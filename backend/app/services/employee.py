# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from app.schemas.employee import EmployeeInfo

if TYPE_CHECKING:
    from app.services.cache import LeaveCache


@runtime_checkable
class EmployeeService(Protocol):
    """Interface for the directory store."""

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch an employee record. Returns None if not found."""
        ...

    async def list_employees(self, entity_id: uuid.UUID | None = None) -> list[EmployeeInfo]:
        """List employees, optionally restricted to one entity."""
        ...


class InMemoryEmployeeService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[uuid.UUID, EmployeeInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        """Seed an employee for testing."""
        self._employees[employee.id] = employee

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch an employee record. Returns None if not found."""
        return self._employees.get(employee_id)

    async def list_employees(self, entity_id: uuid.UUID | None = None) -> list[EmployeeInfo]:
        """List employees, optionally restricted to one entity."""
        if entity_id is None:
            return list(self._employees.values())
        return [e for e in self._employees.values() if e.entity_id == entity_id]


_employee_service: EmployeeService = InMemoryEmployeeService()


def get_employee_service() -> EmployeeService:
    """FastAPI dependency for the directory store."""
    return _employee_service


def set_employee_service(service: EmployeeService) -> None:
    """Override the service (for testing or production wiring)."""
    global _employee_service
    _employee_service = service


async def load_employee(employee_id: uuid.UUID, cache: LeaveCache | None = None) -> EmployeeInfo | None:
    """Fetch an employee through the leave cache when one is supplied."""
    service = get_employee_service()
    if cache is None:
        return await service.get_employee(employee_id)
    return await cache.get_or_load(f"{employee_id}:employee", lambda: service.get_employee(employee_id))
