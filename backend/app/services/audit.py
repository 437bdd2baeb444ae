from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from app.models.audit import AuditLog

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlmodel import SQLModel

    from app.models.enums import AuditEntityType, AuditEvent

logger = logging.getLogger(__name__)


def model_to_audit_dict(model: SQLModel) -> dict[str, Any]:
    """Serialize a SQLModel instance to a JSON-safe dict for audit logging."""
    data: dict[str, Any] = {}
    for key, value in model.model_dump().items():
        if isinstance(value, uuid.UUID):
            data[key] = str(value)
        elif isinstance(value, (datetime, date)):
            data[key] = value.isoformat()
        else:
            data[key] = value
    return data


async def write_audit_log(
    session: AsyncSession,
    *,
    event_type: AuditEvent,
    entity_type: AuditEntityType,
    entity_id: uuid.UUID,
    actor_id: uuid.UUID | None = None,
    related_employee_id: uuid.UUID | None = None,
    description: str = "",
    before_json: dict[str, Any] | None = None,
    after_json: dict[str, Any] | None = None,
) -> AuditLog | None:
    """Write an audit entry inside a savepoint of the caller's transaction.

    A failed audit write is rolled back to the savepoint and logged; the
    surrounding mutation still commits. Returns None in that case.
    """
    entry = AuditLog(
        event_type=event_type.value,
        entity_type=entity_type.value,
        entity_id=entity_id,
        actor_id=actor_id,
        related_employee_id=related_employee_id,
        description=description[:1000],
        before_json=before_json,
        after_json=after_json,
    )
    await session.flush()
    try:
        async with session.begin_nested():
            session.add(entry)
    except SQLAlchemyError:
        logger.exception("Failed to write audit entry %s for %s=%s", event_type.value, entity_type.value, entity_id)
        return None
    return entry
