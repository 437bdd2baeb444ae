# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel


class AuthContext(BaseModel):
    """Dev auth context extracted from request headers.

    ``employee_id`` links the caller to a directory record and is what
    self-service and manager checks compare against.
    """

    user_id: uuid.UUID
    role: str = "employee"
    employee_id: uuid.UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
