# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel


class AuthContext(BaseModel):
    """Dev auth context extracted from request headers.

    ``user_id`` is the caller's employee id; role resolution lives outside
    this service.
    """

    company_id: uuid.UUID
    user_id: uuid.UUID
    role: str = "employee"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def can_approve(self) -> bool:
        return self.role in {"manager", "hr", "admin"}
