"""
Pydantic schemas for User-related responses.

hashed_password is NEVER included in any response schema.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr

from cardledger.models.user import UserRole


class UserResponse(BaseModel):
    id: uuid.UUID
    email: EmailStr
    role: UserRole
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class RoleUpdateRequest(BaseModel):
    """Request body for PATCH /admin/users/{id}/role."""
    role: Literal["USER", "ADMIN"]


class UserActiveUpdateRequest(BaseModel):
    """Request body for PATCH /admin/users/{id}/active."""
    is_active: bool
