"""Pydantic schemas for user administration."""

from datetime import datetime

from pydantic import BaseModel

from kpiboard.models.user import UserRole


class UserOut(BaseModel):
    id: str
    email: str
    role: UserRole
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserRoleUpdate(BaseModel):
    # Checked against UserRole by UserService for a uniform error shape
    role: str
