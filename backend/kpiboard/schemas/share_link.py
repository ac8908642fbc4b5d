"""Pydantic schemas for dashboard share links."""

from datetime import datetime

from pydantic import BaseModel


class ShareLinkCreate(BaseModel):
    ttl_days: int | None = None


class ShareLinkOut(BaseModel):
    id: str
    dashboard_id: str
    token: str
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class ShareLinkRedeem(BaseModel):
    token: str


class ShareLinkRedeemed(BaseModel):
    dashboard_id: str


class ShareLinkValidation(BaseModel):
    valid: bool
    dashboard_id: str
    expires_at: datetime


class ShareLinkStats(BaseModel):
    total: int
    active: int
    expired: int
