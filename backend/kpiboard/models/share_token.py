"""Share tokens: single-use, time-limited capabilities for one dashboard.

A row exists only while the token is redeemable (or expired but not yet
swept). Redemption and expiry cleanup both delete the row.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.database import Base


class ShareToken(Base):
    __tablename__ = "dashboard_share_tokens"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    dashboard_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("dashboards.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    # 64 hex chars = 256 bits of entropy
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
