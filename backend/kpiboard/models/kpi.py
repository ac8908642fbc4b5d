import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum as SAEnum, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.database import Base


class KpiDirection(str, enum.Enum):
    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"


class Kpi(Base):
    __tablename__ = "kpis"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    direction: Mapped[KpiDirection] = mapped_column(SAEnum(KpiDirection), nullable=False)
    target: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # RAG thresholds, must differ
    rag_red: Mapped[float] = mapped_column(Float, nullable=False)
    rag_amber: Mapped[float] = mapped_column(Float, nullable=False)

    # Display formatting, e.g. prefix="$" suffix="k"
    format_prefix: Mapped[str] = mapped_column(String(10), default="")
    format_suffix: Mapped[str] = mapped_column(String(10), default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
