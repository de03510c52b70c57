"""
UsageRecord: one metered action (UPLOAD, QUIZ_GENERATION, QTI_EXPORT) with the plan at the time.
Upload quotas count UPLOAD rows in a rolling 7-day window.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, CheckConstraint, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quizflow.database import Base
from quizflow.models.types import UuidType


class UsageRecord(Base):
    __tablename__ = "usage_records"

    id: Mapped[uuid.UUID] = mapped_column(UuidType(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    plan: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True
    )

    __table_args__ = (
        CheckConstraint("action IN ('UPLOAD', 'QUIZ_GENERATION', 'QTI_EXPORT')", name="usage_records_action_check"),
    )

    user = relationship("User", back_populates="usage_records")
