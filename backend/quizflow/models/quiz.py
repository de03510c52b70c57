"""
Quiz: questions generated from one upload plus the QTI package built from them.
package_file_path is relative to the storage root; one package per quiz at a time.
"""
import uuid
from datetime import datetime

from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.types import JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from quizflow.database import Base
from quizflow.models.types import UuidType


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[uuid.UUID] = mapped_column(UuidType(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_upload_id: Mapped[uuid.UUID | None] = mapped_column(
        UuidType(), ForeignKey("file_uploads.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    questions: Mapped[list] = mapped_column(JSON, nullable=False)  # [{"text", "options", "correct_answer", "explanation"}]
    question_count: Mapped[int] = mapped_column(Integer, nullable=False)
    package_file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    download_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    plan: Mapped[str] = mapped_column(String(20), nullable=False)
    has_watermark: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="quizzes")
    file_upload = relationship("FileUpload", back_populates="quizzes")
