"""
FileUpload: one uploaded lecture file (PDF, DOCX or TXT) and the text extracted from it.
status: PROCESSING while extracting, COMPLETED with extracted_text, FAILED with error.
"""
import uuid
from datetime import datetime

from sqlalchemy import String, Text, BigInteger, DateTime, CheckConstraint, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from quizflow.database import Base
from quizflow.models.types import UuidType


class FileUpload(Base):
    __tablename__ = "file_uploads"

    id: Mapped[uuid.UUID] = mapped_column(UuidType(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)  # stored name: <uuid>.<ext>
    original_name: Mapped[str] = mapped_column(String(512), nullable=False)
    file_type: Mapped[str] = mapped_column(String(10), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PROCESSING", index=True)
    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("file_type IN ('PDF', 'DOCX', 'TXT')", name="file_uploads_file_type_check"),
        CheckConstraint("status IN ('PROCESSING', 'COMPLETED', 'FAILED')", name="file_uploads_status_check"),
    )

    user = relationship("User", back_populates="file_uploads")
    quizzes = relationship("Quiz", back_populates="file_upload")
