"""
Upload processing: type/size checks, weekly upload quota, storage, text extraction, usage records.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

from sqlalchemy.orm import Session

from quizflow.config import settings
from quizflow.errors import InputError, NotFoundError, QuizFlowError, QuotaExceededError
from quizflow.models.file_upload import FileUpload
from quizflow.models.usage_record import UsageRecord
from quizflow.models.user import User
from quizflow.services.plans import DEFAULT_PLAN_TABLE, UPLOAD_WINDOW_DAYS, PlanTable
from quizflow.services.text_extraction import extension_for, extract_text, file_type_for

logger = logging.getLogger(__name__)

UPLOAD = "UPLOAD"
QUIZ_GENERATION = "QUIZ_GENERATION"
QTI_EXPORT = "QTI_EXPORT"

PROCESSING = "PROCESSING"
COMPLETED = "COMPLETED"
FAILED = "FAILED"


def as_uuid(value, what: str) -> uuid.UUID:
    """Parse an id from a path/body; malformed ids are reported as not found."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError(f"{what} not found") from None


class FileService:
    def __init__(
        self,
        db: Session,
        plan_table: PlanTable = DEFAULT_PLAN_TABLE,
        upload_dir: Path | None = None,
        max_file_size: int | None = None,
        min_content_chars: int | None = None,
    ):
        self.db = db
        self.plan_table = plan_table
        self.upload_dir = Path(upload_dir) if upload_dir is not None else settings.upload_path
        self.max_file_size = max_file_size if max_file_size is not None else settings.max_file_size
        self.min_content_chars = min_content_chars if min_content_chars is not None else settings.min_content_chars

    def record_usage(self, user: User, action: str, commit: bool = True) -> UsageRecord:
        record = UsageRecord(user_id=user.id, action=action, plan=user.plan)
        self.db.add(record)
        if commit:
            self.db.commit()
        return record

    def uploads_in_window(self, user: User) -> int:
        since = datetime.now(timezone.utc) - timedelta(days=UPLOAD_WINDOW_DAYS)
        return (
            self.db.query(UsageRecord)
            .filter(
                UsageRecord.user_id == user.id,
                UsageRecord.action == UPLOAD,
                UsageRecord.created_at >= since,
            )
            .count()
        )

    def check_upload_limit(self, user: User) -> bool:
        """True if the user may upload another file under their plan's weekly quota."""
        limits = self.plan_table.limits_for(user.plan)
        if limits.unlimited_uploads:
            return True
        return self.uploads_in_window(user) < limits.upload_quota

    def process_upload(self, user: User, original_name: str, content_type: str | None, contents: bytes) -> FileUpload:
        """Store the file, extract its text and mark the record COMPLETED; FAILED (and re-raise) on error."""
        file_type = file_type_for(content_type, original_name)
        if not contents:
            raise InputError("Uploaded file is empty")
        if len(contents) > self.max_file_size:
            raise InputError(f"File too large. Maximum size is {self.max_file_size // (1024 * 1024)} MB")
        if not self.check_upload_limit(user):
            limits = self.plan_table.limits_for(user.plan)
            raise QuotaExceededError(
                f"Upload limit reached for the {limits.plan_name} plan "
                f"({limits.upload_quota} per {UPLOAD_WINDOW_DAYS} days). Upgrade to Pro for unlimited uploads."
            )

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        upload_id = uuid.uuid4()
        stored_name = f"{upload_id}{extension_for(file_type)}"
        path = self.upload_dir / stored_name
        path.write_bytes(contents)

        upload = FileUpload(
            id=upload_id,
            user_id=user.id,
            file_name=stored_name,
            original_name=(original_name or stored_name)[:512],
            file_type=file_type,
            file_size=len(contents),
            file_path=str(path),
            status=PROCESSING,
        )
        self.db.add(upload)
        self.db.commit()

        try:
            text = extract_text(path, file_type, min_chars=self.min_content_chars)
        except Exception as e:
            upload.status = FAILED
            upload.error = str(e)[:1024]
            self.db.commit()
            if isinstance(e, QuizFlowError):
                raise
            logger.warning("Extraction failed for upload %s (%s): %s", upload_id, file_type, e)
            raise InputError(f"Could not read the {file_type} file. Please check it is not corrupted.") from e

        upload.extracted_text = text
        upload.status = COMPLETED
        self.record_usage(user, UPLOAD, commit=False)
        self.db.commit()
        self.db.refresh(upload)
        logger.info("Upload processed: id=%s user_id=%s type=%s chars=%s", upload.id, user.id, file_type, len(text))
        return upload

    def get_upload(self, file_id, user_id) -> FileUpload:
        upload = (
            self.db.query(FileUpload)
            .filter(FileUpload.id == as_uuid(file_id, "File"), FileUpload.user_id == as_uuid(user_id, "User"))
            .first()
        )
        if not upload:
            raise NotFoundError("File not found")
        return upload

    def list_uploads(self, user_id) -> list[FileUpload]:
        return (
            self.db.query(FileUpload)
            .filter(FileUpload.user_id == as_uuid(user_id, "User"))
            .order_by(FileUpload.created_at.desc())
            .all()
        )

    def delete_upload(self, file_id, user_id) -> None:
        upload = self.get_upload(file_id, user_id)
        try:
            Path(upload.file_path).unlink()
        except OSError as e:
            # file might already be gone
            logger.warning("Could not delete upload file %s: %s", upload.file_path, e)
        self.db.delete(upload)
        self.db.commit()
