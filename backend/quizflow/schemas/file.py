"""
File upload response schemas.
"""
from datetime import datetime

from pydantic import BaseModel


class FileUploadResponse(BaseModel):
    id: str
    original_name: str
    file_type: str
    file_size: int
    status: str
    error: str | None = None
    created_at: datetime | None = None


class FileUploadDetailResponse(FileUploadResponse):
    """Single upload get; includes the extracted text and its length."""
    extracted_text: str | None = None
    character_count: int = 0


class FileUploadListResponse(BaseModel):
    items: list[FileUploadResponse]
    total: int
