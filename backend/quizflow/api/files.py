"""
Files API: upload a lecture file (PDF, DOCX, TXT), list, get with extracted text, delete.
Extraction runs inline; the record ends COMPLETED or FAILED. Scoped by current user.
"""
import logging

from fastapi import APIRouter, Depends, File, UploadFile, status

from quizflow.api.deps import get_current_user, get_file_service, to_http_exception
from quizflow.errors import QuizFlowError
from quizflow.models.file_upload import FileUpload
from quizflow.models.user import User
from quizflow.schemas.file import FileUploadDetailResponse, FileUploadListResponse, FileUploadResponse
from quizflow.services.file_service import FileService

router = APIRouter(prefix="/files", tags=["files"])
logger = logging.getLogger(__name__)


def _upload_to_response(u: FileUpload) -> FileUploadResponse:
    return FileUploadResponse(
        id=str(u.id),
        original_name=u.original_name,
        file_type=u.file_type,
        file_size=u.file_size,
        status=u.status,
        error=u.error,
        created_at=u.created_at,
    )


@router.post("/upload", response_model=FileUploadResponse, status_code=status.HTTP_201_CREATED)
def upload_file(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    files: FileService = Depends(get_file_service),
):
    """Store the file and extract its text. 400 on bad type/size/content, 403 when the weekly quota is used."""
    contents = file.file.read()
    try:
        upload = files.process_upload(current_user, file.filename or "", file.content_type, contents)
    except QuizFlowError as e:
        logger.info("Upload rejected for user %s: %s", current_user.id, e)
        raise to_http_exception(e)
    return _upload_to_response(upload)


@router.get("", response_model=FileUploadListResponse)
def list_files(
    current_user: User = Depends(get_current_user),
    files: FileService = Depends(get_file_service),
):
    uploads = files.list_uploads(current_user.id)
    return FileUploadListResponse(items=[_upload_to_response(u) for u in uploads], total=len(uploads))


@router.get("/{file_id}", response_model=FileUploadDetailResponse)
def get_file(
    file_id: str,
    current_user: User = Depends(get_current_user),
    files: FileService = Depends(get_file_service),
):
    try:
        upload = files.get_upload(file_id, current_user.id)
    except QuizFlowError as e:
        raise to_http_exception(e)
    text = upload.extracted_text or ""
    return FileUploadDetailResponse(
        **_upload_to_response(upload).model_dump(),
        extracted_text=upload.extracted_text,
        character_count=len(text),
    )


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    file_id: str,
    current_user: User = Depends(get_current_user),
    files: FileService = Depends(get_file_service),
):
    try:
        files.delete_upload(file_id, current_user.id)
    except QuizFlowError as e:
        raise to_http_exception(e)
