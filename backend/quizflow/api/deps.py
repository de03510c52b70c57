"""
Shared dependencies: get_current_user from Bearer token, require_admin, service factories, and the
translation of service errors into HTTP responses.
"""
import logging
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from quizflow.config import settings
from quizflow.database import get_db
from quizflow.errors import (
    InputError,
    NotFoundError,
    QuestionGenerationError,
    QuizGenerationError,
    QuotaExceededError,
    UpstreamMisconfiguredError,
    UpstreamSaturatedError,
)
from quizflow.models.user import User
from quizflow.services.analytics import AnalyticsService
from quizflow.services.auth import decode_access_token
from quizflow.services.file_service import FileService
from quizflow.services.qti_package import QtiPackageBuilder
from quizflow.services.quiz_service import QuizService

security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Quiz generation failed, please retry"
BUSY_MESSAGE = "Service temporarily busy, please retry in a moment"


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Require valid Bearer token; return User or 401."""
    if not credentials or not (credentials.credentials or "").strip():
        logger.debug("Auth failed: no Bearer token in request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Send header: Authorization: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    if not payload or "sub" not in payload:
        logger.debug("Auth failed: invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        user_id = UUID(payload["sub"])
    except (TypeError, ValueError):
        user_id = None
    user = db.query(User).filter(User.id == user_id).first() if user_id else None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Current user if they have the ADMIN role; 403 otherwise."""
    if current_user.role != "ADMIN":
        logger.info("Admin route refused for user %s (role=%s)", current_user.id, current_user.role)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


def get_package_builder() -> QtiPackageBuilder:
    return QtiPackageBuilder(settings.storage_root, settings.packages_dir)


def get_file_service(db: Session = Depends(get_db)) -> FileService:
    return FileService(db)


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db)


def get_quiz_service(
    db: Session = Depends(get_db),
    builder: QtiPackageBuilder = Depends(get_package_builder),
) -> QuizService:
    return QuizService(db, builder)


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a service error to an HTTPException. Only InputError messages are shown to the user."""
    if isinstance(exc, QuizGenerationError):
        cause = exc.cause
        if isinstance(cause, (InputError, UpstreamSaturatedError)):
            return to_http_exception(cause)
        if isinstance(cause, (QuestionGenerationError, UpstreamMisconfiguredError)):
            return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=GENERIC_FAILURE_MESSAGE)
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=GENERIC_FAILURE_MESSAGE)
    if isinstance(exc, QuotaExceededError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, InputError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, UpstreamSaturatedError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=BUSY_MESSAGE)
    if isinstance(exc, (QuestionGenerationError, UpstreamMisconfiguredError)):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=GENERIC_FAILURE_MESSAGE)
    detail = GENERIC_FAILURE_MESSAGE
    if settings.debug:
        detail = f"{GENERIC_FAILURE_MESSAGE}: {type(exc).__name__}: {exc}"
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
