"""
Admin API: platform analytics. Requires an authenticated user with the ADMIN role.
"""
from fastapi import APIRouter, Depends

from quizflow.api.deps import get_analytics_service, require_admin
from quizflow.models.user import User
from quizflow.schemas.analytics import AnalyticsResponse
from quizflow.services.analytics import AnalyticsService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(
    admin: User = Depends(require_admin),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    """User, usage and 30-day trend figures across all accounts."""
    return analytics.overview()
