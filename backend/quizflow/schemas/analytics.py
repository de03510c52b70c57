"""
Admin analytics response schemas.
"""
from datetime import datetime

from pydantic import BaseModel


class UserStats(BaseModel):
    total: int
    free: int
    pro: int
    active: int
    new_this_month: int
    growth: float  # percent change of new users vs last month


class UsageStats(BaseModel):
    total_quizzes: int
    total_uploads: int
    quizzes_this_month: int
    uploads_this_month: int
    average_questions_per_quiz: float


class DailyCount(BaseModel):
    date: str  # YYYY-MM-DD (UTC)
    count: int


class Trends(BaseModel):
    user_growth: list[DailyCount]
    quiz_generation: list[DailyCount]


class AnalyticsResponse(BaseModel):
    users: UserStats
    usage: UsageStats
    trends: Trends
    generated_at: datetime
