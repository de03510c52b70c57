"""
Platform analytics for admins: user counts by plan, activity, monthly growth, quiz and upload
volume, and 30-day daily trends. Timestamps are compared in UTC.
"""
import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from quizflow.models.file_upload import FileUpload
from quizflow.models.quiz import Quiz
from quizflow.models.usage_record import UsageRecord
from quizflow.models.user import User
from quizflow.schemas.analytics import AnalyticsResponse, DailyCount, Trends, UsageStats, UserStats

logger = logging.getLogger(__name__)

ACTIVE_WINDOW_DAYS = 30
TREND_DAYS = 30


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def previous_month_start(now: datetime) -> datetime:
    return month_start(month_start(now) - timedelta(days=1))


def growth_percent(current: int, previous: int) -> float:
    """Percent change; 100 when there was nothing to compare against but something now."""
    if previous > 0:
        return round((current - previous) / previous * 100, 2)
    return 100.0 if current > 0 else 0.0


def _utc_day(value: datetime) -> date:
    # SQLite hands back naive datetimes that are already UTC
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def _count(self, model, column, since: datetime | None = None, until: datetime | None = None) -> int:
        q = self.db.query(func.count()).select_from(model)
        if since is not None:
            q = q.filter(column >= since)
        if until is not None:
            q = q.filter(column < until)
        return q.scalar() or 0

    def user_stats(self, now: datetime) -> UserStats:
        by_plan = dict(self.db.query(User.plan, func.count(User.id)).group_by(User.plan).all())
        this_month = month_start(now)
        new_this_month = self._count(User, User.created_at, since=this_month)
        new_last_month = self._count(User, User.created_at, since=previous_month_start(now), until=this_month)
        # Active means the user did something metered in the window
        active = (
            self.db.query(func.count(func.distinct(UsageRecord.user_id)))
            .filter(UsageRecord.created_at >= now - timedelta(days=ACTIVE_WINDOW_DAYS))
            .scalar()
        ) or 0
        return UserStats(
            total=sum(by_plan.values()),
            free=by_plan.get("FREE", 0),
            pro=by_plan.get("PRO", 0),
            active=active,
            new_this_month=new_this_month,
            growth=growth_percent(new_this_month, new_last_month),
        )

    def usage_stats(self, now: datetime) -> UsageStats:
        this_month = month_start(now)
        average = self.db.query(func.avg(Quiz.question_count)).scalar()
        return UsageStats(
            total_quizzes=self._count(Quiz, Quiz.created_at),
            total_uploads=self._count(FileUpload, FileUpload.created_at),
            quizzes_this_month=self._count(Quiz, Quiz.created_at, since=this_month),
            uploads_this_month=self._count(FileUpload, FileUpload.created_at, since=this_month),
            average_questions_per_quiz=round(float(average), 2) if average is not None else 0.0,
        )

    def _daily(self, column, days: list[date], since: datetime) -> list[DailyCount]:
        counts = dict.fromkeys(days, 0)
        for (created_at,) in self.db.query(column).filter(column >= since):
            if created_at is None:
                continue
            day = _utc_day(created_at)
            if day in counts:
                counts[day] += 1
        return [DailyCount(date=d.isoformat(), count=counts[d]) for d in days]

    def trends(self, now: datetime) -> Trends:
        today = now.date()
        days = [today - timedelta(days=offset) for offset in range(TREND_DAYS - 1, -1, -1)]
        since = datetime(days[0].year, days[0].month, days[0].day, tzinfo=timezone.utc)
        return Trends(
            user_growth=self._daily(User.created_at, days, since),
            quiz_generation=self._daily(Quiz.created_at, days, since),
        )

    def overview(self, now: datetime | None = None) -> AnalyticsResponse:
        now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        result = AnalyticsResponse(
            users=self.user_stats(now),
            usage=self.usage_stats(now),
            trends=self.trends(now),
            generated_at=now,
        )
        logger.info(
            "Analytics computed: users=%s quizzes=%s uploads=%s",
            result.users.total, result.usage.total_quizzes, result.usage.total_uploads,
        )
        return result
