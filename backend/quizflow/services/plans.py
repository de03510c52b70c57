"""
Plan/Usage Gate: plan name -> limits (questions per quiz, watermark, weekly upload quota).
The table is passed into services explicitly so tests can substitute their own.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from quizflow.errors import UnknownPlanError

UPLOAD_WINDOW_DAYS = 7


@dataclass(frozen=True)
class PlanLimits:
    plan_name: str
    max_questions_per_quiz: int
    has_watermark: bool
    upload_quota: int | None  # uploads per UPLOAD_WINDOW_DAYS; None = unlimited

    @property
    def unlimited_uploads(self) -> bool:
        return self.upload_quota is None

    def clamp_question_count(self, requested: int | None) -> int:
        """Requested count (plan max when omitted) capped at the plan max."""
        if requested is None:
            return self.max_questions_per_quiz
        return min(requested, self.max_questions_per_quiz)


class PlanTable:
    """Read-only lookup over a closed set of plans."""

    def __init__(self, plans: Mapping[str, PlanLimits]):
        if not plans:
            raise ValueError("plan table must not be empty")
        self._plans = MappingProxyType(dict(plans))

    def limits_for(self, plan_name: str) -> PlanLimits:
        try:
            return self._plans[plan_name]
        except KeyError:
            raise UnknownPlanError(f"Unknown plan: {plan_name!r} (known: {', '.join(sorted(self._plans))})") from None

    @property
    def plan_names(self) -> list[str]:
        return sorted(self._plans)


FREE = PlanLimits(plan_name="FREE", max_questions_per_quiz=5, has_watermark=True, upload_quota=1)
PRO = PlanLimits(plan_name="PRO", max_questions_per_quiz=30, has_watermark=False, upload_quota=None)

DEFAULT_PLAN_TABLE = PlanTable({FREE.plan_name: FREE, PRO.plan_name: PRO})


def limits_for(plan_name: str) -> PlanLimits:
    """Lookup against the production table."""
    return DEFAULT_PLAN_TABLE.limits_for(plan_name)
