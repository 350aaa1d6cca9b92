"""Plan-based limits on active resumes.

Single source of truth for the quota of each plan. None means unlimited.
"""

from dataclasses import dataclass
from datetime import datetime

from ..auth.schemas import UserRecord
from ..errors import QuotaExceeded
from ..storage.clock import utcnow

PLAN_LIMITS: dict[str, int | None] = {
    "free": 1,
    "pro": None,
    "enterprise": None,
}


@dataclass(frozen=True)
class PlanDecision:
    allowed: bool
    plan: str
    limit: int | None
    upgrade_available: bool = False

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise QuotaExceeded(self.plan, self.limit, self.upgrade_available)


def effective_plan(user: UserRecord, now: datetime | None = None) -> str:
    """The plan the user is billed on right now; lapsed paid plans count as free."""
    plan = user.plan if user.plan in PLAN_LIMITS else "free"
    if plan != "free" and user.plan_expires_at is not None:
        if user.plan_expires_at <= (now or utcnow()):
            return "free"
    return plan


def can_create(user: UserRecord, current_active_count: int, now: datetime | None = None) -> PlanDecision:
    plan = effective_plan(user, now)
    limit = PLAN_LIMITS[plan]
    if limit is None or current_active_count < limit:
        return PlanDecision(allowed=True, plan=plan, limit=limit)
    return PlanDecision(allowed=False, plan=plan, limit=limit, upgrade_available=True)
