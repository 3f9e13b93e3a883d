"""Subscription lookup, usage counting and plan-limit enforcement."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Literal, Optional
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.errors import PlanLimitError
from smartledger.config import get_settings
from smartledger.database.models import (
    BillingInterval,
    Client,
    Invoice,
    MemberStatus,
    PlanType,
    Subscription,
    SubscriptionStatus,
    TeamMember,
    TeamRole,
)
from smartledger.subscriptions import plans

logger = structlog.get_logger(__name__)

UsageKind = Literal["users", "invoices", "clients"]


def _aware(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored values are UTC."""

    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


@dataclass
class Usage:
    users: int = 1
    monthly_invoices: int = 0
    total_invoices: int = 0
    total_clients: int = 0


@dataclass
class SubscriptionState:
    """Subscription record plus current usage, with the derived gate checks."""

    subscription: Subscription
    usage: Usage
    now: datetime

    @property
    def plan(self) -> PlanType:
        return plans.get_plan_config(self.subscription.plan).id

    @property
    def limits(self) -> plans.PlanLimits:
        return plans.get_plan_limits(self.plan)

    def has_feature(self, feature: str) -> bool:
        return plans.has_feature(self.plan, feature)

    def can_add_users(self) -> bool:
        return plans.can_add_more_users(self.plan, self.usage.users)

    def can_create_invoice(self) -> bool:
        return plans.can_create_invoice(self.plan, self.usage.monthly_invoices)

    def can_add_clients(self) -> bool:
        return plans.can_add_clients(self.plan, self.usage.total_clients)

    def usage_percentage(self, kind: UsageKind) -> Decimal:
        """Percent of the limit in use; 0 for unlimited limits."""

        pairs = {
            "users": (self.usage.users, self.limits.users),
            "invoices": (self.usage.monthly_invoices, self.limits.monthly_invoices),
            "clients": (self.usage.total_clients, self.limits.total_clients),
        }
        if kind not in pairs:
            return Decimal("0")
        current, limit = pairs[kind]
        if limit == plans.UNLIMITED or limit == 0:
            return Decimal("0")
        return Decimal(current) / Decimal(limit) * 100

    def is_near_limit(self, kind: UsageKind) -> bool:
        ratio = self.usage_percentage(kind) / 100
        return plans.WARNING_THRESHOLD <= ratio < 1

    def is_critical_limit(self, kind: UsageKind) -> bool:
        ratio = self.usage_percentage(kind) / 100
        return plans.CRITICAL_THRESHOLD <= ratio < 1

    def is_trialing(self) -> bool:
        trial_end = self.subscription.trial_end
        return (
            self.subscription.status == SubscriptionStatus.TRIALING.value
            and trial_end is not None
            and _aware(trial_end) > self.now
        )

    def trial_days_left(self) -> int:
        if not self.is_trialing():
            return 0
        remaining = _aware(self.subscription.trial_end) - self.now
        return max(0, math.ceil(remaining.total_seconds() / 86400))

    def is_active(self) -> bool:
        return self.subscription.status == SubscriptionStatus.ACTIVE.value or self.is_trialing()

    def require_active(self) -> None:
        if not self.is_active():
            logger.info("write_blocked_inactive", user_id=self.subscription.user_id, status=self.subscription.status)
            raise PlanLimitError("Subscription is not active. Choose a plan to continue.")

    def require_feature(self, feature: str) -> None:
        if not self.has_feature(feature):
            logger.info("feature_blocked", user_id=self.subscription.user_id, plan=self.plan.value, feature=feature)
            raise PlanLimitError(f"Your {plans.get_plan_config(self.plan).display_name} plan does not include {feature}")


class SubscriptionService:
    """Load the account subscription and its usage counters."""

    def __init__(self, trial_days: Optional[int] = None) -> None:
        self._trial_days = get_settings().trial_days if trial_days is None else trial_days

    async def get_or_create(self, session: AsyncSession, account_id: str) -> Subscription:
        """Return the account subscription, starting a trial when none exists."""

        result = await session.execute(select(Subscription).where(Subscription.user_id == account_id).limit(1))
        subscription = result.scalar_one_or_none()
        if subscription is not None:
            return subscription

        now = datetime.now(timezone.utc)
        trial_end = now + timedelta(days=self._trial_days)
        subscription = Subscription(
            user_id=account_id,
            plan=PlanType.SIMPLE_START.value,
            interval=BillingInterval.MONTHLY.value,
            status=SubscriptionStatus.TRIALING.value,
            trial_end=trial_end,
            current_period_start=now,
            current_period_end=trial_end,
            cancel_at_period_end=False,
        )
        session.add(subscription)
        await session.flush()
        await session.commit()
        logger.info("subscription_trial_started", user_id=account_id, trial_end=trial_end.isoformat())
        return subscription

    async def load_usage(self, session: AsyncSession, account_id: str) -> Usage:
        """Count team seats, invoices and clients for limit checks."""

        settings = get_settings()
        tz = ZoneInfo(settings.timezone)
        today = datetime.now(tz).date()
        month_start = datetime.combine(today.replace(day=1), time.min, tzinfo=tz)

        team_count = await session.scalar(
            select(func.count(TeamMember.id)).where(
                TeamMember.team_id == account_id,
                TeamMember.status.in_((MemberStatus.ACTIVE.value, MemberStatus.INVITED.value)),
                TeamMember.role != TeamRole.OWNER.value,
            )
        )
        client_count = await session.scalar(select(func.count(Client.id)).where(Client.user_id == account_id))
        total_invoices = await session.scalar(select(func.count(Invoice.id)).where(Invoice.user_id == account_id))
        monthly_invoices = await session.scalar(
            select(func.count(Invoice.id)).where(Invoice.user_id == account_id, Invoice.created_at >= month_start)
        )

        return Usage(
            users=int(team_count or 0) + 1,
            monthly_invoices=int(monthly_invoices or 0),
            total_invoices=int(total_invoices or 0),
            total_clients=int(client_count or 0),
        )

    async def load_state(self, session: AsyncSession, account_id: str) -> SubscriptionState:
        subscription = await self.get_or_create(session, account_id)
        usage = await self.load_usage(session, account_id)
        return SubscriptionState(subscription=subscription, usage=usage, now=datetime.now(timezone.utc))

    async def change_plan(
        self,
        session: AsyncSession,
        account_id: str,
        plan: PlanType,
        interval: BillingInterval,
        stripe_customer_id: Optional[str] = None,
        stripe_subscription_id: Optional[str] = None,
    ) -> Subscription:
        """Apply a plan change confirmed by the payment provider."""

        subscription = await self.get_or_create(session, account_id)
        previous = subscription.plan
        now = datetime.now(timezone.utc)
        period = timedelta(days=365) if interval == BillingInterval.YEARLY else timedelta(days=30)

        subscription.plan = plan.value
        subscription.interval = interval.value
        subscription.status = SubscriptionStatus.ACTIVE.value
        subscription.current_period_start = now
        subscription.current_period_end = now + period
        subscription.cancel_at_period_end = False
        if stripe_customer_id:
            subscription.stripe_customer_id = stripe_customer_id
        if stripe_subscription_id:
            subscription.stripe_subscription_id = stripe_subscription_id

        await session.flush()
        await session.commit()
        logger.info("subscription_plan_changed", user_id=account_id, previous=previous, plan=plan.value)
        return subscription

    async def cancel(self, session: AsyncSession, account_id: str) -> Subscription:
        """Mark the subscription to end with the current period."""

        subscription = await self.get_or_create(session, account_id)
        subscription.cancel_at_period_end = True
        await session.flush()
        await session.commit()
        logger.info("subscription_cancel_requested", user_id=account_id)
        return subscription
