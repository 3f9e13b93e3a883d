"""Subscription and plan endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_session, get_subscription_service, get_subscription_state
from smartledger.api.errors import PlanLimitError, ValidationError
from smartledger.schemas.subscription import (
    PlanChangeRequest,
    PlanLimitsRead,
    PlanRead,
    SubscriptionRead,
    UsagePercentages,
    UsageRead,
)
from smartledger.services.team_service import AccountContext
from smartledger.subscriptions import plans
from smartledger.subscriptions.service import SubscriptionService, SubscriptionState

router = APIRouter(prefix="/subscription", tags=["subscription"])

USAGE_KINDS = ("users", "invoices", "clients")


def subscription_read(state: SubscriptionState) -> SubscriptionRead:
    """Flatten the subscription state into its API shape."""

    sub = state.subscription
    config = plans.get_plan_config(state.plan)
    return SubscriptionRead(
        plan=state.plan,
        interval=sub.interval,
        status=sub.status,
        trial_end=sub.trial_end,
        current_period_start=sub.current_period_start,
        current_period_end=sub.current_period_end,
        cancel_at_period_end=sub.cancel_at_period_end,
        is_active=state.is_active(),
        is_trialing=state.is_trialing(),
        trial_days_left=state.trial_days_left(),
        usage=UsageRead(**asdict(state.usage)),
        usage_percentage=UsagePercentages(
            users=state.usage_percentage("users"),
            invoices=state.usage_percentage("invoices"),
            clients=state.usage_percentage("clients"),
        ),
        near_limit=[kind for kind in USAGE_KINDS if state.is_near_limit(kind)],
        critical_limit=[kind for kind in USAGE_KINDS if state.is_critical_limit(kind)],
        limits=PlanLimitsRead(**asdict(state.limits)),
        features=config.enabled_features(),
    )


def plan_read(config: plans.PlanConfig) -> PlanRead:
    return PlanRead(
        id=config.id,
        display_name=config.display_name,
        description=config.description,
        monthly_price=config.monthly_price,
        yearly_price=config.yearly_price,
        trial_days=config.trial_days,
        limits=PlanLimitsRead(**asdict(config.limits)),
        features=config.enabled_features(),
    )


@router.get("", response_model=SubscriptionRead)
async def get_subscription(state: SubscriptionState = Depends(get_subscription_state)) -> SubscriptionRead:
    """Current plan, usage and limit warnings of the account."""

    return subscription_read(state)


@router.get("/plans", response_model=list[PlanRead])
async def list_plans() -> list[PlanRead]:
    return [plan_read(config) for config in plans.SUBSCRIPTION_PLANS.values()]


@router.post("/plan", response_model=SubscriptionRead)
async def change_plan(
    payload: PlanChangeRequest,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionRead:
    """Apply a plan change confirmed by checkout, by plan or by price id."""

    if not account.can_manage_team:
        raise PlanLimitError("Only team owners and admins can change the plan")

    plan, interval = payload.plan, payload.interval
    if payload.price_id:
        resolved = plans.plan_for_price_id(payload.price_id)
        if resolved is None:
            raise ValidationError(f"Unknown price id: {payload.price_id}")
        plan, interval = resolved
    if plan is None:
        raise ValidationError("Either plan or price_id is required")

    await service.change_plan(
        session,
        account.account_id,
        plan,
        interval,
        stripe_customer_id=payload.stripe_customer_id,
        stripe_subscription_id=payload.stripe_subscription_id,
    )
    return subscription_read(await service.load_state(session, account.account_id))


@router.post("/cancel", response_model=SubscriptionRead)
async def cancel_subscription(
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionRead:
    if not account.can_manage_team:
        raise PlanLimitError("Only team owners and admins can cancel the subscription")

    await service.cancel(session, account.account_id)
    return subscription_read(await service.load_state(session, account.account_id))
