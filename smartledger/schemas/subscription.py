"""Subscription and plan schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from smartledger.database.models import BillingInterval, PlanType


class PlanLimitsRead(BaseModel):
    users: int
    monthly_invoices: int
    total_clients: int
    total_invoices: int


class PlanRead(BaseModel):
    id: PlanType
    display_name: str
    description: str
    monthly_price: Decimal
    yearly_price: Decimal
    trial_days: int
    limits: PlanLimitsRead
    features: list[str]


class UsageRead(BaseModel):
    users: int
    monthly_invoices: int
    total_invoices: int
    total_clients: int


class UsagePercentages(BaseModel):
    users: Decimal
    invoices: Decimal
    clients: Decimal


class SubscriptionRead(BaseModel):
    """Subscription record with usage and the derived gate flags."""

    plan: PlanType
    interval: BillingInterval
    status: str
    trial_end: Optional[datetime]
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool
    is_active: bool
    is_trialing: bool
    trial_days_left: int
    usage: UsageRead
    usage_percentage: UsagePercentages
    near_limit: list[str]
    critical_limit: list[str]
    limits: PlanLimitsRead
    features: list[str]


class PlanChangeRequest(BaseModel):
    plan: Optional[PlanType] = None
    interval: BillingInterval = BillingInterval.MONTHLY
    price_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
