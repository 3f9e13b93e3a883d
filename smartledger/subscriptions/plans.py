"""Static subscription plan table: feature flags and usage limits per tier."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Optional

from smartledger.database.models import BillingInterval, PlanType

UNLIMITED = -1

# Usage ratios that trigger the near-limit and critical-limit warnings.
WARNING_THRESHOLD = Decimal("0.8")
CRITICAL_THRESHOLD = Decimal("0.95")


@dataclass(frozen=True)
class PlanLimits:
    """Numeric usage limits; UNLIMITED (-1) disables a limit."""

    users: int
    monthly_invoices: int
    total_clients: int
    total_invoices: int


@dataclass(frozen=True)
class PlanFeatures:
    """Boolean feature table."""

    # Basic features (every plan)
    income_expense_tracking: bool = True
    basic_reports: bool = True
    invoice_creation: bool = True
    client_management: bool = True
    category_management: bool = True
    export_pdf: bool = True
    email_support: bool = True

    # Essentials and up
    multi_currency: bool = False
    recurring_invoices: bool = False
    invoice_templates: bool = False
    advanced_reports: bool = False
    tax_management: bool = False
    priority_support: bool = False
    advanced_exports: bool = False

    # Plus
    unlimited_invoices: bool = False
    custom_invoice_branding: bool = False
    advanced_tax_reports: bool = False
    profit_loss_statements: bool = False
    cash_flow_analysis: bool = False
    budget_tracking: bool = False
    phone_support: bool = False
    api_access: bool = False
    audit_trail: bool = False
    team_permissions: bool = False
    dedicated_support: bool = False


FEATURE_NAMES: frozenset[str] = frozenset(f.name for f in fields(PlanFeatures))


@dataclass(frozen=True)
class PlanConfig:
    id: PlanType
    display_name: str
    description: str
    monthly_price: Decimal
    yearly_price: Decimal
    trial_days: int
    limits: PlanLimits
    features: PlanFeatures

    def enabled_features(self) -> list[str]:
        return sorted(name for name in FEATURE_NAMES if getattr(self.features, name))


_ESSENTIALS_FEATURES = PlanFeatures(
    multi_currency=True,
    recurring_invoices=True,
    invoice_templates=True,
    advanced_reports=True,
    tax_management=True,
    priority_support=True,
    advanced_exports=True,
)

SUBSCRIPTION_PLANS: dict[PlanType, PlanConfig] = {
    PlanType.SIMPLE_START: PlanConfig(
        id=PlanType.SIMPLE_START,
        display_name="Simple Start",
        description="Perfect for freelancers and solopreneurs",
        monthly_price=Decimal("5"),
        yearly_price=Decimal("48"),
        trial_days=30,
        limits=PlanLimits(users=1, monthly_invoices=50, total_clients=UNLIMITED, total_invoices=UNLIMITED),
        features=PlanFeatures(),
    ),
    PlanType.ESSENTIALS: PlanConfig(
        id=PlanType.ESSENTIALS,
        display_name="Essentials",
        description="Great for small businesses with a team",
        monthly_price=Decimal("25"),
        yearly_price=Decimal("240"),
        trial_days=30,
        limits=PlanLimits(users=3, monthly_invoices=UNLIMITED, total_clients=UNLIMITED, total_invoices=UNLIMITED),
        features=_ESSENTIALS_FEATURES,
    ),
    PlanType.PLUS: PlanConfig(
        id=PlanType.PLUS,
        display_name="Plus",
        description="For growing businesses that need more",
        monthly_price=Decimal("45"),
        yearly_price=Decimal("432"),
        trial_days=30,
        limits=PlanLimits(users=10, monthly_invoices=UNLIMITED, total_clients=UNLIMITED, total_invoices=UNLIMITED),
        features=replace(
            _ESSENTIALS_FEATURES,
            unlimited_invoices=True,
            custom_invoice_branding=True,
            advanced_tax_reports=True,
            profit_loss_statements=True,
            cash_flow_analysis=True,
            budget_tracking=True,
            phone_support=True,
            audit_trail=True,
            team_permissions=True,
        ),
    ),
}

STRIPE_PRICE_IDS: dict[PlanType, dict[BillingInterval, str]] = {
    PlanType.SIMPLE_START: {
        BillingInterval.MONTHLY: "price_1RcoIWGO7FUbyUUTISN9YYXC",
        BillingInterval.YEARLY: "price_1RcoIWGO7FUbyUUTE4NsZ1Kk",
    },
    PlanType.ESSENTIALS: {
        BillingInterval.MONTHLY: "price_1RcoJoGO7FUbyUUTKJY7puAN",
        BillingInterval.YEARLY: "price_1RcoJoGO7FUbyUUT46R68hkS",
    },
    PlanType.PLUS: {
        BillingInterval.MONTHLY: "price_1RcoLUGO7FUbyUUTNtBKEIHe",
        BillingInterval.YEARLY: "price_1RcoLUGO7FUbyUUTYFuP5QvE",
    },
}


def _coerce_plan(plan: str | PlanType) -> Optional[PlanType]:
    try:
        return PlanType(plan)
    except ValueError:
        return None


def get_plan_config(plan: str | PlanType) -> PlanConfig:
    """Return plan config, falling back to the entry tier for unknown plans."""

    return SUBSCRIPTION_PLANS.get(_coerce_plan(plan), SUBSCRIPTION_PLANS[PlanType.SIMPLE_START])


def has_feature(plan: str | PlanType, feature: str) -> bool:
    """Return whether the plan enables the feature; unknown plans or features are off."""

    resolved = _coerce_plan(plan)
    if resolved is None or feature not in FEATURE_NAMES:
        return False
    return bool(getattr(SUBSCRIPTION_PLANS[resolved].features, feature))


def get_plan_limits(plan: str | PlanType) -> PlanLimits:
    return get_plan_config(plan).limits


def _under_limit(limit: int, current: int) -> bool:
    if limit == UNLIMITED:
        return True
    return current < limit


def can_add_more_users(plan: str | PlanType, current_users: int) -> bool:
    return _under_limit(get_plan_limits(plan).users, current_users)


def can_create_invoice(plan: str | PlanType, current_monthly_invoices: int) -> bool:
    return _under_limit(get_plan_limits(plan).monthly_invoices, current_monthly_invoices)


def can_add_clients(plan: str | PlanType, current_clients: int) -> bool:
    return _under_limit(get_plan_limits(plan).total_clients, current_clients)


def plan_for_price_id(price_id: str) -> Optional[tuple[PlanType, BillingInterval]]:
    """Map a Stripe price id back to its plan and billing interval."""

    for plan, prices in STRIPE_PRICE_IDS.items():
        for interval, candidate in prices.items():
            if candidate == price_id:
                return plan, interval
    return None
