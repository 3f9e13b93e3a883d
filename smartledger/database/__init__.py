"""Database package exports."""

from smartledger.database.base import Base
from smartledger.database.models import (
    Category,
    Client,
    ExportRecord,
    Expense,
    Income,
    Invoice,
    InvoiceItem,
    Subscription,
    TeamMember,
    Vendor,
)

__all__ = [
    "Base",
    "Category",
    "Client",
    "Vendor",
    "Income",
    "Expense",
    "Invoice",
    "InvoiceItem",
    "Subscription",
    "TeamMember",
    "ExportRecord",
]
