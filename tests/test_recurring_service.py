from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from smartledger.api.errors import NotFoundError, PlanLimitError, ValidationError
from smartledger.database.models import Client, InvoiceStatus, PlanType, RecurringFrequency
from smartledger.schemas.recurring import RecurringInvoiceCreate, RecurringInvoiceUpdate
from smartledger.services.invoice_service import InvoiceService
from smartledger.services.recurring_service import RecurringInvoiceService, add_months, advance

ACCOUNT = "owner-1"


def _template(**overrides) -> RecurringInvoiceCreate:
    data = {
        "next_date": date(2024, 1, 31),
        "tax_rate": Decimal("10"),
        "payment_terms_days": 15,
        "items": [{"description": "Retainer", "quantity": "2", "rate": "50"}],
    }
    data.update(overrides)
    return RecurringInvoiceCreate(**data)


def test_advance_by_frequency() -> None:
    start = date(2024, 1, 31)

    assert advance(start, RecurringFrequency.WEEKLY) == date(2024, 2, 7)
    assert advance(start, RecurringFrequency.BIWEEKLY) == date(2024, 2, 14)
    assert advance(start, RecurringFrequency.MONTHLY) == date(2024, 2, 29)
    assert advance(start, RecurringFrequency.QUARTERLY) == date(2024, 4, 30)
    assert advance(start, RecurringFrequency.YEARLY) == date(2025, 1, 31)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


@pytest.mark.asyncio
async def test_templates_need_the_recurring_feature(
    session_factory: async_sessionmaker[AsyncSession], make_state
) -> None:
    service = RecurringInvoiceService("USD")

    async with session_factory() as session:
        with pytest.raises(PlanLimitError):
            await service.create_template(session, ACCOUNT, make_state(PlanType.SIMPLE_START), _template())
        with pytest.raises(PlanLimitError):
            await service.generate_due(session, ACCOUNT, make_state(PlanType.SIMPLE_START), date(2024, 3, 1))
        template = await service.create_template(session, ACCOUNT, make_state(PlanType.ESSENTIALS), _template())
        with pytest.raises(PlanLimitError):
            await service.update_template(
                session, ACCOUNT, make_state(PlanType.SIMPLE_START), template.id, RecurringInvoiceUpdate(notes="x")
            )


@pytest.mark.asyncio
async def test_template_crud(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = RecurringInvoiceService("usd")

    async with session_factory() as session:
        foreign = Client(user_id="owner-2", name="Theirs")
        session.add(foreign)
        await session.commit()

        with pytest.raises(ValidationError):
            await service.create_template(session, ACCOUNT, make_state(), _template(client_id=foreign.id))
        template = await service.create_template(session, ACCOUNT, make_state(), _template())
        paused = await service.update_template(
            session, ACCOUNT, make_state(), template.id, RecurringInvoiceUpdate(is_active=False)
        )
        active = await service.list_templates(session, ACCOUNT, active=True)
        with pytest.raises(ValidationError):
            await service.update_template(
                session, ACCOUNT, make_state(), template.id, RecurringInvoiceUpdate(end_date=date(2023, 12, 1))
            )
        with pytest.raises(NotFoundError):
            await service.get_template(session, "owner-2", template.id)
        await service.delete_template(session, ACCOUNT, make_state(), template.id)
        remaining = await service.list_templates(session, ACCOUNT)

    assert template.currency == "USD"
    assert template.frequency == RecurringFrequency.MONTHLY.value
    assert template.items == [{"description": "Retainer", "quantity": "2", "rate": "50"}]
    assert paused.is_active is False
    assert active == []
    assert remaining == []

    with pytest.raises(PydanticValidationError):
        _template(end_date=date(2024, 1, 1))
    with pytest.raises(PydanticValidationError):
        _template(items=[])


@pytest.mark.asyncio
async def test_generate_due_catches_up_and_advances(
    session_factory: async_sessionmaker[AsyncSession], make_state
) -> None:
    changes: list[str] = []
    service = RecurringInvoiceService("USD", on_change=changes.append)
    invoices = InvoiceService("USD")

    async with session_factory() as session:
        template = await service.create_template(session, ACCOUNT, make_state(), _template())
        future = await service.create_template(session, ACCOUNT, make_state(), _template(next_date=date(2024, 6, 1)))

        first = await service.generate_due(session, ACCOUNT, make_state(), date(2024, 3, 30))
        again = await service.generate_due(session, ACCOUNT, make_state(), date(2024, 3, 30))
        issued = [await invoices.get_invoice(session, ACCOUNT, invoice_id) for invoice_id in first]
        refreshed = await service.get_template(session, ACCOUNT, template.id)
        untouched = await service.get_template(session, ACCOUNT, future.id)

    assert len(first) == 3
    assert again == []
    assert [invoice.date for invoice in issued] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 29)]
    assert [invoice.invoice_number for invoice in issued] == ["INV-0001", "INV-0002", "INV-0003"]
    assert issued[0].due_date == date(2024, 2, 15)
    assert all(invoice.status == InvoiceStatus.DRAFT.value for invoice in issued)
    assert issued[0].subtotal == Decimal("100.00")
    assert issued[0].tax_amount == Decimal("10.00")
    assert issued[0].total == Decimal("110.00")
    assert [item.description for item in issued[0].items] == ["Retainer"]
    assert refreshed.last_generated == date(2024, 3, 29)
    assert refreshed.next_date == date(2024, 4, 29)
    assert refreshed.is_active is True
    assert untouched.next_date == date(2024, 6, 1)
    assert changes == [ACCOUNT]


@pytest.mark.asyncio
async def test_generate_due_stops_at_end_date(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = RecurringInvoiceService("USD")

    async with session_factory() as session:
        template = await service.create_template(
            session,
            ACCOUNT,
            make_state(),
            _template(next_date=date(2024, 1, 1), frequency=RecurringFrequency.WEEKLY, end_date=date(2024, 1, 10)),
        )
        paused = await service.create_template(session, ACCOUNT, make_state(), _template(next_date=date(2024, 1, 1)))
        await service.update_template(session, ACCOUNT, make_state(), paused.id, RecurringInvoiceUpdate(is_active=False))

        generated = await service.generate_due(session, ACCOUNT, make_state(), date(2024, 2, 1))
        refreshed = await service.get_template(session, ACCOUNT, template.id)

    assert len(generated) == 2
    assert refreshed.last_generated == date(2024, 1, 8)
    assert refreshed.is_active is False
