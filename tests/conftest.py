"""
Pytest fixtures for the tax engine test suite.

Everything runs against the in-memory stores; no Firebase project is
needed. The property ``prop-1`` belongs to ``owner-1``; ``prop-other``
belongs to somebody else.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from core.tax_rules import load_tax_rules
from models.property import ExpenseRecord, PaymentTransaction, PropertyRecord
from services.financial_data_service import FinancialDataResolver
from services.property_store import InMemoryPropertyStore
from services.tax_calculation_repository import InMemoryTaxCalculationRepository
from services.tax_lifecycle_service import TaxLifecycleService
from services.tax_service import TaxService
from services.tax_settings_service import InMemoryTaxSettingsRepository, TaxSettingsService

OWNER = "owner-1"
PROPERTY = "prop-1"


class SteppingClock:
    """Deterministic clock: every call is one minute after the previous."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        self.calls = 0

    def __call__(self) -> datetime:
        value = self.current + timedelta(minutes=self.calls)
        self.calls += 1
        return value


@pytest.fixture
def rules():
    return load_tax_rules()


@pytest.fixture
def store():
    store = InMemoryPropertyStore()
    store.add_property(PropertyRecord(
        id=PROPERTY,
        owner_id=OWNER,
        name="Lekki Court",
        purchase_price=Decimal("40000000"),
        current_value=Decimal("60000000"),
    ))
    store.add_property(PropertyRecord(id="prop-other", owner_id="owner-2", name="Not yours"))
    return store


def add_payment(store, amount, paid_at, status="completed", property_id=PROPERTY, type="rent"):
    return store.add_payment(PaymentTransaction(
        property_id=property_id,
        amount=Decimal(str(amount)),
        status=status,
        type=type,
        paid_at=paid_at,
    ))


def add_expense(store, amount, category, paid_date=None, status="paid", property_id=PROPERTY, expense_date=None):
    return store.add_expense(ExpenseRecord(
        property_id=property_id,
        category=category,
        amount=Decimal(str(amount)),
        status=status,
        date=expense_date,
        paid_date=paid_date,
    ))


@pytest.fixture
def seeded_store(store):
    """2026: 5,000,000 rent received, 1,000,000 deductible expenses."""
    add_payment(store, 2_500_000, datetime(2026, 1, 15))
    add_payment(store, 2_500_000, datetime(2026, 7, 15), status="success")
    add_expense(store, 600_000, "Maintenance", paid_date=datetime(2026, 2, 10))
    add_expense(store, 400_000, "Insurance", paid_date=datetime(2026, 5, 3), status="pending")
    return store


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def calculation_repository():
    return InMemoryTaxCalculationRepository()


@pytest.fixture
def settings_service(clock):
    return TaxSettingsService(InMemoryTaxSettingsRepository(), default_currency="NGN", now=clock)


@pytest.fixture
def lifecycle(calculation_repository, clock):
    return TaxLifecycleService(calculation_repository, now=clock)


@pytest.fixture
def tax_service(seeded_store, rules, settings_service, lifecycle):
    return TaxService(
        resolver=FinancialDataResolver(seeded_store, rules),
        settings_service=settings_service,
        lifecycle=lifecycle,
        rules=rules,
    )


@pytest.fixture
def client(tax_service):
    from api.deps import get_owner_id, get_tax_service
    from main import app

    app.dependency_overrides[get_tax_service] = lambda: tax_service
    app.dependency_overrides[get_owner_id] = lambda: OWNER
    # Без контекстного менеджера lifespan не запускається (Firebase не потрібен)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fiscal_start():
    return date(2026, 1, 1)
