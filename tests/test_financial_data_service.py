from datetime import datetime, timezone
from decimal import Decimal

import pytest

from conftest import OWNER, PROPERTY, add_expense, add_payment
from core.exceptions import AuthorizationError, ResolutionFailure, TaxValidationError
from models.property import ExpenseRecord, PaymentTransaction
from services.financial_data_service import FinancialDataResolver


@pytest.fixture
def resolver(seeded_store, rules):
    return FinancialDataResolver(seeded_store, rules)


class TestRentalIncome:
    def test_cash_basis_sum(self, resolver):
        facts = resolver.resolve(OWNER, PROPERTY, 2026)
        assert facts.rental_income == Decimal("5000000")
        assert facts.payment_count == 2

    def test_unpaid_and_failed_payments_excluded(self, resolver, seeded_store):
        add_payment(seeded_store, 999, datetime(2026, 4, 1), status="pending")
        add_payment(seeded_store, 999, datetime(2026, 4, 1), status="failed")
        add_payment(seeded_store, 999, None, status="completed")
        assert resolver.resolve(OWNER, PROPERTY, 2026).rental_income == Decimal("5000000")

    def test_non_rent_payments_excluded(self, resolver, seeded_store):
        add_payment(seeded_store, 999, datetime(2026, 4, 1), type="subscription")
        assert resolver.resolve(OWNER, PROPERTY, 2026).rental_income == Decimal("5000000")

    def test_payments_outside_year_excluded(self, resolver, seeded_store):
        add_payment(seeded_store, 111, datetime(2025, 12, 31, 23, 59, 59))
        add_payment(seeded_store, 222, datetime(2027, 1, 1))
        assert resolver.resolve(OWNER, PROPERTY, 2026).rental_income == Decimal("5000000")
        assert resolver.resolve(OWNER, PROPERTY, 2025).rental_income == Decimal("111")

    def test_timezone_aware_dates(self, resolver, seeded_store):
        add_payment(seeded_store, 100, datetime(2026, 12, 31, 22, 0, tzinfo=timezone.utc))
        assert resolver.resolve(OWNER, PROPERTY, 2026).rental_income == Decimal("5000100")

    def test_other_property_payments_excluded(self, resolver, seeded_store):
        add_payment(seeded_store, 999, datetime(2026, 4, 1), property_id="prop-other")
        assert resolver.resolve(OWNER, PROPERTY, 2026).rental_income == Decimal("5000000")


class TestDeductions:
    def test_paid_and_pending_within_year(self, resolver):
        facts = resolver.resolve(OWNER, PROPERTY, 2026)
        assert facts.deductions == Decimal("1000000")
        assert [(e.category, e.amount) for e in facts.expense_breakdown] == [
            ("Maintenance", Decimal("600000")),
            ("Insurance", Decimal("400000")),
        ]

    def test_property_tax_tracked_separately(self, resolver, seeded_store):
        add_expense(seeded_store, 250_000, "Property Tax", paid_date=datetime(2026, 3, 1))
        add_expense(seeded_store, 50_000, "property tax", paid_date=datetime(2026, 4, 1))

        facts = resolver.resolve(OWNER, PROPERTY, 2026)
        assert facts.deductions == Decimal("1000000")
        assert facts.property_taxes == Decimal("300000")
        assert all(e.category.lower() != "property tax" for e in facts.expense_breakdown)

    def test_cancelled_expenses_excluded(self, resolver, seeded_store):
        add_expense(seeded_store, 70_000, "Repairs", paid_date=datetime(2026, 3, 1), status="cancelled")
        assert resolver.resolve(OWNER, PROPERTY, 2026).deductions == Decimal("1000000")

    def test_expense_date_fallback(self, resolver, seeded_store):
        add_expense(seeded_store, 30_000, "Repairs", expense_date=datetime(2026, 8, 1))
        add_expense(seeded_store, 40_000, "Repairs", expense_date=datetime(2026, 8, 1), paid_date=datetime(2027, 1, 2))
        facts = resolver.resolve(OWNER, PROPERTY, 2026)
        assert facts.deductions == Decimal("1030000")

    def test_breakdown_sums_to_deductions(self, resolver, seeded_store):
        add_expense(seeded_store, 600_000, "Insurance", paid_date=datetime(2026, 9, 1))
        add_expense(seeded_store, 5_000, "", paid_date=datetime(2026, 9, 1))
        facts = resolver.resolve(OWNER, PROPERTY, 2026)

        assert sum(e.amount for e in facts.expense_breakdown) == facts.deductions
        assert facts.expense_breakdown[0].category == "Insurance"
        assert facts.expense_breakdown[-1].category == "Uncategorized"

    def test_fresh_per_tax_year(self, resolver):
        assert resolver.resolve(OWNER, PROPERTY, 2026).deductions == Decimal("1000000")
        assert resolver.resolve(OWNER, PROPERTY, 2027).deductions == 0
        assert resolver.resolve(OWNER, PROPERTY, 2026).deductions == Decimal("1000000")


class TestPropertyFacts:
    def test_prices(self, resolver):
        facts = resolver.resolve(OWNER, PROPERTY, 2026)
        assert facts.property_purchase_price == Decimal("40000000")
        # Немає ціни продажу -> поточна вартість
        assert facts.property_sale_price == Decimal("60000000")
        assert facts.property_current_value == Decimal("60000000")


class TestFailures:
    def test_foreign_property(self, resolver):
        with pytest.raises(AuthorizationError):
            resolver.resolve(OWNER, "prop-other", 2026)

    def test_missing_property(self, resolver):
        with pytest.raises(AuthorizationError):
            resolver.resolve(OWNER, "nope", 2026)

    def test_required_fields(self, resolver):
        with pytest.raises(TaxValidationError):
            resolver.resolve(OWNER, "", 2026)
        with pytest.raises(TaxValidationError):
            resolver.resolve(OWNER, PROPERTY, None)

    def test_store_failure_is_not_zero(self, seeded_store, rules):
        class BrokenStore:
            def get_property(self, property_id):
                return seeded_store.get_property(property_id)

            def get_payment_transactions(self, property_id, start, end):
                raise ConnectionError("firestore unavailable")

            def get_expenses(self, property_id, start, end):
                return []

        with pytest.raises(ResolutionFailure) as exc:
            FinancialDataResolver(BrokenStore(), rules).resolve(OWNER, PROPERTY, 2026)
        assert exc.value.source == "payment transactions"

    def test_negative_expense_rejected(self, resolver, seeded_store):
        seeded_store.add_expense(ExpenseRecord(
            id="exp-refund",
            property_id=PROPERTY,
            category="Refund",
            amount=Decimal("-50000"),
            status="paid",
            paid_date=datetime(2026, 6, 1),
        ))
        with pytest.raises(TaxValidationError) as exc:
            resolver.resolve(OWNER, PROPERTY, 2026)
        assert exc.value.details["expense_id"] == "exp-refund"

    def test_negative_expense_outside_year_ignored(self, resolver, seeded_store):
        add_expense(seeded_store, -50_000, "Refund", paid_date=datetime(2025, 6, 1))
        assert resolver.resolve(OWNER, PROPERTY, 2026).deductions == Decimal("1000000")

    def test_negative_payment_rejected(self, resolver, seeded_store):
        seeded_store.add_payment(PaymentTransaction(
            id="pay-reversal",
            property_id=PROPERTY,
            amount=Decimal("-100"),
            status="completed",
            paid_at=datetime(2026, 5, 1),
        ))
        with pytest.raises(TaxValidationError) as exc:
            resolver.resolve(OWNER, PROPERTY, 2026)
        assert exc.value.details["payment_id"] == "pay-reversal"
