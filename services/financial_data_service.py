# Збір доходів і витрат об'єкта за податковий рік (касовий метод)
import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from core.exceptions import AuthorizationError, ResolutionFailure, TaxEngineError, TaxValidationError
from core.tax_rules import TaxRules
from models.property import ExpenseRecord, PaymentTransaction
from models.tax import ExpenseBreakdownEntry, ResolvedFinancialData
from services.property_store import PropertyStore, in_range

logger = logging.getLogger(__name__)

RENT_PAYMENT_TYPE = "rent"
PAID_PAYMENT_STATUSES = {"completed", "success"}
DEDUCTIBLE_EXPENSE_STATUSES = {"paid", "pending"}
UNCATEGORIZED = "Uncategorized"


def tax_year_range(tax_year: int) -> tuple[datetime, datetime]:
    # Кінець діапазону не включно
    return datetime(tax_year, 1, 1), datetime(tax_year + 1, 1, 1)


def sum_rental_income(payments: list[PaymentTransaction], start: datetime, end: datetime) -> tuple[Decimal, int]:
    total = Decimal("0")
    count = 0
    for payment in payments:
        if payment.type != RENT_PAYMENT_TYPE:
            continue
        if payment.status.lower() not in PAID_PAYMENT_STATUSES:
            continue
        if not in_range(payment.paid_at, start, end):
            continue
        if payment.amount < 0:
            raise TaxValidationError(
                f"Payment {payment.id} has a negative amount",
                field="amount",
                details={"payment_id": payment.id, "property_id": payment.property_id},
            )
        total += payment.amount
        count += 1
    return total, count


def _is_property_tax(expense: ExpenseRecord, category_name: str) -> bool:
    return (expense.category or "").strip().lower() == category_name.strip().lower()


def split_expenses(
    expenses: list[ExpenseRecord],
    start: datetime,
    end: datetime,
    property_tax_category: str,
) -> tuple[list[ExpenseRecord], list[ExpenseRecord]]:
    """Return (deductible, property tax) expenses counted for the year."""
    deductible = []
    property_taxes = []
    for expense in expenses:
        if expense.status.lower() not in DEDUCTIBLE_EXPENSE_STATUSES:
            continue
        if not in_range(expense.effective_date, start, end):
            continue
        if expense.amount < 0:
            # Повернення/кредит-ноти не є витратами
            raise TaxValidationError(
                f"Expense {expense.id} has a negative amount",
                field="amount",
                details={"expense_id": expense.id, "property_id": expense.property_id},
            )
        if _is_property_tax(expense, property_tax_category):
            property_taxes.append(expense)
        else:
            deductible.append(expense)
    return deductible, property_taxes


def build_expense_breakdown(expenses: list[ExpenseRecord]) -> list[ExpenseBreakdownEntry]:
    by_category: dict[str, Decimal] = defaultdict(Decimal)
    for expense in expenses:
        category = (expense.category or "").strip() or UNCATEGORIZED
        by_category[category] += expense.amount

    entries = sorted(by_category.items(), key=lambda item: (-item[1], item[0]))
    return [ExpenseBreakdownEntry(category=category, amount=amount) for category, amount in entries]


class FinancialDataResolver:
    def __init__(self, store: PropertyStore, rules: TaxRules):
        self.store = store
        self.rules = rules

    def resolve(self, owner_id: str, property_id: str, tax_year: int) -> ResolvedFinancialData:
        if not property_id:
            raise TaxValidationError("Property ID is required", field="property_id")
        if not tax_year:
            raise TaxValidationError("Tax year is required", field="tax_year")

        prop = self._load("property", lambda: self.store.get_property(property_id))
        if prop is None or prop.owner_id != owner_id:
            raise AuthorizationError(property_id, owner_id)

        start, end = tax_year_range(tax_year)
        payments = self._load("payment transactions", lambda: self.store.get_payment_transactions(property_id, start, end))
        expenses = self._load("expenses", lambda: self.store.get_expenses(property_id, start, end))

        rental_income, payment_count = sum_rental_income(payments, start, end)
        deductible, property_tax_expenses = split_expenses(expenses, start, end, self.rules.property_tax_category)
        breakdown = build_expense_breakdown(deductible)
        deductions = sum((entry.amount for entry in breakdown), Decimal("0"))
        property_taxes = sum((e.amount for e in property_tax_expenses), Decimal("0"))

        logger.info(
            f"Resolved property={property_id} year={tax_year}: "
            f"{payment_count} payments, rental_income={rental_income}, "
            f"{len(deductible)} expenses, deductions={deductions}, property_taxes={property_taxes}"
        )

        return ResolvedFinancialData(
            property_id=property_id,
            tax_year=tax_year,
            rental_income=rental_income,
            deductions=deductions,
            expense_breakdown=breakdown,
            property_taxes=property_taxes,
            property_purchase_price=prop.purchase_price,
            property_sale_price=prop.sale_price if prop.sale_price is not None else prop.current_value,
            property_current_value=prop.current_value,
            payment_count=payment_count,
            expense_count=len(deductible),
        )

    @staticmethod
    def _load(source: str, loader):
        try:
            return loader()
        except TaxEngineError:
            raise
        except Exception as e:
            logger.exception(f"Failed to load {source}")
            raise ResolutionFailure(source, str(e)) from e
