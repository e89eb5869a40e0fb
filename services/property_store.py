# Доступ до даних про нерухомість, платежі та витрати (зовнішні колекції)
import logging
import threading
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from google.cloud.firestore_v1.base_query import FieldFilter

from core.firebase import ensure_initialized
from models.property import ExpenseRecord, PaymentTransaction, PropertyRecord

logger = logging.getLogger(__name__)


def to_naive(value):
    # Приводимо таймзону до naive, щоб уникнути порівняння aware/naive
    if isinstance(value, datetime) and value.tzinfo:
        return value.replace(tzinfo=None)
    return value


def to_decimal(value) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def in_range(value: datetime | None, start: datetime, end: datetime) -> bool:
    if value is None:
        return False
    return start <= to_naive(value) < end


class PropertyStore(Protocol):
    def get_property(self, property_id: str) -> PropertyRecord | None: ...

    def get_payment_transactions(self, property_id: str, start: datetime, end: datetime) -> list[PaymentTransaction]: ...

    def get_expenses(self, property_id: str, start: datetime, end: datetime) -> list[ExpenseRecord]: ...


class FirestorePropertyStore:
    """Reads the ``properties``, ``payments`` and ``expenses`` collections."""

    def __init__(self, db=None):
        self._db = db

    @property
    def db(self):
        if self._db is None:
            self._db = ensure_initialized()
        return self._db

    def get_property(self, property_id: str) -> PropertyRecord | None:
        doc = self.db.collection("properties").document(property_id).get()
        if not doc.exists:
            return None
        data = doc.to_dict()
        return PropertyRecord(
            id=doc.id,
            owner_id=data.get("owner_id", ""),
            name=data.get("name"),
            purchase_price=to_decimal(data.get("purchase_price")),
            sale_price=to_decimal(data.get("sale_price")),
            current_value=to_decimal(data.get("current_value")),
        )

    def get_payment_transactions(self, property_id: str, start: datetime, end: datetime) -> list[PaymentTransaction]:
        query = (
            self.db.collection("payments")
            .where(filter=FieldFilter("property_id", "==", property_id))
            .where(filter=FieldFilter("paid_at", ">=", start))
            .where(filter=FieldFilter("paid_at", "<", end))
            .stream()
        )
        results = []
        for doc in query:
            data = doc.to_dict()
            results.append(PaymentTransaction(
                id=doc.id,
                property_id=property_id,
                amount=to_decimal(data.get("amount", 0)),
                type=data.get("type", "rent"),
                status=data.get("status", ""),
                paid_at=to_naive(data.get("paid_at")),
            ))
        return results

    def get_expenses(self, property_id: str, start: datetime, end: datetime) -> list[ExpenseRecord]:
        # paid_date може бути порожнім, тому рік фільтруємо в коді
        query = (
            self.db.collection("expenses")
            .where(filter=FieldFilter("property_id", "==", property_id))
            .stream()
        )
        results = []
        for doc in query:
            data = doc.to_dict()
            expense = ExpenseRecord(
                id=doc.id,
                property_id=property_id,
                category=data.get("category"),
                amount=to_decimal(data.get("amount", 0)),
                status=data.get("status", ""),
                date=to_naive(data.get("date")),
                paid_date=to_naive(data.get("paid_date")),
            )
            if in_range(expense.effective_date, start, end):
                results.append(expense)
        return results


class InMemoryPropertyStore:
    """Process-local store for local development and tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self.properties: dict[str, PropertyRecord] = {}
        self.payments: list[PaymentTransaction] = []
        self.expenses: list[ExpenseRecord] = []

    def add_property(self, record: PropertyRecord) -> PropertyRecord:
        with self._lock:
            self.properties[record.id] = record
        return record

    def add_payment(self, payment: PaymentTransaction) -> PaymentTransaction:
        with self._lock:
            self.payments.append(payment)
        return payment

    def add_expense(self, expense: ExpenseRecord) -> ExpenseRecord:
        with self._lock:
            self.expenses.append(expense)
        return expense

    def get_property(self, property_id: str) -> PropertyRecord | None:
        return self.properties.get(property_id)

    def get_payment_transactions(self, property_id: str, start: datetime, end: datetime) -> list[PaymentTransaction]:
        with self._lock:
            return [
                p for p in self.payments
                if p.property_id == property_id and in_range(p.paid_at, start, end)
            ]

    def get_expenses(self, property_id: str, start: datetime, end: datetime) -> list[ExpenseRecord]:
        with self._lock:
            return [
                e for e in self.expenses
                if e.property_id == property_id and in_range(e.effective_date, start, end)
            ]
