# Pydantic моделі для даних, які надають сервіси нерухомості, платежів та витрат

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class PropertyRecord(BaseModel):
    id: str
    owner_id: str
    name: str | None = None
    purchase_price: Decimal | None = None
    sale_price: Decimal | None = None
    current_value: Decimal | None = None


class PaymentTransaction(BaseModel):
    id: str | None = None
    property_id: str
    amount: Decimal
    type: str = "rent"
    status: str
    paid_at: datetime | None = None


class ExpenseRecord(BaseModel):
    id: str | None = None
    property_id: str
    category: str | None = None
    amount: Decimal
    status: str
    date: datetime | None = None
    paid_date: datetime | None = None

    @property
    def effective_date(self) -> datetime | None:
        # Для податків рахуємо дату оплати, інакше дату витрати
        return self.paid_date or self.date
