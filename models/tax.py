# Pydantic моделі для податкових розрахунків

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, computed_field

TaxpayerType = Literal["individual", "company"]
StampDutyType = Literal["lease", "sale"]
LucUsageType = Literal["owner_occupied", "rented_residential", "commercial"]
CalculationStatus = Literal["draft", "finalized"]


# --- Налаштування платника ---

class TaxSettings(BaseModel):
    owner_id: str
    taxpayer_type: TaxpayerType = "individual"
    tax_identification_number: str | None = None
    default_tax_year: int
    currency: str
    updated_at: datetime | None = None


class TaxSettingsUpdate(BaseModel):
    taxpayer_type: TaxpayerType | None = None
    tax_identification_number: str | None = None
    default_tax_year: int | None = None
    currency: str | None = None


# --- Вхідні дані розрахунку ---

class TaxCalculationRequest(BaseModel):
    # Обов'язковість tax_year / property_id перевіряє сервіс, а не схема
    tax_year: int | None = None
    property_id: str | None = None
    other_deductions: Decimal | None = Field(default=None, ge=0)

    # Capital Gains Tax
    property_purchase_price: Decimal | None = Field(default=None, ge=0)
    property_sale_price: Decimal | None = Field(default=None, ge=0)
    cost_of_improvements: Decimal | None = Field(default=None, ge=0)
    disposal_costs: Decimal | None = Field(default=None, ge=0)
    is_primary_residence: bool = False

    # Stamp Duty
    stamp_duty_type: StampDutyType | None = None
    stamp_duty_value: Decimal | None = Field(default=None, ge=0)
    lease_duration: int | None = None

    # Land Use Charge
    luc_state: str | None = None
    luc_usage_type: LucUsageType | None = None
    luc_payment_date: date | None = None

    notes: str | None = None


# --- Дані з фінансових звітів ---

class ExpenseBreakdownEntry(BaseModel):
    category: str
    amount: Decimal = Field(ge=0)


class ResolvedFinancialData(BaseModel):
    property_id: str
    tax_year: int
    rental_income: Decimal
    deductions: Decimal
    expense_breakdown: list[ExpenseBreakdownEntry] = Field(default_factory=list)
    property_taxes: Decimal = Decimal("0")
    property_purchase_price: Decimal | None = None
    property_sale_price: Decimal | None = None
    property_current_value: Decimal | None = None
    payment_count: int = 0
    expense_count: int = 0


class AutoFetchData(BaseModel):
    rental_income: Decimal
    other_deductions: Decimal
    expense_breakdown: list[ExpenseBreakdownEntry]
    property_taxes: Decimal
    property_purchase_price: Decimal | None = None
    property_sale_price: Decimal | None = None


class AutoFetchResponse(BaseModel):
    success: bool = True
    data: AutoFetchData


# --- Результат розрахунку ---

class TaxBracketResult(BaseModel):
    bracket: str
    income: Decimal
    rate: Decimal  # у відсотках
    tax: Decimal


class TaxComponent(BaseModel):
    name: str
    amount: Decimal


class StampDutyDetails(BaseModel):
    type: StampDutyType
    value: Decimal
    lease_duration: int | None = None
    dutiable_value: Decimal
    rate: Decimal
    exempt: bool


class LandUseChargeDetails(BaseModel):
    state: str
    usage_type: LucUsageType
    assessed_value: Decimal
    rate: Decimal
    base_charge: Decimal
    early_payment_discount: bool


class CapitalGainsDetails(BaseModel):
    sale_price: Decimal
    purchase_price: Decimal
    cost_of_improvements: Decimal
    disposal_costs: Decimal
    capital_gain: Decimal
    taxpayer_type: TaxpayerType
    is_primary_residence: bool


class TaxBreakdown(BaseModel):
    tax_brackets: list[TaxBracketResult]
    expense_breakdown: list[ExpenseBreakdownEntry]
    components: list[TaxComponent]
    capital_gains: CapitalGainsDetails | None = None
    stamp_duty: StampDutyDetails | None = None
    land_use_charge: LandUseChargeDetails | None = None


class TaxCalculationResult(BaseModel):
    property_id: str | None
    tax_year: int
    currency: str
    total_rental_income: Decimal
    other_income: Decimal
    total_income: Decimal
    other_deductions: Decimal
    rent_relief: Decimal
    total_deductions: Decimal
    taxable_income: Decimal
    personal_income_tax: Decimal
    withholding_tax: Decimal
    # None = компонент не запитувався
    capital_gains_tax: Decimal | None = None
    stamp_duty: Decimal | None = None
    land_use_charge: Decimal | None = None
    property_taxes: Decimal
    total_tax_liability: Decimal
    tax_breakdown: TaxBreakdown


# --- Збережений розрахунок ---

class TaxCalculation(BaseModel):
    id: str
    owner_id: str
    property_id: str | None = None
    tax_year: int
    calculation_type: str = "annual"
    currency: str
    total_rental_income: Decimal
    other_income: Decimal
    total_income: Decimal
    other_deductions: Decimal
    rent_relief: Decimal
    total_deductions: Decimal
    taxable_income: Decimal
    personal_income_tax: Decimal
    withholding_tax: Decimal
    capital_gains_tax: Decimal = Decimal("0")
    stamp_duty: Decimal = Decimal("0")
    land_use_charge: Decimal = Decimal("0")
    property_taxes: Decimal
    total_tax_liability: Decimal
    property_sale_price: Decimal | None = None
    property_purchase_price: Decimal | None = None
    capital_gain: Decimal | None = None
    is_finalized: bool = False
    calculation_date: datetime
    finalized_at: datetime | None = None
    notes: str | None = None
    tax_breakdown: TaxBreakdown

    @computed_field
    @property
    def status(self) -> CalculationStatus:
        return "finalized" if self.is_finalized else "draft"


class TaxCalculationResponse(BaseModel):
    success: bool = True
    calculation: TaxCalculation


class DeleteResponse(BaseModel):
    success: bool = True


class TaxHistoryItem(BaseModel):
    id: str
    property_id: str | None
    tax_year: int
    currency: str
    total_rental_income: Decimal
    total_expenses: Decimal
    taxable_income: Decimal
    total_tax_liability: Decimal
    status: CalculationStatus
    is_finalized: bool
    calculation_date: datetime
    finalized_at: datetime | None = None


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class TaxHistoryResponse(BaseModel):
    success: bool = True
    calculations: list[TaxHistoryItem]
    pagination: Pagination


class TaxSettingsResponse(BaseModel):
    success: bool = True
    settings: TaxSettings
