# Сервісний шар для логіки податків
import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from core.exceptions import TaxValidationError
from core.tax_rules import TaxRules
from models.tax import (
    AutoFetchData,
    CapitalGainsDetails,
    ExpenseBreakdownEntry,
    LandUseChargeDetails,
    ResolvedFinancialData,
    StampDutyDetails,
    TaxBracketResult,
    TaxBreakdown,
    TaxCalculation,
    TaxCalculationRequest,
    TaxCalculationResult,
    TaxComponent,
)
from services.bracket_calculator import ZERO, compute_bracket_tax
from services.financial_data_service import FinancialDataResolver
from services.tax_components import (
    CapitalGainsInput,
    LandUseChargeInput,
    StampDutyInput,
    assess_land_use_charge,
    assess_stamp_duty,
    compute_capital_gains_tax,
    compute_withholding_tax,
)
from services.tax_lifecycle_service import TaxLifecycleService
from services.tax_settings_service import TaxSettingsService

logger = logging.getLogger(__name__)

MANUAL_DEDUCTIONS = "Manual entry"


def to_money(value: Decimal | int) -> Decimal:
    return Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def validate_request(request: TaxCalculationRequest) -> None:
    if not request.tax_year:
        raise TaxValidationError("Tax year is required", field="tax_year")
    if not request.property_id or not request.property_id.strip():
        raise TaxValidationError("Property ID is required", field="property_id")


def _deductions(request: TaxCalculationRequest, facts: ResolvedFinancialData):
    if request.other_deductions is None or request.other_deductions == facts.deductions:
        return facts.deductions, facts.expense_breakdown
    # Ручне значення замінює розбивку з витрат
    manual = request.other_deductions
    breakdown = [ExpenseBreakdownEntry(category=MANUAL_DEDUCTIONS, amount=manual)] if manual > 0 else []
    return manual, breakdown


def _capital_gains(request, taxpayer_type, rules):
    if request.property_sale_price is None or request.property_purchase_price is None:
        return None, None
    data = CapitalGainsInput(
        sale_price=request.property_sale_price,
        purchase_price=request.property_purchase_price,
        improvements=request.cost_of_improvements or ZERO,
        disposal_costs=request.disposal_costs or ZERO,
        taxpayer_type=taxpayer_type,
        is_primary_residence=request.is_primary_residence,
    )
    details = CapitalGainsDetails(
        sale_price=data.sale_price,
        purchase_price=data.purchase_price,
        cost_of_improvements=data.improvements,
        disposal_costs=data.disposal_costs,
        capital_gain=to_money(data.gain),
        taxpayer_type=taxpayer_type,
        is_primary_residence=data.is_primary_residence,
    )
    return to_money(compute_capital_gains_tax(data, rules)), details


def _stamp_duty(request, rules):
    if request.stamp_duty_type is None or request.stamp_duty_value is None:
        return None, None
    assessment = assess_stamp_duty(
        StampDutyInput(
            type=request.stamp_duty_type,
            value=request.stamp_duty_value,
            lease_duration_years=request.lease_duration,
        ),
        rules.stamp_duty,
    )
    details = StampDutyDetails(
        type=request.stamp_duty_type,
        value=request.stamp_duty_value,
        lease_duration=assessment.lease_duration_years,
        dutiable_value=to_money(assessment.dutiable_value),
        rate=assessment.rate * 100,
        exempt=assessment.exempt,
    )
    return to_money(assessment.duty), details


def _land_use_charge(request, facts, rules):
    if not request.luc_state or not request.luc_usage_type:
        return None, None
    if facts.property_current_value is None:
        raise TaxValidationError(
            "Land use charge requires the property's current value",
            field="luc_state",
            details={"property_id": facts.property_id},
        )
    assessment = assess_land_use_charge(
        LandUseChargeInput(
            state=request.luc_state,
            usage_type=request.luc_usage_type,
            base_assessment=facts.property_current_value,
            fiscal_year_start=date(request.tax_year, 1, 1),
            payment_date=request.luc_payment_date,
        ),
        rules.land_use_charge,
    )
    details = LandUseChargeDetails(
        state=request.luc_state,
        usage_type=request.luc_usage_type,
        assessed_value=facts.property_current_value,
        rate=assessment.rate * 100,
        base_charge=to_money(assessment.base_charge),
        early_payment_discount=assessment.early_payment_discount,
    )
    return to_money(assessment.charge), details


def compute_tax(
    request: TaxCalculationRequest,
    facts: ResolvedFinancialData,
    taxpayer_type: str,
    rules: TaxRules,
    currency: str,
) -> TaxCalculationResult:
    """
    Combine resolved financial facts with the component calculators.

    Pure: the same request, facts, taxpayer type and rules always give the
    same result. Intermediate arithmetic is unrounded; every reported figure
    is rounded half-up to 2 places, and totals are sums of the rounded
    figures so the packaged result adds up exactly.
    """
    validate_request(request)

    rental_income = facts.rental_income
    other_deductions, expense_breakdown = _deductions(request, facts)
    taxable_income = max(ZERO, rental_income - other_deductions)

    brackets = compute_bracket_tax(taxable_income, rules.income_tax_brackets)
    bracket_rows = [
        TaxBracketResult(
            bracket=row.label,
            income=to_money(row.income),
            rate=row.rate_percent,
            tax=to_money(row.tax),
        )
        for row in brackets.per_bracket
    ]
    personal_income_tax = sum((row.tax for row in bracket_rows), Decimal("0.00"))
    withholding_tax = to_money(compute_withholding_tax(rental_income, rules.withholding_tax_rate))
    property_taxes = to_money(facts.property_taxes)

    capital_gains_tax, cgt_details = _capital_gains(request, taxpayer_type, rules)
    stamp_duty, stamp_details = _stamp_duty(request, rules)
    land_use_charge, luc_details = _land_use_charge(request, facts, rules)

    components = [
        TaxComponent(name="Personal Income Tax", amount=personal_income_tax),
        TaxComponent(name="Withholding Tax", amount=withholding_tax),
    ]
    optional = [
        ("Capital Gains Tax", capital_gains_tax),
        ("Stamp Duty", stamp_duty),
        ("Land Use Charge", land_use_charge),
    ]
    # Необов'язкові компоненти з нулем не показуємо
    components += [TaxComponent(name=name, amount=amount) for name, amount in optional if amount]
    if property_taxes:
        components.append(TaxComponent(name="Property Taxes", amount=property_taxes))

    total_tax_liability = (
        personal_income_tax
        + withholding_tax
        + property_taxes
        + sum((amount for _, amount in optional if amount is not None), Decimal("0.00"))
    )

    return TaxCalculationResult(
        property_id=request.property_id,
        tax_year=request.tax_year,
        currency=currency,
        total_rental_income=to_money(rental_income),
        other_income=to_money(0),
        total_income=to_money(rental_income),
        other_deductions=to_money(other_deductions),
        rent_relief=to_money(0),
        total_deductions=to_money(other_deductions),
        taxable_income=to_money(taxable_income),
        personal_income_tax=personal_income_tax,
        withholding_tax=withholding_tax,
        capital_gains_tax=capital_gains_tax,
        stamp_duty=stamp_duty,
        land_use_charge=land_use_charge,
        property_taxes=property_taxes,
        total_tax_liability=total_tax_liability,
        tax_breakdown=TaxBreakdown(
            tax_brackets=bracket_rows,
            expense_breakdown=[
                ExpenseBreakdownEntry(category=entry.category, amount=to_money(entry.amount))
                for entry in expense_breakdown
            ],
            components=components,
            capital_gains=cgt_details,
            stamp_duty=stamp_details,
            land_use_charge=luc_details,
        ),
    )


class TaxService:
    def __init__(
        self,
        resolver: FinancialDataResolver,
        settings_service: TaxSettingsService,
        lifecycle: TaxLifecycleService,
        rules: TaxRules,
    ):
        self.resolver = resolver
        self.settings_service = settings_service
        self.lifecycle = lifecycle
        self.rules = rules

    def calculate(self, owner_id: str, request: TaxCalculationRequest) -> TaxCalculationResult:
        """
        Рахує податки для об'єкта нерухомості за податковий рік.
        Нічого не зберігає.
        """
        validate_request(request)
        facts = self.resolver.resolve(owner_id, request.property_id, request.tax_year)
        tax_settings = self.settings_service.read_settings(owner_id, default_tax_year=request.tax_year)
        return compute_tax(request, facts, tax_settings.taxpayer_type, self.rules, tax_settings.currency)

    def calculate_tax(self, owner_id: str, request: TaxCalculationRequest) -> TaxCalculation:
        result = self.calculate(owner_id, request)
        logger.info(
            f"Calculated tax for property={result.property_id} year={result.tax_year}: "
            f"total_tax_liability={result.total_tax_liability} {result.currency}"
        )
        return self.lifecycle.save_draft(owner_id, request, result)

    def auto_fetch(self, owner_id: str, property_id: str | None, tax_year: int) -> AutoFetchData:
        facts = self.resolver.resolve(owner_id, property_id, tax_year)
        return AutoFetchData(
            rental_income=to_money(facts.rental_income),
            other_deductions=to_money(facts.deductions),
            expense_breakdown=[
                ExpenseBreakdownEntry(category=entry.category, amount=to_money(entry.amount))
                for entry in facts.expense_breakdown
            ],
            property_taxes=to_money(facts.property_taxes),
            property_purchase_price=facts.property_purchase_price,
            property_sale_price=facts.property_sale_price,
        )
