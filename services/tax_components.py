# Окремі податки: WHT, податок на приріст капіталу, гербовий збір, LUC
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from core.exceptions import TaxValidationError
from core.tax_rules import LandUseChargeRules, StampDutyRules, TaxRules, USAGE_TYPES
from services.bracket_calculator import ZERO, compute_bracket_tax


def compute_withholding_tax(total_rental_income: Decimal, rate: Decimal = Decimal("0.10")) -> Decimal:
    """WHT on gross rental income. Deductions never reduce it."""
    if total_rental_income < 0:
        raise TaxValidationError("Rental income cannot be negative", field="total_rental_income")
    return total_rental_income * rate


# --- Capital Gains Tax ---

@dataclass(frozen=True)
class CapitalGainsInput:
    sale_price: Decimal
    purchase_price: Decimal
    improvements: Decimal = ZERO
    disposal_costs: Decimal = ZERO
    taxpayer_type: str = "individual"
    is_primary_residence: bool = False

    @property
    def gain(self) -> Decimal:
        return max(ZERO, self.sale_price - self.purchase_price - self.improvements - self.disposal_costs)


def compute_capital_gains_tax(data: CapitalGainsInput, rules: TaxRules) -> Decimal:
    gain = data.gain
    if gain == 0 or data.is_primary_residence:
        return ZERO
    if data.taxpayer_type == "company":
        return gain * rules.company_capital_gains_rate
    if data.taxpayer_type != "individual":
        raise TaxValidationError(f"Unknown taxpayer type {data.taxpayer_type!r}", field="taxpayer_type")
    return compute_bracket_tax(gain, rules.capital_gains_brackets).total


# --- Stamp Duty ---

@dataclass(frozen=True)
class StampDutyInput:
    type: str
    value: Decimal
    lease_duration_years: int | None = None


@dataclass(frozen=True)
class StampDutyAssessment:
    duty: Decimal
    dutiable_value: Decimal
    rate: Decimal
    lease_duration_years: int | None
    exempt: bool


def assess_stamp_duty(data: StampDutyInput, rules: StampDutyRules) -> StampDutyAssessment:
    if data.value < 0:
        raise TaxValidationError("Stamp duty value cannot be negative", field="stamp_duty_value")

    if data.type == "sale":
        years = None
        dutiable_value = data.value
        rate = rules.standard_rate
    elif data.type == "lease":
        years = 1 if data.lease_duration_years is None else data.lease_duration_years
        if not 1 <= years <= rules.max_lease_years:
            raise TaxValidationError(
                f"Lease duration must be between 1 and {rules.max_lease_years} years",
                field="lease_duration",
                details={"lease_duration": years},
            )
        if years >= rules.long_lease_min_years:
            # Довгострокова оренда: вся вартість за строк, вища ставка
            dutiable_value = data.value * years
            rate = rules.long_lease_rate
        else:
            # Короткострокова: річна вартість, без множника
            dutiable_value = data.value
            rate = rules.standard_rate
    else:
        raise TaxValidationError(f"Unknown stamp duty type {data.type!r}", field="stamp_duty_type")

    if dutiable_value < rules.exemption_threshold:
        return StampDutyAssessment(
            duty=ZERO, dutiable_value=dutiable_value, rate=rate, lease_duration_years=years, exempt=True
        )
    return StampDutyAssessment(
        duty=dutiable_value * rate,
        dutiable_value=dutiable_value,
        rate=rate,
        lease_duration_years=years,
        exempt=False,
    )


def compute_stamp_duty(data: StampDutyInput, rules: StampDutyRules) -> Decimal:
    return assess_stamp_duty(data, rules).duty


# --- Land Use Charge ---

@dataclass(frozen=True)
class LandUseChargeInput:
    state: str
    usage_type: str
    base_assessment: Decimal
    fiscal_year_start: date
    payment_date: date | None = None


@dataclass(frozen=True)
class LandUseChargeAssessment:
    charge: Decimal
    rate: Decimal
    base_charge: Decimal
    early_payment_discount: bool


def lookup_land_use_rate(state: str, usage_type: str, rules: LandUseChargeRules) -> Decimal:
    if usage_type not in USAGE_TYPES:
        raise TaxValidationError(f"Unknown land use type {usage_type!r}", field="luc_usage_type")
    state_rates = rules.rates.get(state.strip().lower())
    if state_rates is None:
        raise TaxValidationError(
            f"No land use charge rates configured for state {state!r}",
            field="luc_state",
            details={"configured_states": sorted(rules.rates)},
        )
    rate = state_rates.get(usage_type)
    if rate is None:
        raise TaxValidationError(
            f"No {usage_type} land use charge rate configured for state {state!r}",
            field="luc_usage_type",
        )
    return rate


def is_early_payment(payment_date: date | None, fiscal_year_start: date, window_days: int) -> bool:
    if payment_date is None:
        return False
    return 0 <= (payment_date - fiscal_year_start).days <= window_days


def assess_land_use_charge(data: LandUseChargeInput, rules: LandUseChargeRules) -> LandUseChargeAssessment:
    if data.base_assessment < 0:
        raise TaxValidationError("Assessed property value cannot be negative", field="base_assessment")

    rate = lookup_land_use_rate(data.state, data.usage_type, rules)
    base_charge = data.base_assessment * rate
    early = is_early_payment(data.payment_date, data.fiscal_year_start, rules.early_payment_window_days)
    charge = base_charge * (1 - rules.early_payment_discount) if early else base_charge
    return LandUseChargeAssessment(charge=charge, rate=rate, base_charge=base_charge, early_payment_discount=early)


def compute_land_use_charge(data: LandUseChargeInput, rules: LandUseChargeRules) -> Decimal:
    return assess_land_use_charge(data, rules).charge
