# Податкові таблиці (шкали, ставки, мито, LUC); за замовчуванням NTA 2025
import json
import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from core.config import settings
from core.exceptions import TaxRulesError

logger = logging.getLogger(__name__)

USAGE_TYPES = ("owner_occupied", "rented_residential", "commercial")


class TaxBracket(BaseModel):
    ceiling: Decimal | None = None
    rate: Decimal

    @field_validator("rate")
    @classmethod
    def _rate_in_range(cls, value: Decimal) -> Decimal:
        if value < 0 or value > 1:
            raise ValueError("bracket rate must be between 0 and 1")
        return value


def validate_brackets(brackets: list[TaxBracket]) -> list[TaxBracket]:
    if not brackets:
        raise ValueError("bracket table must not be empty")
    previous = Decimal("0")
    for index, bracket in enumerate(brackets):
        is_last = index == len(brackets) - 1
        if bracket.ceiling is None:
            if not is_last:
                raise ValueError("only the top bracket may be unbounded")
            continue
        if bracket.ceiling <= previous:
            raise ValueError(
                f"bracket ceilings must be strictly increasing (got {bracket.ceiling} after {previous})"
            )
        previous = bracket.ceiling
    if brackets[-1].ceiling is not None:
        raise ValueError("the top bracket must be unbounded")
    return brackets


class StampDutyRules(BaseModel):
    exemption_threshold: Decimal = Decimal("10000000")
    standard_rate: Decimal = Decimal("0.0078")
    long_lease_rate: Decimal = Decimal("0.03")
    long_lease_min_years: int = 8
    max_lease_years: int = 21

    @model_validator(mode="after")
    def _check(self):
        for name in ("exemption_threshold", "standard_rate", "long_lease_rate"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if not 1 <= self.long_lease_min_years <= self.max_lease_years:
            raise ValueError("long_lease_min_years must be within 1..max_lease_years")
        return self


class LandUseChargeRules(BaseModel):
    # state -> usage type -> rate
    rates: dict[str, dict[str, Decimal]]
    early_payment_discount: Decimal = Decimal("0.15")
    early_payment_window_days: int = 30

    @field_validator("rates")
    @classmethod
    def _check_rates(cls, rates: dict[str, dict[str, Decimal]]) -> dict[str, dict[str, Decimal]]:
        normalized = {}
        for state, by_usage in rates.items():
            for usage_type, rate in by_usage.items():
                if usage_type not in USAGE_TYPES:
                    raise ValueError(f"unknown usage type {usage_type!r} for state {state!r}")
                if rate < 0 or rate > 1:
                    raise ValueError(f"LUC rate for {state}/{usage_type} must be between 0 and 1")
            normalized[state.strip().lower()] = by_usage
        return normalized

    @model_validator(mode="after")
    def _check_discount(self):
        if not 0 <= self.early_payment_discount <= 1:
            raise ValueError("early_payment_discount must be between 0 and 1")
        if self.early_payment_window_days < 0:
            raise ValueError("early_payment_window_days must not be negative")
        return self


class TaxRules(BaseModel):
    income_tax_brackets: list[TaxBracket]
    capital_gains_brackets: list[TaxBracket]
    company_capital_gains_rate: Decimal = Decimal("0.30")
    withholding_tax_rate: Decimal = Decimal("0.10")
    stamp_duty: StampDutyRules = Field(default_factory=StampDutyRules)
    land_use_charge: LandUseChargeRules
    property_tax_category: str = "Property Tax"

    @field_validator("income_tax_brackets", "capital_gains_brackets")
    @classmethod
    def _check_brackets(cls, brackets: list[TaxBracket]) -> list[TaxBracket]:
        return validate_brackets(brackets)

    @field_validator("company_capital_gains_rate", "withholding_tax_rate")
    @classmethod
    def _flat_rate_in_range(cls, value: Decimal) -> Decimal:
        if value < 0 or value > 1:
            raise ValueError("flat rates must be between 0 and 1")
        return value


DEFAULT_TAX_RULES = {
    # NTA 2025 Fourth Schedule
    "income_tax_brackets": [
        {"ceiling": "800000", "rate": "0"},
        {"ceiling": "3000000", "rate": "0.15"},
        {"ceiling": "12000000", "rate": "0.18"},
        {"ceiling": "25000000", "rate": "0.21"},
        {"ceiling": "50000000", "rate": "0.23"},
        {"ceiling": None, "rate": "0.25"},
    ],
    # Individuals: PIT tiers above the tax-free band
    "capital_gains_brackets": [
        {"ceiling": "2200000", "rate": "0.15"},
        {"ceiling": "11200000", "rate": "0.18"},
        {"ceiling": "24200000", "rate": "0.21"},
        {"ceiling": "49200000", "rate": "0.23"},
        {"ceiling": None, "rate": "0.25"},
    ],
    "company_capital_gains_rate": "0.30",
    "withholding_tax_rate": "0.10",
    "stamp_duty": {
        "exemption_threshold": "10000000",
        "standard_rate": "0.0078",
        "long_lease_rate": "0.03",
        "long_lease_min_years": 8,
        "max_lease_years": 21,
    },
    "land_use_charge": {
        # Lagos 2025
        "rates": {
            "lagos": {
                "owner_occupied": "0.00076",
                "rented_residential": "0.0076",
                "commercial": "0.0076",
            },
        },
        "early_payment_discount": "0.15",
        "early_payment_window_days": 30,
    },
    "property_tax_category": "Property Tax",
}


def parse_tax_rules(data: dict) -> TaxRules:
    try:
        return TaxRules.model_validate(data)
    except ValidationError as e:
        errors = [".".join(str(part) for part in err["loc"]) + ": " + err["msg"] for err in e.errors()]
        raise TaxRulesError("Invalid tax rule tables", {"errors": errors})


def load_tax_rules(path: str | None = None) -> TaxRules:
    if not path:
        return parse_tax_rules(DEFAULT_TAX_RULES)

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise TaxRulesError(f"Cannot read tax rules from {path}: {e}", {"path": path})

    logger.info(f"Loaded tax rule tables from {path}")
    return parse_tax_rules(raw)


@lru_cache(maxsize=1)
def get_tax_rules() -> TaxRules:
    return load_tax_rules(settings.TAX_RULES_PATH)
