# Прогресивна шкала оподаткування
from dataclasses import dataclass, field
from decimal import Decimal

from core.exceptions import TaxValidationError
from core.tax_rules import TaxBracket

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class BracketSlice:
    lower: Decimal
    ceiling: Decimal | None
    rate: Decimal
    income: Decimal
    tax: Decimal

    @property
    def label(self) -> str:
        if self.ceiling is None:
            return f"Above {self.lower:,.0f}"
        return f"{self.lower:,.0f} - {self.ceiling:,.0f}"

    @property
    def rate_percent(self) -> Decimal:
        return self.rate * HUNDRED


@dataclass(frozen=True)
class BracketTaxResult:
    total: Decimal
    per_bracket: list[BracketSlice] = field(default_factory=list)


def compute_bracket_tax(taxable_income: Decimal, brackets: list[TaxBracket]) -> BracketTaxResult:
    """
    Split ``taxable_income`` across an ordered bracket table.

    Each bracket taxes at most its width (ceiling minus the previous
    ceiling, the first starting at 0); the unbounded top bracket takes the
    rest. Every bracket gets a slice, so brackets the income never reaches
    report zero income and zero tax. Nothing is rounded here.
    """
    if taxable_income < 0:
        raise TaxValidationError("Taxable income cannot be negative", field="taxable_income")

    remaining = taxable_income
    lower = ZERO
    total = ZERO
    slices = []

    for bracket in brackets:
        if bracket.ceiling is None:
            income = remaining
        else:
            income = min(remaining, bracket.ceiling - lower)
        tax = income * bracket.rate

        slices.append(BracketSlice(lower=lower, ceiling=bracket.ceiling, rate=bracket.rate, income=income, tax=tax))
        total += tax
        remaining -= income
        if bracket.ceiling is not None:
            lower = bracket.ceiling

    return BracketTaxResult(total=total, per_bracket=slices)
