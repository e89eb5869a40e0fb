# Життєвий цикл розрахунку: чернетка -> фіналізований
import logging
import uuid
from datetime import datetime, timezone

from core.exceptions import CalculationNotFound, TaxValidationError
from models.tax import (
    Pagination,
    TaxCalculation,
    TaxCalculationRequest,
    TaxCalculationResult,
    TaxHistoryItem,
    TaxHistoryResponse,
)
from services.tax_calculation_repository import TaxCalculationRepository

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 100


class TaxLifecycleService:
    def __init__(self, repository: TaxCalculationRepository, now=None):
        self.repository = repository
        self._now = now or (lambda: datetime.now(timezone.utc))

    def save_draft(
        self,
        owner_id: str,
        request: TaxCalculationRequest,
        result: TaxCalculationResult,
    ) -> TaxCalculation:
        """Persist ``result`` as the draft for (owner, property, year)."""
        cgt = result.tax_breakdown.capital_gains
        calculation = TaxCalculation(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            property_id=result.property_id,
            tax_year=result.tax_year,
            currency=result.currency,
            total_rental_income=result.total_rental_income,
            other_income=result.other_income,
            total_income=result.total_income,
            other_deductions=result.other_deductions,
            rent_relief=result.rent_relief,
            total_deductions=result.total_deductions,
            taxable_income=result.taxable_income,
            personal_income_tax=result.personal_income_tax,
            withholding_tax=result.withholding_tax,
            capital_gains_tax=result.capital_gains_tax or 0,
            stamp_duty=result.stamp_duty or 0,
            land_use_charge=result.land_use_charge or 0,
            property_taxes=result.property_taxes,
            total_tax_liability=result.total_tax_liability,
            property_sale_price=request.property_sale_price,
            property_purchase_price=request.property_purchase_price,
            capital_gain=cgt.capital_gain if cgt and cgt.capital_gain > 0 else None,
            is_finalized=False,
            calculation_date=self._now(),
            notes=request.notes,
            tax_breakdown=result.tax_breakdown,
        )
        saved = self.repository.save_draft(calculation)
        logger.info(
            f"Saved draft tax calculation {saved.id} "
            f"(owner={owner_id}, property={saved.property_id}, year={saved.tax_year})"
        )
        return saved

    def get(self, owner_id: str, calculation_id: str) -> TaxCalculation:
        calculation = self.repository.get(calculation_id)
        if calculation is None or calculation.owner_id != owner_id:
            raise CalculationNotFound(calculation_id)
        return calculation

    def finalize(self, owner_id: str, calculation_id: str) -> TaxCalculation:
        calculation = self.repository.finalize(calculation_id, owner_id, self._now())
        logger.info(f"Finalized tax calculation {calculation_id} (owner={owner_id})")
        return calculation

    def delete(self, owner_id: str, calculation_id: str) -> None:
        self.repository.delete(calculation_id, owner_id)
        logger.info(f"Deleted draft tax calculation {calculation_id} (owner={owner_id})")

    def history(
        self,
        owner_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
        property_id: str | None = None,
        tax_year: int | None = None,
        status: str | None = None,
    ) -> TaxHistoryResponse:
        if not 1 <= limit <= MAX_HISTORY_LIMIT:
            raise TaxValidationError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}", field="limit")
        if offset < 0:
            raise TaxValidationError("offset cannot be negative", field="offset")
        if status not in (None, "draft", "finalized"):
            raise TaxValidationError("status must be 'draft' or 'finalized'", field="status")

        is_finalized = None if status is None else status == "finalized"
        items, total = self.repository.list(
            owner_id,
            limit=limit,
            offset=offset,
            property_id=property_id,
            tax_year=tax_year,
            is_finalized=is_finalized,
        )
        return TaxHistoryResponse(
            calculations=[_history_item(item) for item in items],
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                has_more=offset + len(items) < total,
            ),
        )


def _history_item(calc: TaxCalculation) -> TaxHistoryItem:
    return TaxHistoryItem(
        id=calc.id,
        property_id=calc.property_id,
        tax_year=calc.tax_year,
        currency=calc.currency,
        total_rental_income=calc.total_rental_income,
        total_expenses=calc.other_deductions,
        taxable_income=calc.taxable_income,
        total_tax_liability=calc.total_tax_liability,
        status=calc.status,
        is_finalized=calc.is_finalized,
        calculation_date=calc.calculation_date,
        finalized_at=calc.finalized_at,
    )
