# API роутер для податків

import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.deps import get_owner_id, get_tax_service
from core.config import settings
from core.exceptions import TaxValidationError
from models.tax import (
    AutoFetchResponse,
    DeleteResponse,
    TaxCalculationRequest,
    TaxCalculationResponse,
    TaxHistoryResponse,
    TaxSettingsResponse,
    TaxSettingsUpdate,
)
from services.tax_service import TaxService

router = APIRouter()


def current_year() -> int:
    return datetime.date.today().year


def check_tax_year(tax_year: int) -> int:
    latest = current_year() + 1
    if tax_year < settings.MIN_TAX_YEAR or tax_year > latest:
        raise TaxValidationError(
            f"Tax year must be between {settings.MIN_TAX_YEAR} and {latest}",
            field="tax_year",
        )
    return tax_year


def default_tax_year(service: TaxService, owner_id: str) -> int:
    return service.settings_service.read_settings(owner_id, default_tax_year=current_year()).default_tax_year


@router.post("/calculate", response_model=TaxCalculationResponse)
def calculate_tax_endpoint(
    request: TaxCalculationRequest,
    owner_id: str = Depends(get_owner_id),
    service: TaxService = Depends(get_tax_service),
):
    """
    Розраховує податки для об'єкта та зберігає результат як чернетку.
    """
    if request.tax_year is not None:
        check_tax_year(request.tax_year)
    calculation = service.calculate_tax(owner_id, request)
    return TaxCalculationResponse(calculation=calculation)


@router.get("/auto-fetch", response_model=AutoFetchResponse)
def auto_fetch_endpoint(
    property_id: Optional[str] = None,
    tax_year: Optional[int] = None,
    owner_id: str = Depends(get_owner_id),
    service: TaxService = Depends(get_tax_service),
):
    """
    Підтягує доходи (касовий метод) та витрати об'єкта за податковий рік.
    """
    if not property_id:
        raise TaxValidationError("Property ID is required", field="property_id")
    year = check_tax_year(tax_year if tax_year is not None else default_tax_year(service, owner_id))
    data = service.auto_fetch(owner_id, property_id, year)
    return AutoFetchResponse(data=data)


@router.get("/settings", response_model=TaxSettingsResponse)
def get_settings_endpoint(
    owner_id: str = Depends(get_owner_id),
    service: TaxService = Depends(get_tax_service),
):
    tax_settings = service.settings_service.get_settings(owner_id, default_tax_year=current_year())
    return TaxSettingsResponse(settings=tax_settings)


@router.put("/settings", response_model=TaxSettingsResponse)
def update_settings_endpoint(
    update: TaxSettingsUpdate,
    owner_id: str = Depends(get_owner_id),
    service: TaxService = Depends(get_tax_service),
):
    if update.default_tax_year is not None:
        check_tax_year(update.default_tax_year)
    tax_settings = service.settings_service.update_settings(owner_id, update, default_tax_year=current_year())
    return TaxSettingsResponse(settings=tax_settings)


@router.get("/history", response_model=TaxHistoryResponse)
def get_history_endpoint(
    limit: int = Query(50),
    offset: int = Query(0),
    property_id: Optional[str] = None,
    tax_year: Optional[int] = None,
    status: Optional[str] = None,
    owner_id: str = Depends(get_owner_id),
    service: TaxService = Depends(get_tax_service),
):
    return service.lifecycle.history(
        owner_id,
        limit=limit,
        offset=offset,
        property_id=property_id,
        tax_year=tax_year,
        status=status,
    )


@router.get("/calculations/{calculation_id}", response_model=TaxCalculationResponse)
def get_calculation_endpoint(
    calculation_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TaxService = Depends(get_tax_service),
):
    return TaxCalculationResponse(calculation=service.lifecycle.get(owner_id, calculation_id))


@router.post("/calculations/{calculation_id}/finalize", response_model=TaxCalculationResponse)
def finalize_calculation_endpoint(
    calculation_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TaxService = Depends(get_tax_service),
):
    return TaxCalculationResponse(calculation=service.lifecycle.finalize(owner_id, calculation_id))


@router.delete("/calculations/{calculation_id}", response_model=DeleteResponse)
def delete_calculation_endpoint(
    calculation_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TaxService = Depends(get_tax_service),
):
    service.lifecycle.delete(owner_id, calculation_id)
    return DeleteResponse()
