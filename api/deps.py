import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin.auth import InvalidIdTokenError, ExpiredIdTokenError

import core.firebase as firebase
from core.config import settings
from core.tax_rules import get_tax_rules
from services.financial_data_service import FinancialDataResolver
from services.property_store import FirestorePropertyStore, InMemoryPropertyStore
from services.tax_calculation_repository import FirestoreTaxCalculationRepository, InMemoryTaxCalculationRepository
from services.tax_lifecycle_service import TaxLifecycleService
from services.tax_service import TaxService
from services.tax_settings_service import (
    FirestoreTaxSettingsRepository,
    InMemoryTaxSettingsRepository,
    TaxSettingsService,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
    """
    Перевіряє Firebase ID Token (приходить як Bearer token).
    Якщо токена немає, повертає локального користувача для dev.
    Якщо токен є, але прострочений/невірний, повертає 401, щоб фронт оновив сесію.
    """
    if not creds or not creds.credentials:
        return {"uid": "local-dev"}

    token = creds.credentials

    if firebase.auth_client is None:
        firebase.initialize_firebase()
        if firebase.auth_client is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Firebase not initialized"
            )

    try:
        # Невеликий допуск по часу (макс 60 сек за Firebase SDK)
        return firebase.auth_client.verify_id_token(token, clock_skew_seconds=60)
    except (ExpiredIdTokenError, InvalidIdTokenError) as e:
        logger.warning(f"Token validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalid or expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except Exception as e:
        logger.warning(f"Token validation error: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_owner_id(current_user: dict = Depends(get_current_user)) -> str:
    return current_user.get("uid")


@lru_cache(maxsize=1)
def get_tax_service() -> TaxService:
    rules = get_tax_rules()
    if settings.STORAGE_BACKEND == "memory":
        store = InMemoryPropertyStore()
        calculations = InMemoryTaxCalculationRepository()
        settings_repo = InMemoryTaxSettingsRepository()
    else:
        store = FirestorePropertyStore()
        calculations = FirestoreTaxCalculationRepository()
        settings_repo = FirestoreTaxSettingsRepository()

    logger.info(f"Tax service uses the {settings.STORAGE_BACKEND} backend")
    return TaxService(
        resolver=FinancialDataResolver(store, rules),
        settings_service=TaxSettingsService(settings_repo, default_currency=settings.DEFAULT_CURRENCY),
        lifecycle=TaxLifecycleService(calculations),
        rules=rules,
    )
