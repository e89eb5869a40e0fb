# Налаштування платника податків (тип платника, ІПН, рік за замовчуванням)
import logging
import threading
from datetime import datetime, timezone
from typing import Protocol

from core.exceptions import ResolutionFailure, TaxEngineError
from core.firebase import ensure_initialized
from models.tax import TaxSettings, TaxSettingsUpdate

logger = logging.getLogger(__name__)


class TaxSettingsRepository(Protocol):
    def get(self, owner_id: str) -> TaxSettings | None: ...

    def save(self, settings: TaxSettings) -> TaxSettings: ...


class InMemoryTaxSettingsRepository:
    def __init__(self):
        self._lock = threading.Lock()
        self._items: dict[str, TaxSettings] = {}

    def get(self, owner_id: str) -> TaxSettings | None:
        return self._items.get(owner_id)

    def save(self, settings: TaxSettings) -> TaxSettings:
        with self._lock:
            self._items[settings.owner_id] = settings
        return settings


class FirestoreTaxSettingsRepository:
    """One document per taxpayer in ``tax_settings``, keyed by owner id."""

    def __init__(self, db=None):
        self._db = db

    @property
    def db(self):
        if self._db is None:
            self._db = ensure_initialized()
        return self._db

    def get(self, owner_id: str) -> TaxSettings | None:
        doc = self.db.collection("tax_settings").document(owner_id).get()
        if not doc.exists:
            return None
        return TaxSettings(**doc.to_dict())

    def save(self, settings: TaxSettings) -> TaxSettings:
        self.db.collection("tax_settings").document(settings.owner_id).set(settings.model_dump(mode="json"))
        return settings


class TaxSettingsService:
    def __init__(self, repository: TaxSettingsRepository, default_currency: str, now=None):
        self.repository = repository
        self.default_currency = default_currency
        self._now = now or (lambda: datetime.now(timezone.utc))

    def _defaults(self, owner_id: str, default_tax_year: int) -> TaxSettings:
        return TaxSettings(
            owner_id=owner_id,
            taxpayer_type="individual",
            default_tax_year=default_tax_year,
            currency=self.default_currency,
        )

    def read_settings(self, owner_id: str, default_tax_year: int) -> TaxSettings:
        """Read-only lookup for calculations: never writes, defaults stay in memory."""
        try:
            settings = self.repository.get(owner_id)
        except TaxEngineError:
            raise
        except Exception as e:
            logger.exception(f"Failed to load tax settings for {owner_id}")
            raise ResolutionFailure("tax settings", str(e)) from e
        return settings if settings is not None else self._defaults(owner_id, default_tax_year)

    def get_settings(self, owner_id: str, default_tax_year: int) -> TaxSettings:
        """
        Повертає налаштування платника, створюючи їх із типовими значеннями
        при першому зверненні. Рік за замовчуванням визначає викликач.
        """
        settings = self.repository.get(owner_id)
        if settings is not None:
            return settings

        settings = self._defaults(owner_id, default_tax_year).model_copy(update={"updated_at": self._now()})
        logger.info(f"Created default tax settings for {owner_id}")
        return self.repository.save(settings)

    def update_settings(self, owner_id: str, update: TaxSettingsUpdate, default_tax_year: int) -> TaxSettings:
        current = self.get_settings(owner_id, default_tax_year)
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        if "tax_identification_number" in update.model_fields_set:
            # Порожній ІПН дозволяє очистити поле
            changes["tax_identification_number"] = update.tax_identification_number or None
        changes["updated_at"] = self._now()
        return self.repository.save(current.model_copy(update=changes))
