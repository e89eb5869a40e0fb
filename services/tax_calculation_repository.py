# Зберігання податкових розрахунків (Firestore або пам'ять процесу)
import logging
import threading
from datetime import datetime
from typing import Protocol

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from core.exceptions import CalculationNotFound, PreconditionFailed
from core.firebase import ensure_initialized
from models.tax import TaxCalculation

logger = logging.getLogger(__name__)

COLLECTION = "tax_calculations"


def _already_finalized(calculation_id: str, current: dict) -> PreconditionFailed:
    return PreconditionFailed(
        "Tax calculation is already finalized",
        calculation_id=calculation_id,
        current=current,
    )


class TaxCalculationRepository(Protocol):
    def save_draft(self, calculation: TaxCalculation) -> TaxCalculation: ...

    def get(self, calculation_id: str) -> TaxCalculation | None: ...

    def finalize(self, calculation_id: str, owner_id: str, finalized_at: datetime) -> TaxCalculation: ...

    def delete(self, calculation_id: str, owner_id: str) -> None: ...

    def list(
        self,
        owner_id: str,
        limit: int,
        offset: int,
        property_id: str | None = None,
        tax_year: int | None = None,
        is_finalized: bool | None = None,
    ) -> tuple[list[TaxCalculation], int]: ...


class InMemoryTaxCalculationRepository:
    def __init__(self):
        self._lock = threading.Lock()
        self._items: dict[str, TaxCalculation] = {}

    def save_draft(self, calculation: TaxCalculation) -> TaxCalculation:
        with self._lock:
            existing = self._find_draft(calculation.owner_id, calculation.property_id, calculation.tax_year)
            if existing is not None:
                calculation = calculation.model_copy(update={"id": existing.id})
            self._items[calculation.id] = calculation
            return calculation

    def _find_draft(self, owner_id: str, property_id: str | None, tax_year: int) -> TaxCalculation | None:
        for item in self._items.values():
            if (
                item.owner_id == owner_id
                and item.property_id == property_id
                and item.tax_year == tax_year
                and not item.is_finalized
            ):
                return item
        return None

    def get(self, calculation_id: str) -> TaxCalculation | None:
        return self._items.get(calculation_id)

    def finalize(self, calculation_id: str, owner_id: str, finalized_at: datetime) -> TaxCalculation:
        with self._lock:
            current = self._items.get(calculation_id)
            if current is None or current.owner_id != owner_id:
                raise CalculationNotFound(calculation_id)
            if current.is_finalized:
                raise _already_finalized(calculation_id, current.model_dump(mode="json"))
            updated = current.model_copy(update={"is_finalized": True, "finalized_at": finalized_at})
            self._items[calculation_id] = updated
            return updated

    def delete(self, calculation_id: str, owner_id: str) -> None:
        with self._lock:
            current = self._items.get(calculation_id)
            if current is None or current.owner_id != owner_id:
                raise CalculationNotFound(calculation_id)
            if current.is_finalized:
                raise PreconditionFailed(
                    "Finalized tax calculations cannot be deleted",
                    calculation_id=calculation_id,
                    current=current.model_dump(mode="json"),
                )
            del self._items[calculation_id]

    def list(self, owner_id, limit, offset, property_id=None, tax_year=None, is_finalized=None):
        with self._lock:
            items = [
                item for item in self._items.values()
                if item.owner_id == owner_id
                and (property_id is None or item.property_id == property_id)
                and (tax_year is None or item.tax_year == tax_year)
                and (is_finalized is None or item.is_finalized == is_finalized)
            ]
        items.sort(key=lambda item: (item.calculation_date, item.id), reverse=True)
        return items[offset:offset + limit], len(items)


def _to_document(calculation: TaxCalculation) -> dict:
    data = calculation.model_dump(mode="json")
    data.pop("id", None)
    return data


def _from_snapshot(snapshot) -> TaxCalculation:
    return TaxCalculation.model_validate({**snapshot.to_dict(), "id": snapshot.id})


@firestore.transactional
def _save_draft_in_transaction(transaction, collection, calculation: TaxCalculation) -> TaxCalculation:
    query = (
        collection
        .where(filter=FieldFilter("owner_id", "==", calculation.owner_id))
        .where(filter=FieldFilter("property_id", "==", calculation.property_id))
        .where(filter=FieldFilter("tax_year", "==", calculation.tax_year))
        .where(filter=FieldFilter("is_finalized", "==", False))
        .limit(1)
    )
    existing = next(iter(transaction.get(query)), None)
    if existing is not None:
        calculation = calculation.model_copy(update={"id": existing.id})
    transaction.set(collection.document(calculation.id), _to_document(calculation))
    return calculation


@firestore.transactional
def _finalize_in_transaction(transaction, doc_ref, owner_id: str, finalized_at: datetime) -> TaxCalculation:
    # Умовне оновлення: is_finalized false -> true лише один раз
    snapshot = doc_ref.get(transaction=transaction)
    if not snapshot.exists or snapshot.to_dict().get("owner_id") != owner_id:
        raise CalculationNotFound(doc_ref.id)
    current = _from_snapshot(snapshot)
    if current.is_finalized:
        raise _already_finalized(doc_ref.id, current.model_dump(mode="json"))

    updated = current.model_copy(update={"is_finalized": True, "finalized_at": finalized_at})
    transaction.update(doc_ref, {
        "is_finalized": True,
        "finalized_at": updated.model_dump(mode="json")["finalized_at"],
    })
    return updated


@firestore.transactional
def _delete_in_transaction(transaction, doc_ref, owner_id: str) -> None:
    snapshot = doc_ref.get(transaction=transaction)
    if not snapshot.exists or snapshot.to_dict().get("owner_id") != owner_id:
        raise CalculationNotFound(doc_ref.id)
    current = _from_snapshot(snapshot)
    if current.is_finalized:
        raise PreconditionFailed(
            "Finalized tax calculations cannot be deleted",
            calculation_id=doc_ref.id,
            current=current.model_dump(mode="json"),
        )
    transaction.delete(doc_ref)


class FirestoreTaxCalculationRepository:
    def __init__(self, db=None):
        self._db = db

    @property
    def db(self):
        if self._db is None:
            self._db = ensure_initialized()
        return self._db

    @property
    def collection(self):
        return self.db.collection(COLLECTION)

    def save_draft(self, calculation: TaxCalculation) -> TaxCalculation:
        return _save_draft_in_transaction(self.db.transaction(), self.collection, calculation)

    def get(self, calculation_id: str) -> TaxCalculation | None:
        snapshot = self.collection.document(calculation_id).get()
        if not snapshot.exists:
            return None
        return _from_snapshot(snapshot)

    def finalize(self, calculation_id: str, owner_id: str, finalized_at: datetime) -> TaxCalculation:
        doc_ref = self.collection.document(calculation_id)
        return _finalize_in_transaction(self.db.transaction(), doc_ref, owner_id, finalized_at)

    def delete(self, calculation_id: str, owner_id: str) -> None:
        doc_ref = self.collection.document(calculation_id)
        _delete_in_transaction(self.db.transaction(), doc_ref, owner_id)

    def list(self, owner_id, limit, offset, property_id=None, tax_year=None, is_finalized=None):
        query = self.collection.where(filter=FieldFilter("owner_id", "==", owner_id))
        if property_id is not None:
            query = query.where(filter=FieldFilter("property_id", "==", property_id))
        if tax_year is not None:
            query = query.where(filter=FieldFilter("tax_year", "==", tax_year))
        if is_finalized is not None:
            query = query.where(filter=FieldFilter("is_finalized", "==", is_finalized))

        total = query.count().get()[0][0].value
        page = (
            query.order_by("calculation_date", direction="DESCENDING")
            .order_by("__name__", direction="DESCENDING")
            .offset(offset)
            .limit(limit)
            .stream()
        )
        return [_from_snapshot(doc) for doc in page], total
