from types import SimpleNamespace

from conftest import OWNER, PROPERTY
from models.tax import TaxCalculationRequest
from services.tax_calculation_repository import FirestoreTaxCalculationRepository


class RecordingQuery:
    """Stands in for a Firestore collection/query and records the calls."""

    def __init__(self):
        self.calls = []

    def where(self, filter=None):
        self.calls.append(("where", filter.field_path, filter.op_string, filter.value))
        return self

    def order_by(self, field_path, direction=None):
        self.calls.append(("order_by", field_path, direction))
        return self

    def offset(self, value):
        self.calls.append(("offset", value))
        return self

    def limit(self, value):
        self.calls.append(("limit", value))
        return self

    def count(self):
        return SimpleNamespace(get=lambda: [[SimpleNamespace(value=0)]])

    def stream(self):
        return iter([])


class RecordingDb:
    def __init__(self):
        self.query = RecordingQuery()

    def collection(self, name):
        assert name == "tax_calculations"
        return self.query


def test_firestore_history_breaks_ties_by_document_id():
    db = RecordingDb()
    items, total = FirestoreTaxCalculationRepository(db=db).list(OWNER, limit=10, offset=0)

    assert (items, total) == ([], 0)
    orders = [call for call in db.query.calls if call[0] == "order_by"]
    assert orders == [
        ("order_by", "calculation_date", "DESCENDING"),
        ("order_by", "__name__", "DESCENDING"),
    ]


def test_firestore_history_filters():
    db = RecordingDb()
    FirestoreTaxCalculationRepository(db=db).list(
        OWNER, limit=5, offset=10, property_id=PROPERTY, tax_year=2026, is_finalized=True,
    )
    wheres = [call[1:] for call in db.query.calls if call[0] == "where"]
    assert wheres == [
        ("owner_id", "==", OWNER),
        ("property_id", "==", PROPERTY),
        ("tax_year", "==", 2026),
        ("is_finalized", "==", True),
    ]
    assert ("offset", 10) in db.query.calls
    assert ("limit", 5) in db.query.calls


def test_in_memory_history_breaks_ties_by_id(tax_service, calculation_repository):
    calc = tax_service.calculate_tax(OWNER, TaxCalculationRequest(tax_year=2026, property_id=PROPERTY))
    # Той самий час розрахунку, інший ключ чернетки
    twin = calculation_repository.save_draft(calc.model_copy(update={"id": "zzz", "tax_year": 2025}))
    assert twin.calculation_date == calc.calculation_date

    items, total = calculation_repository.list(OWNER, limit=10, offset=0)
    assert total == 2
    assert [item.id for item in items] == ["zzz", calc.id]
