# Типізовані помилки податкового модуля (code, HTTP статус, details)
from typing import Any


class TaxEngineError(Exception):
    code: str = "TAX_ENGINE_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class TaxValidationError(TaxEngineError):
    """Input rejected before any computation."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class AuthorizationError(TaxEngineError):
    """The property is missing or owned by another taxpayer."""

    code = "AUTHORIZATION_ERROR"
    status_code = 403

    def __init__(self, property_id: str, owner_id: str):
        super().__init__(
            f"Property {property_id} does not exist or does not belong to you",
            {"property_id": property_id},
        )
        self.property_id = property_id
        self.owner_id = owner_id


class CalculationNotFound(TaxEngineError):
    code = "CALCULATION_NOT_FOUND"
    status_code = 404

    def __init__(self, calculation_id: str):
        super().__init__(
            f"Tax calculation {calculation_id} not found",
            {"calculation_id": calculation_id},
        )
        self.calculation_id = calculation_id


class PreconditionFailed(TaxEngineError):
    """Lifecycle transition refused; ``current`` is the record as it is now."""

    code = "PRECONDITION_FAILED"
    status_code = 409

    def __init__(self, message: str, calculation_id: str, current: dict[str, Any] | None = None):
        details: dict[str, Any] = {"calculation_id": calculation_id}
        if current is not None:
            details["current"] = current
        super().__init__(message, details)
        self.calculation_id = calculation_id
        self.current = current


class ResolutionFailure(TaxEngineError):
    """An upstream data store could not be read."""

    code = "RESOLUTION_FAILURE"
    status_code = 503

    def __init__(self, source: str, reason: str):
        super().__init__(f"Failed to load {source}: {reason}", {"source": source})
        self.source = source
        self.reason = reason


class TaxRulesError(TaxEngineError):
    code = "TAX_RULES_INVALID"
    status_code = 500
