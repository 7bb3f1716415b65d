"""Domain errors raised by the reconciliation core, stores and services.

Each error carries the HTTP status the API layer answers with, so routes can
let them propagate and ``register_exception_handlers`` does the mapping.
"""

from typing import Any, Dict, Optional


class UniformTrackError(Exception):
    """Base class for all expected, user-facing failures."""

    status_code: int = 400
    code: str = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class NotFoundError(UniformTrackError):
    """A school, student, batch, uniform or policy does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        if entity_id is None:
            super().__init__(f"{entity} not found")
        else:
            super().__init__(f"{entity} '{entity_id}' not found")


class ValidationError(UniformTrackError):
    """Input rejected before any write was attempted."""

    status_code = 422
    code = "validation_error"


class InsufficientStockError(UniformTrackError):
    """Requested quantity exceeds what the warehouse holds."""

    status_code = 409
    code = "insufficient_stock"

    def __init__(self, size: str, requested: int, current_stock: int, label: str = ""):
        self.size = size
        self.requested = requested
        self.current_stock = current_stock
        what = f"{label} size {size}" if label else f"size {size}"
        super().__init__(
            f"Insufficient stock for {what}: requested {requested}, only {current_stock} available"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "size": self.size,
            "requested": self.requested,
            "currentStock": self.current_stock,
        })
        return data


class ConflictError(UniformTrackError):
    """The record changed underneath a read-modify-write cycle."""

    status_code = 409
    code = "conflict"


class PartialWriteFailure(UniformTrackError):
    """A multi-step write failed after its intent was recorded.

    The intent id points at the durable record that can be retried or
    reconciled by hand.
    """

    status_code = 500
    code = "partial_write_failure"

    def __init__(self, intent_id: str, message: str):
        self.intent_id = intent_id
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["intentId"] = self.intent_id
        return data
