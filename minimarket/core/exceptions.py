"""
Typed error hierarchy for the stock core.

Every error carries a machine-readable ``code`` and an HTTP ``status_code``
hint so the request layer can map it without parsing messages:

    MiniMarketError
    +-- ValidationError          malformed / missing input
    +-- Unauthorized             no (active) acting user
    +-- EntityNotFound           product, user, order, ... does not exist
    +-- InsufficientStock        projected or available quantity would go negative
    +-- InvalidStateTransition   order terminal, reservation in opposing state
    +-- TransactionError         transient store-level contention (retryable)
        +-- TransactionTimeout
        +-- TransactionConflict

Nothing is ever partially committed when one of these is raised, so a
retryable error can be retried by re-running the whole operation.
"""
from typing import Optional
from uuid import UUID


class MiniMarketError(Exception):
    """Base class for every error raised by the core."""

    code: str = "MINIMARKET_ERROR"
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message, "retryable": self.retryable}


class ValidationError(MiniMarketError):
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class Unauthorized(MiniMarketError):
    code = "UNAUTHORIZED"
    status_code = 401


class EntityNotFound(MiniMarketError):
    code = "ENTITY_NOT_FOUND"
    status_code = 404

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = str(entity_id) if entity_id is not None else None
        super().__init__(f"{entity_type} not found: {self.entity_id}")


class InsufficientStock(MiniMarketError):
    """Raised when a write would leave on-hand or available stock negative."""

    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(
        self,
        product_id: UUID,
        product_name: Optional[str],
        requested: int,
        available: int,
        message: Optional[str] = None,
    ):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        label = product_name or str(product_id)
        super().__init__(
            message or f"Insufficient stock for product {label}: requested={requested}, available={available}"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "product_id": str(self.product_id),
            "product_name": self.product_name,
            "requested": self.requested,
            "available": self.available,
        })
        return data


class InvalidStateTransition(MiniMarketError):
    code = "INVALID_STATE_TRANSITION"
    status_code = 409

    def __init__(self, entity_type: str, entity_id, current: str, target: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id) if entity_id is not None else None
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition {entity_type} {self.entity_id} from {current} to {target}")


class TransactionError(MiniMarketError):
    """Transient contention in the store. Safe to retry from scratch."""

    code = "TRANSACTION_ERROR"
    status_code = 503
    retryable = True


class TransactionTimeout(TransactionError):
    code = "TRANSACTION_TIMEOUT"
    status_code = 503


class TransactionConflict(TransactionError):
    code = "TRANSACTION_CONFLICT"
    status_code = 409


class ImmutableRecordError(MiniMarketError):
    """An UPDATE or DELETE was attempted on an append-only row."""

    code = "IMMUTABLE_RECORD"
    status_code = 500

    def __init__(self, entity_type: str, entity_id, operation: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id) if entity_id is not None else None
        self.operation = operation
        super().__init__(f"{entity_type} {self.entity_id} is append-only; {operation} refused")
