from typing import Dict, Optional


class BackofficeError(ValueError):
    """Base class for failures the core reports to its callers."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> Dict[str, object]:
        return {"code": self.code, "message": self.message}


class ValidationFailed(BackofficeError):
    """
    Malformed or out-of-range input, raised before any write happens.

    ``errors`` maps a field path such as ``items.2.quantity`` to a message so
    callers can render targeted feedback.
    """

    code = "validation_error"

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(message or "; ".join(f"{k}: {v}" for k, v in self.errors.items()))

    def to_detail(self) -> Dict[str, object]:
        detail = super().to_detail()
        detail["errors"] = self.errors
        return detail


class OverpaymentError(ValidationFailed):
    code = "overpayment"

    def __init__(self, message: str = "Amount paid cannot exceed total amount"):
        super().__init__({"amount_paid": message}, message)


class BelowSoldQuantity(ValidationFailed):
    code = "below_sold_quantity"

    def __init__(self, field: str, product_name: str, quantity_selled: int):
        message = (
            f"Cannot set quantity less than sold quantity for product: "
            f"{product_name} (Sold: {quantity_selled})"
        )
        super().__init__({field: message}, message)


class NotFound(BackofficeError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStock(BackofficeError):
    code = "insufficient_stock"


class ItemHasSales(BackofficeError):
    code = "item_has_sales"


class LinkedRecordImmutable(BackofficeError):
    code = "linked_record_immutable"


class RecordInUse(BackofficeError):
    code = "record_in_use"


class StorageFailure(BackofficeError):
    code = "storage_failure"
