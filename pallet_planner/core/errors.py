"""
Domain-specific exceptions for the pallet planner.

These exceptions represent business rule violations. Packing anomalies
that only affect a single order item are NOT exceptions; they are
reported as remainders on the packing plan.
"""

from typing import Any


class PalletPlannerError(Exception):
    """Base exception for all pallet planner domain errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(PalletPlannerError):
    """
    Raised when input data fails validation.

    Examples:
    - Tax id is not 10 or 12 digits
    - GLN is not 13 digits
    - Delivery date before order date
    """

    pass


class NotFoundError(PalletPlannerError):
    """
    Raised when a requested resource does not exist.

    Examples:
    - Order id not found
    - Pallet id not found
    """

    pass


class ConflictError(PalletPlannerError):
    """
    Raised when an operation conflicts with current state.

    Examples:
    - Second invoice for the same order
    - Duplicate internal SKU or barcode
    """

    pass


class PackingInputError(ValidationError):
    """
    Raised when the packer receives input it cannot work with.

    Always fatal: the run is aborted before any plan is persisted.
    ``code`` names the condition and ``entity_id`` the offending record.
    """

    code = "INVALID_INPUT"

    def __init__(self, message: str, entity_id: Any = None, details: dict[str, Any] | None = None):
        self.entity_id = entity_id
        payload = {"code": self.code, "entity_id": entity_id}
        payload.update(details or {})
        super().__init__(message, details=payload)


class MissingProductError(PackingInputError):
    """An order item references a product that could not be resolved."""

    code = "MISSING_PRODUCT"


class InvalidQuantityError(PackingInputError):
    """An order item has a negative quantity."""

    code = "INVALID_QUANTITY"


class InvalidUnitPriceError(PackingInputError):
    """An order item has a negative unit price."""

    code = "INVALID_UNIT_PRICE"


class InvalidCapacityError(PackingInputError):
    """Pallet capacity is zero or negative."""

    code = "INVALID_CAPACITY"


class DuplicateOrderItemError(PackingInputError):
    """The same order item appears on more than one line."""

    code = "DUPLICATE_ORDER_ITEM"
