"""Reusable SQLAlchemy validators for the pallet planner models.

Each validator has the ``(key, value)`` signature expected by SQLAlchemy's
``@validates`` decorator and raises ``ValueError`` on bad input.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

TAX_ID_LENGTHS = (10, 12)
GLN_LENGTH = 13


def validate_tax_id(_key: str, value: str) -> str:
    """Ensure a counteragent tax id is 10 or 12 digits.

    Raises:
        ValueError: If the value is not all-digit or has the wrong length
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected str tax id, got {type(value).__name__}")

    tax_id = value.strip()
    if not (tax_id.isascii() and tax_id.isdigit()) or len(tax_id) not in TAX_ID_LENGTHS:
        raise ValueError(f"Tax id must be 10 or 12 digits: {value!r}")
    return tax_id


def validate_gln(_key: str, value: str) -> str:
    """Ensure a warehouse GLN is exactly 13 digits.

    Raises:
        ValueError: If the value is not a 13-digit string
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected str GLN, got {type(value).__name__}")

    gln = value.strip()
    if not (gln.isascii() and gln.isdigit()) or len(gln) != GLN_LENGTH:
        raise ValueError(f"GLN must be 13 digits: {value!r}")
    return gln


def to_decimal(value: Any) -> Decimal:
    """Convert ints, floats and strings to Decimal without binary noise.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``.

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("Expected a number, got bool")
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Expected a number, got {value!r}")


def validate_positive_quantity(_key: str, value: int) -> int:
    """Ensure a quantity is a positive integer."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Quantity must be an integer, got {value!r}")
    if value <= 0:
        raise ValueError(f"Quantity must be greater than 0, got {value}")
    return value


def validate_unit_price(_key: str, value: Any) -> Decimal:
    """Ensure a unit price is a non-negative amount."""
    price = to_decimal(value)
    if price < 0:
        raise ValueError(f"Unit price cannot be negative, got {price}")
    return price


def validate_packing_coefficient(_key: str, value: Any) -> Decimal | None:
    """Ensure a packing coefficient, when present, is greater than zero."""
    if value is None:
        return None
    coefficient = to_decimal(value)
    if coefficient <= 0:
        raise ValueError(f"Packing coefficient must be greater than 0, got {coefficient}")
    return coefficient
