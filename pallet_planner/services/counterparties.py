"""Derived values for counterparties."""

from pallet_planner.domain.enums import CounteragentType

SHORT_NAME_LIMIT = 50
SHORT_NAME_KEEP = 47


def counteragent_type(tax_id: str | None) -> CounteragentType:
    """Legal entity for a 10-digit tax id, sole proprietor for 12 digits."""
    if not tax_id or not (tax_id.isascii() and tax_id.isdigit()):
        return CounteragentType.INVALID
    if len(tax_id) == 10:
        return CounteragentType.LEGAL_ENTITY
    if len(tax_id) == 12:
        return CounteragentType.SOLE_PROPRIETOR
    return CounteragentType.INVALID


def short_name(name: str | None) -> str:
    if not name:
        return ""
    if len(name) > SHORT_NAME_LIMIT:
        return name[:SHORT_NAME_KEEP] + "..."
    return name
