"""Packer configuration."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator

from pallet_planner.core.config import Settings
from pallet_planner.domain.enums import DEFAULT_GROUP_ORDER, ProductGroupName


class PackerConfig(BaseModel):
    """
    Options recognized by the packer.

    ``capacity`` is not range-checked here: a non-positive capacity is a
    fatal packing input error raised by the packer itself, so that callers
    see one error type for every bad input.
    """

    model_config = ConfigDict(frozen=True)

    capacity: Decimal = Decimal("100")
    allow_mixed_groups: bool = False
    group_order: tuple[ProductGroupName, ...] = DEFAULT_GROUP_ORDER
    max_pallets: int | None = None

    @field_validator("group_order")
    @classmethod
    def validate_group_order(
        cls, v: tuple[ProductGroupName, ...]
    ) -> tuple[ProductGroupName, ...]:
        if not v:
            raise ValueError("group_order must contain at least one product group")
        if len(set(v)) != len(v):
            raise ValueError("group_order must not repeat a product group")
        return v

    @field_validator("max_pallets")
    @classmethod
    def validate_max_pallets(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("max_pallets must be greater than 0")
        return v

    @classmethod
    def from_settings(cls, settings: Settings) -> "PackerConfig":
        """Build the default packer configuration from application settings."""
        return cls(
            capacity=settings.packer_capacity,
            allow_mixed_groups=settings.packer_allow_mixed_groups,
            group_order=tuple(settings.packer_group_order_list),
            max_pallets=settings.packer_max_pallets,
        )

    def group_rank(self, group: ProductGroupName | None) -> int:
        """Position of a group in the traversal order; unknown groups sort last."""
        if group is None or group not in self.group_order:
            return len(self.group_order)
        return self.group_order.index(group)
