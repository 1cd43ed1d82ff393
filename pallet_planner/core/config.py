"""Application configuration using Pydantic Settings.

This project loads configuration from environment variables.

Optionally, you may point `ENV_FILE` at a local env file (for development).
"""

import os
from decimal import Decimal
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pallet_planner.domain.enums import DEFAULT_GROUP_ORDER, ProductGroupName


class AppEnvironment(str, Enum):
    """Application environment values."""

    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


_ISOLATION_LEVELS = {"SERIALIZABLE", "REPEATABLE READ"}


class Settings(BaseSettings):
    """
    Application settings with type validation.

    Configuration is loaded from environment variables, with support
    for .env files in development.
    """

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="", extra="ignore"
    )

    # Application
    app_env: AppEnvironment = AppEnvironment.LOCAL
    app_name: str = "pallet-planner"
    app_log_level: str = "INFO"

    # Observability
    observability_structured_logs: bool = True

    # Database
    database_url: str = "sqlite+aiosqlite:///./pallet_planner.db"
    # Re-packing an order must not interleave with another re-packing
    database_isolation_level: str = "SERIALIZABLE"
    database_echo: bool = False

    # Packer defaults
    packer_capacity: Decimal = Field(default=Decimal("100"), gt=0)
    packer_allow_mixed_groups: bool = False
    packer_group_order: str = ",".join(group.value for group in DEFAULT_GROUP_ORDER)
    packer_max_pallets: int | None = Field(default=None, gt=0)

    @property
    def packer_group_order_list(self) -> list[ProductGroupName]:
        """Parse the group order string into a list of groups."""
        return [ProductGroupName(name.strip()) for name in self.packer_group_order.split(",")]

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | AppEnvironment) -> AppEnvironment:
        """Validate and parse app_env to AppEnvironment enum."""
        if isinstance(v, AppEnvironment):
            return v
        try:
            return AppEnvironment(v.lower())
        except ValueError:
            raise ValueError(
                f"app_env must be one of {[e.value for e in AppEnvironment]}, got '{v}'"
            )

    @field_validator("database_isolation_level")
    @classmethod
    def validate_isolation_level(cls, v: str) -> str:
        """Only isolation levels that prevent interleaved re-packing are accepted."""
        level = " ".join(v.strip().upper().replace("_", " ").split())
        if level not in _ISOLATION_LEVELS:
            raise ValueError(
                f"database_isolation_level must be one of {sorted(_ISOLATION_LEVELS)}, got '{v}'"
            )
        return level

    @field_validator("packer_group_order")
    @classmethod
    def validate_group_order(cls, v: str) -> str:
        """Every entry must be a known product group, listed once."""
        names = [name.strip() for name in v.split(",") if name.strip()]
        if not names:
            raise ValueError("packer_group_order must list at least one product group")
        known = {group.value for group in ProductGroupName}
        unknown = [name for name in names if name not in known]
        if unknown:
            raise ValueError(f"Unknown product groups in packer_group_order: {unknown}")
        if len(set(names)) != len(names):
            raise ValueError("packer_group_order must not repeat a product group")
        return ",".join(names)

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """
        Validate production-specific settings.

        Production runs must use PostgreSQL; SQLite is for local work and tests.
        """
        if self.app_env == AppEnvironment.PROD and not self.database_url.startswith("postgresql"):
            raise ValueError("DATABASE_URL must use a postgresql scheme in production")

        return self


settings = Settings()
