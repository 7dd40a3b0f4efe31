"""Inventory policy settings.

Values come from the environment (``INVENTORY_`` prefix) or a ``.env`` file.
The time windows are evaluated lazily when a movement or transition is
checked, never by a background timer.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class InventorySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="INVENTORY_", extra="ignore")

    # Opening balance is locked automatically once this many days have
    # passed since registration.
    opening_balance_auto_confirm_days: int = 7

    # An item may be archived only after this many days without movements.
    archive_inactivity_days: int = 365

    # Audit lines whose variance exceeds this share of the book quantity
    # are flagged for scrutiny.
    large_variance_ratio: float = 0.10
    require_notes_for_large_variance: bool = True


@lru_cache
def get_settings() -> InventorySettings:
    return InventorySettings()
