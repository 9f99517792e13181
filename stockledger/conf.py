"""
Stockledger configuration.

Usage in settings.py:
    STOCKLEDGER = {
        "CATALOG_BACKEND": "catalog.adapters.StockCatalog",
        "VALIDATE_REFERENCES": True,
        "BALANCE_MAX_RETRIES": 5,
        "HISTORY_DEFAULT_LIMIT": 100,
        "HISTORY_MAX_LIMIT": 1000,
        "CRITICAL_STOCK_RATIO": 0.5,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class StockledgerSettings:
    """Stockledger configuration settings."""

    # Product/warehouse lookup backend (dotted path)
    CATALOG_BACKEND: str = "stockledger.adapters.noop.NoopCatalog"

    # Reject documents whose products/warehouses the catalog cannot resolve
    VALIDATE_REFERENCES: bool = True

    # Compare-and-swap attempts on a balance row before giving up
    BALANCE_MAX_RETRIES: int = 5

    # Ledger history pagination
    HISTORY_DEFAULT_LIMIT: int = 100
    HISTORY_MAX_LIMIT: int = 1000

    # Available <= reorder_level * ratio is reported as critical
    CRITICAL_STOCK_RATIO: float = 0.5


def get_stockledger_settings() -> StockledgerSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOCKLEDGER", {})
    return StockledgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in StockledgerSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stockledger_settings(), name)


stockledger_settings = _LazySettings()
