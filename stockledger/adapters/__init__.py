"""
Stockledger Adapters.

Implementations of protocols for external systems.
"""

from stockledger.adapters.catalog import get_catalog, reset_catalog
from stockledger.adapters.noop import NoopCatalog

__all__ = [
    "NoopCatalog",
    "get_catalog",
    "reset_catalog",
]
