"""
Stockledger Protocols.

Defines interfaces for external system integration.
"""

from stockledger.protocols.catalog import (
    CatalogBackend,
    ProductInfo,
    WarehouseInfo,
)

__all__ = [
    "CatalogBackend",
    "ProductInfo",
    "WarehouseInfo",
]
