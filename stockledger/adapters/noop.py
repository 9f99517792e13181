"""
Noop Catalog: Stub adapter for development and testing.

This adapter implements the CatalogBackend protocol with trivial defaults:
- Every product, warehouse and user id resolves
- Names fall back to the id itself

Usage in settings.py:
    STOCKLEDGER = {
        "CATALOG_BACKEND": "stockledger.adapters.noop.NoopCatalog",
    }

WARNING: Do NOT rely on it in production. It accepts any id, including
products and warehouses that do not exist.
"""

from __future__ import annotations

from stockledger.protocols.catalog import ProductInfo, WarehouseInfo


class NoopCatalog:
    """
    No-operation catalog.

    Every lookup succeeds with placeholder data, making it suitable for:

    - Local development without product/warehouse registries
    - Tests that don't care about display names
    """

    def resolve_product(self, product_id: str) -> ProductInfo | None:
        """Always resolves; name and SKU are the id."""
        return ProductInfo(
            id=str(product_id),
            name=str(product_id),
            sku=str(product_id),
        )

    def resolve_warehouse(self, warehouse_id: str) -> WarehouseInfo | None:
        """Always resolves; name is the id."""
        return WarehouseInfo(id=str(warehouse_id), name=str(warehouse_id))

    def resolve_user(self, user_id: str) -> str | None:
        """Always resolves to the id itself."""
        return str(user_id)
