"""
Catalog Protocol: display lookups for the ids the ledger stores.

Stockledger only stores product/warehouse/actor ids. The host project's
registries implement this protocol so the engine can reject unknown
references and enrich errors/history with readable names. Nothing here
feeds quantity logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ProductInfo:
    """Display data for a product."""

    id: str
    name: str
    sku: str
    unit_of_measure: str = "un"
    reorder_level: int = 0  # 0 = no low-stock alerting


@dataclass(frozen=True)
class WarehouseInfo:
    """Display data for a warehouse."""

    id: str
    name: str
    code: str | None = None


@runtime_checkable
class CatalogBackend(Protocol):
    """
    Protocol for product/warehouse/user registries.

    Every method returns None for unknown ids; none may raise for a
    missing record.
    """

    def resolve_product(self, product_id: str) -> ProductInfo | None:
        """
        Look up a product.

        Args:
            product_id: Product identifier

        Returns:
            ProductInfo or None if not found
        """
        ...

    def resolve_warehouse(self, warehouse_id: str) -> WarehouseInfo | None:
        """
        Look up a warehouse.

        Args:
            warehouse_id: Warehouse identifier

        Returns:
            WarehouseInfo or None if not found
        """
        ...

    def resolve_user(self, user_id: str) -> str | None:
        """
        Display name of the actor behind an actor_id.

        Args:
            user_id: The actor_id stored as created_by

        Returns:
            Name or None if not found
        """
        ...
