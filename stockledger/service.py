"""
Stock Engine: The single public interface for all stock operations.

Usage:
    from stockledger import stock, StockError

    order = stock.create_document(
        'delivery',
        {'warehouse_id': 'wh-main', 'customer_name': 'ACME'},
        [{'product_id': 'p-1', 'quantity': 5}],
        actor_id=user_id,
    )
    stock.validate_document('delivery', order.pk, actor_id=user_id)
    stock.get_availability('p-1', 'wh-main')

Every operation delegates to one of the services in stockledger.services;
StockEngine only wires them together around a shared catalog backend and
database alias.
"""

from functools import lru_cache
from typing import Any

from stockledger.adapters.catalog import get_catalog
from stockledger.models.balance import StockBalance
from stockledger.models.documents import MovementDocument
from stockledger.models.ledger import LedgerEntry
from stockledger.services.alerts import StockAlert, StockAlerts
from stockledger.services.availability import Availability, AvailabilityChecker, BatchAvailability
from stockledger.services.balances import BalanceStore
from stockledger.services.documents import DocumentEngine, PostingResult
from stockledger.services.ledger import LedgerStore
from stockledger.services.reconciliation import Discrepancy, Reconciler
from stockledger.services.reservations import ReservationManager


class StockEngine:
    """
    Single interface for all stock operations.

    Args:
        catalog: CatalogBackend instance (None = the configured backend)
        using: Database alias (None = default)

    IMPORTANT: All state-changing methods take the per-key balance locks
    before opening any transaction. See each service's docstring.
    """

    def __init__(self, catalog=None, using: str | None = None):
        self.catalog = catalog if catalog is not None else get_catalog()
        self.ledger = LedgerStore(using)
        self.balances = BalanceStore(using)
        self.availability = AvailabilityChecker(self.balances, self.catalog)
        self.reservations = ReservationManager(self.balances, self.availability)
        self.documents = DocumentEngine(
            self.ledger, self.balances, self.availability, self.reservations, self.catalog
        )
        self.alerts = StockAlerts(self.balances, self.catalog)
        self.reconciler = Reconciler(self.ledger, self.balances)

    # ══════════════════════════════════════════════════════════════
    # DOCUMENTS
    # ══════════════════════════════════════════════════════════════

    def create_document(self, doc_type: str, header: dict, items: list,
                        actor_id: str = '') -> MovementDocument:
        """Create a draft document (outbound types reserve their lines)."""
        return self.documents.create(doc_type, header, items, actor_id=actor_id)

    def update_document(self, doc_type: str, doc_id, header: dict | None = None,
                        items: list | None = None, actor_id: str = '') -> MovementDocument:
        """Edit an open document; see DocumentEngine.update()."""
        return self.documents.update(doc_type, doc_id, header=header, items=items, actor_id=actor_id)

    def validate_document(self, doc_type: str, doc_id, actor_id: str = '') -> PostingResult:
        """Post a document to the ledger. Idempotent once done."""
        return self.documents.validate(doc_type, doc_id, actor_id=actor_id)

    def cancel_document(self, doc_type: str, doc_id, actor_id: str = '') -> MovementDocument:
        return self.documents.cancel(doc_type, doc_id, actor_id=actor_id)

    def get_document(self, doc_type: str, doc_id) -> MovementDocument:
        return self.documents.get(doc_type, doc_id)

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    def get_availability(self, product_id: str, warehouse_id: str,
                         requested_quantity: int = 0) -> Availability:
        return self.availability.availability(product_id, warehouse_id, requested_quantity)

    def check_availability(self, items: list, warehouse_id: str) -> BatchAvailability:
        """Check several lines at once; never raises for shortages."""
        return self.availability.check_batch(items, warehouse_id)

    def get_balance(self, product_id: str, warehouse_id: str) -> StockBalance:
        """Current balance (an unsaved zero balance if the key never moved)."""
        return self.balances.get(product_id, warehouse_id)

    def get_history(self, product_id: str | None = None, warehouse_id: str | None = None,
                    transaction_type: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
        """
        Ledger entries, newest first, with display names.

        Each dict carries the entry fields plus product_name, sku,
        warehouse_name and created_by_name resolved through the catalog
        (ids when unknown).
        """
        entries = self.ledger.history(
            product_id=product_id,
            warehouse_id=warehouse_id,
            transaction_type=transaction_type,
            limit=limit,
        )
        products: dict[str, Any] = {}
        warehouses: dict[str, Any] = {}
        users: dict[str, Any] = {}
        return [self._describe_entry(entry, products, warehouses, users) for entry in entries]

    # ══════════════════════════════════════════════════════════════
    # OPERATIONS
    # ══════════════════════════════════════════════════════════════

    def post_initial_stock(self, product_id: str, warehouse_id: str, quantity: int,
                           actor_id: str = '') -> LedgerEntry:
        """Opening balance for a newly registered product."""
        return self.documents.post_initial_stock(product_id, warehouse_id, quantity, actor_id=actor_id)

    def stock_alerts(self, warehouse_id: str | None = None,
                     alert_type: str | None = None) -> list[StockAlert]:
        return self.alerts.check(warehouse_id=warehouse_id, alert_type=alert_type)

    def reconcile(self, product_id: str | None = None,
                  warehouse_id: str | None = None) -> list[Discrepancy]:
        """Keys whose balance disagrees with the ledger or open documents."""
        return self.reconciler.run(product_id=product_id, warehouse_id=warehouse_id)

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    def _describe_entry(self, entry: LedgerEntry, products: dict, warehouses: dict,
                        users: dict) -> dict[str, Any]:
        if entry.product_id not in products:
            products[entry.product_id] = self.catalog.resolve_product(entry.product_id)
        if entry.warehouse_id not in warehouses:
            warehouses[entry.warehouse_id] = self.catalog.resolve_warehouse(entry.warehouse_id)
        if entry.created_by and entry.created_by not in users:
            users[entry.created_by] = self.catalog.resolve_user(entry.created_by)
        product = products[entry.product_id]
        warehouse = warehouses[entry.warehouse_id]

        return {
            'id': entry.pk,
            'product_id': entry.product_id,
            'product_name': product.name if product else entry.product_id,
            'sku': product.sku if product else entry.product_id,
            'warehouse_id': entry.warehouse_id,
            'warehouse_name': warehouse.name if warehouse else entry.warehouse_id,
            'transaction_type': entry.transaction_type,
            'transaction_id': entry.transaction_id,
            'line_id': entry.line_id,
            'quantity_change': entry.quantity_change,
            'quantity_before': entry.quantity_before,
            'quantity_after': entry.quantity_after,
            'reference_number': entry.reference_number,
            'notes': entry.notes,
            'created_by': entry.created_by,
            'created_by_name': users.get(entry.created_by) or entry.created_by,
            'created_at': entry.created_at,
        }


@lru_cache(maxsize=None)
def default_engine() -> StockEngine:
    """Engine bound to the configured catalog backend and default database."""
    return StockEngine()
