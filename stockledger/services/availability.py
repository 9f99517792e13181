"""
Availability checker: read-only "can N units leave warehouse W?" queries.

available_quantity = quantity - reserved_quantity, not clamped: it is
reported negative when reservations exceed on-hand (e.g. after a count
adjustment lowered the balance under open deliveries).

check_batch() is a plain read. Callers that go on to reserve must hold the
balance key locks across check + reserve (see ReservationManager).
"""

from dataclasses import dataclass, field

from stockledger.exceptions import InsufficientStockError
from stockledger.services.balances import BalanceStore


@dataclass(frozen=True)
class Availability:
    """Availability of one product in one warehouse."""

    product_id: str
    warehouse_id: str
    requested_quantity: int
    quantity: int
    reserved_quantity: int
    available_quantity: int
    shortfall: int
    is_available: bool

    def as_dict(self) -> dict:
        return {
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'requested_quantity': self.requested_quantity,
            'quantity': self.quantity,
            'reserved_quantity': self.reserved_quantity,
            'available_quantity': self.available_quantity,
            'shortfall': self.shortfall,
            'is_available': self.is_available,
        }


@dataclass(frozen=True)
class BatchAvailability:
    """Aggregated availability of several lines against one warehouse."""

    warehouse_id: str
    all_available: bool
    available_items: list[Availability] = field(default_factory=list)
    unavailable_items: list[Availability] = field(default_factory=list)


def _line(item) -> tuple[str, int]:
    """Accept LineInput-like objects, model line items, or dicts."""
    if isinstance(item, dict):
        return str(item['product_id']), int(item['quantity'])
    return str(item.product_id), int(item.quantity)


class AvailabilityChecker:
    """Read-only availability queries over the balance store."""

    def __init__(self, balances: BalanceStore, catalog):
        self.balances = balances
        self.catalog = catalog

    def availability(self, product_id: str, warehouse_id: str,
                     requested_quantity: int = 0, credit: int = 0) -> Availability:
        """
        Availability of one product.

        Args:
            credit: Units already reserved by the caller's own document;
                added back so a document never competes with itself.
        """
        balance = self.balances.get(product_id, warehouse_id)
        reserved = balance.reserved_quantity
        if credit:
            reserved -= min(credit, reserved)
        available = balance.quantity - reserved
        shortfall = max(0, requested_quantity - available)
        return Availability(
            product_id=product_id,
            warehouse_id=warehouse_id,
            requested_quantity=requested_quantity,
            quantity=balance.quantity,
            reserved_quantity=reserved,
            available_quantity=available,
            shortfall=shortfall,
            is_available=shortfall == 0,
        )

    def check_batch(self, items, warehouse_id: str,
                    credits: dict[str, int] | None = None) -> BatchAvailability:
        """
        Evaluate each line independently (no cross-line reservation).

        Args:
            items: [{'product_id', 'quantity'}] or objects with those attributes
            credits: product_id -> units reserved by the caller's own document
        """
        credits = credits or {}
        available_items = []
        unavailable_items = []

        for item in items:
            product_id, quantity = _line(item)
            result = self.availability(
                product_id, warehouse_id, quantity, credit=credits.get(product_id, 0)
            )
            if result.is_available:
                available_items.append(result)
            else:
                unavailable_items.append(result)

        return BatchAvailability(
            warehouse_id=warehouse_id,
            all_available=not unavailable_items,
            available_items=available_items,
            unavailable_items=unavailable_items,
        )

    def validate(self, items, warehouse_id: str,
                 credits: dict[str, int] | None = None) -> BatchAvailability:
        """
        check_batch() that raises when any line is short.

        Raises:
            InsufficientStockError: with a per-line breakdown for end users
        """
        result = self.check_batch(items, warehouse_id, credits=credits)
        if not result.all_available:
            raise InsufficientStockError(
                [self._describe(line) for line in result.unavailable_items],
                warehouse_id,
            )
        return result

    def _describe(self, line: Availability) -> dict:
        product = self.catalog.resolve_product(line.product_id)
        return {
            'product_id': line.product_id,
            'product_name': product.name if product else line.product_id,
            'sku': product.sku if product else line.product_id,
            'unit_of_measure': product.unit_of_measure if product else '',
            'available': line.available_quantity,
            'requested': line.requested_quantity,
            'shortfall': line.shortfall,
        }
