"""
Reservation manager: reserved_quantity bookkeeping for outbound documents.

Reservations are earmarks on the balance row, independent of ledger
posting. check + reserve run as one critical section per key (the same
lock apply_delta uses), so two concurrent documents cannot both pass the
check against the same units.
"""

import logging

from django.db import transaction

from stockledger.exceptions import ValidationError
from stockledger.models.balance import StockBalance
from stockledger.services.availability import AvailabilityChecker, BatchAvailability
from stockledger.services.balances import BalanceStore

logger = logging.getLogger('stockledger')


class ReservationManager:
    """Reserve and release stock for open outbound line items."""

    def __init__(self, balances: BalanceStore, availability: AvailabilityChecker):
        self.balances = balances
        self.availability = availability

    def reserve(self, product_id: str, warehouse_id: str, quantity: int) -> StockBalance:
        """reserved += quantity."""
        if quantity < 0:
            raise ValidationError("Reservation quantity must be >= 0", quantity=quantity)

        with self.balances.locked([(product_id, warehouse_id)]):
            with transaction.atomic(using=self.balances.using):
                current = self.balances.get_for_update(product_id, warehouse_id)
                balance = self.balances.set_reserved(
                    product_id, warehouse_id, current.reserved_quantity + quantity
                )

        logger.info(
            "stock.reservation.reserved",
            extra={
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "qty": quantity,
                "reserved": balance.reserved_quantity,
            },
        )
        return balance

    def release(self, product_id: str, warehouse_id: str, quantity: int) -> StockBalance:
        """reserved = max(0, reserved - quantity). Safe to call repeatedly."""
        if quantity < 0:
            raise ValidationError("Release quantity must be >= 0", quantity=quantity)

        with self.balances.locked([(product_id, warehouse_id)]):
            with transaction.atomic(using=self.balances.using):
                current = self.balances.get_for_update(product_id, warehouse_id)
                if quantity > current.reserved_quantity:
                    logger.warning(
                        "stock.reservation.over_release",
                        extra={
                            "product_id": product_id,
                            "warehouse_id": warehouse_id,
                            "qty": quantity,
                            "reserved": current.reserved_quantity,
                        },
                    )
                balance = self.balances.set_reserved(
                    product_id, warehouse_id, current.reserved_quantity - quantity
                )

        logger.info(
            "stock.reservation.released",
            extra={
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "qty": quantity,
                "reserved": balance.reserved_quantity,
            },
        )
        return balance

    def reserve_items(self, items, warehouse_id: str) -> None:
        """One reservation per line item."""
        for item in items:
            self.reserve(item.product_id, warehouse_id, item.quantity)

    def release_items(self, items, warehouse_id: str) -> None:
        """One release per line item."""
        for item in items:
            self.release(item.product_id, warehouse_id, item.quantity)

    def check_and_reserve(self, items, warehouse_id: str) -> BatchAvailability:
        """
        Validate availability and reserve, atomically per key.

        Raises:
            InsufficientStockError: nothing is reserved
        """
        keys = [(item.product_id, warehouse_id) for item in items]
        with self.balances.locked(keys):
            with transaction.atomic(using=self.balances.using):
                result = self.availability.validate(items, warehouse_id)
                self.reserve_items(items, warehouse_id)
        return result

    def replace(self, old_items, old_warehouse_id: str,
                new_items, new_warehouse_id: str) -> BatchAvailability:
        """
        Edit protocol for an outbound document's item list.

        1. Release every old item at the ORIGINAL warehouse
        2. Validate the new items at the TARGET warehouse
        3. Reserve the new items at the target warehouse

        Releasing first keeps the document's own stale reservation from
        causing a false shortage. All three steps share one transaction and
        one critical section: a failed check rolls the release back.

        Raises:
            InsufficientStockError: reservations are left as they were
        """
        keys = [(item.product_id, old_warehouse_id) for item in old_items]
        keys += [(item.product_id, new_warehouse_id) for item in new_items]

        with self.balances.locked(keys):
            with transaction.atomic(using=self.balances.using):
                self.release_items(old_items, old_warehouse_id)
                result = self.availability.validate(new_items, new_warehouse_id)
                self.reserve_items(new_items, new_warehouse_id)

        logger.info(
            "stock.reservation.replaced",
            extra={
                "old_warehouse_id": old_warehouse_id,
                "new_warehouse_id": new_warehouse_id,
                "old_lines": len(old_items),
                "new_lines": len(new_items),
            },
        )
        return result
