"""
Balance store: the single mutation point for StockBalance rows.

Concurrency (per (product_id, warehouse_id) key):
    1. In-process re-entrant key lock (stockledger.locks) held across the
       whole read-compute-write
    2. select_for_update() row lock inside transaction.atomic()
    3. Version compare-and-swap on the write; on conflict the attempt is
       retried up to BALANCE_MAX_RETRIES times, then
       ConcurrencyConflictError
"""

import logging

from django.db import DEFAULT_DB_ALIAS, transaction
from django.db.models import F
from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import ConcurrencyConflictError, NegativeStockError, ValidationError
from stockledger.locks import key_lock, key_locks
from stockledger.models.balance import StockBalance
from stockledger.models.enums import TransactionType

logger = logging.getLogger('stockledger')


class BalanceStore:
    """Current on-hand and reserved quantity per (product, warehouse)."""

    def __init__(self, using: str | None = None):
        self.using = using or DEFAULT_DB_ALIAS

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    def get(self, product_id: str, warehouse_id: str) -> StockBalance:
        """
        Current balance for a key.

        Returns an unsaved zero balance when no row exists, never an error.
        """
        balance = StockBalance.objects.using(self.using).for_key(product_id, warehouse_id).first()
        if balance is None:
            return StockBalance(product_id=product_id, warehouse_id=warehouse_id)
        return balance

    def get_for_update(self, product_id: str, warehouse_id: str) -> StockBalance:
        """
        Row-locked balance, creating the row if needed.

        Must be called inside transaction.atomic(using=self.using).
        """
        balance, _ = StockBalance.objects.using(self.using).get_or_create(
            product_id=product_id,
            warehouse_id=warehouse_id,
        )
        return StockBalance.objects.using(self.using).select_for_update().get(pk=balance.pk)

    def all(self, warehouse_id: str | None = None, product_id: str | None = None):
        qs = StockBalance.objects.using(self.using).order_by('product_id', 'warehouse_id')
        if warehouse_id is not None:
            qs = qs.at_warehouse(warehouse_id)
        if product_id is not None:
            qs = qs.filter(product_id=product_id)
        return qs

    # ══════════════════════════════════════════════════════════════
    # LOCKING
    # ══════════════════════════════════════════════════════════════

    def locked(self, keys):
        """
        Critical section over several keys (sorted acquisition).

        Enter it before opening any transaction.
        """
        return key_locks(keys)

    # ══════════════════════════════════════════════════════════════
    # MUTATIONS
    # ══════════════════════════════════════════════════════════════

    def apply_delta(self, product_id: str, warehouse_id: str, delta: int,
                    transaction_type: str) -> tuple[int, int]:
        """
        Add delta to on-hand quantity.

        Returns:
            (quantity_before, quantity_after)

        Raises:
            NegativeStockError: new quantity < 0 and type is not adjustment
                (balance left unchanged)
            ConcurrencyConflictError: CAS retries exhausted
            ValidationError: unknown transaction type
        """
        if transaction_type not in TransactionType.values:
            raise ValidationError(f"Unknown transaction type: {transaction_type}")

        attempts = max(1, stockledger_settings.BALANCE_MAX_RETRIES)

        with key_lock(product_id, warehouse_id):
            for attempt in range(1, attempts + 1):
                with transaction.atomic(using=self.using):
                    balance = self.get_for_update(product_id, warehouse_id)
                    before = balance.quantity
                    after = before + delta

                    if after < 0 and transaction_type != TransactionType.ADJUSTMENT:
                        logger.warning(
                            "stock.balance.negative_rejected",
                            extra={
                                "product_id": product_id,
                                "warehouse_id": warehouse_id,
                                "before": before,
                                "delta": delta,
                                "transaction_type": transaction_type,
                            },
                        )
                        raise NegativeStockError(
                            product_id, warehouse_id, before, delta, transaction_type
                        )

                    if self._swap(balance, quantity=after):
                        logger.info(
                            "stock.balance.applied",
                            extra={
                                "product_id": product_id,
                                "warehouse_id": warehouse_id,
                                "before": before,
                                "after": after,
                                "transaction_type": transaction_type,
                            },
                        )
                        return before, after

                logger.warning(
                    "stock.balance.conflict",
                    extra={
                        "product_id": product_id,
                        "warehouse_id": warehouse_id,
                        "attempt": attempt,
                    },
                )

        raise ConcurrencyConflictError(product_id, warehouse_id, attempts)

    def set_reserved(self, product_id: str, warehouse_id: str,
                     reserved_quantity: int) -> StockBalance:
        """
        Absolute set of reserved quantity, floor-clamped to 0.

        Raises:
            ConcurrencyConflictError: CAS retries exhausted
        """
        reserved_quantity = max(0, int(reserved_quantity))
        attempts = max(1, stockledger_settings.BALANCE_MAX_RETRIES)

        with key_lock(product_id, warehouse_id):
            for attempt in range(1, attempts + 1):
                with transaction.atomic(using=self.using):
                    balance = self.get_for_update(product_id, warehouse_id)
                    if self._swap(balance, reserved_quantity=reserved_quantity):
                        balance.reserved_quantity = reserved_quantity
                        balance.version += 1
                        logger.debug(
                            "stock.balance.reserved",
                            extra={
                                "product_id": product_id,
                                "warehouse_id": warehouse_id,
                                "reserved": reserved_quantity,
                            },
                        )
                        return balance

                logger.warning(
                    "stock.balance.conflict",
                    extra={
                        "product_id": product_id,
                        "warehouse_id": warehouse_id,
                        "attempt": attempt,
                    },
                )

        raise ConcurrencyConflictError(product_id, warehouse_id, attempts)

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    def _swap(self, balance: StockBalance, **changes) -> bool:
        """Write changes only if nobody bumped the version since we read it."""
        updated = StockBalance.objects.using(self.using).filter(
            pk=balance.pk,
            version=balance.version,
        ).update(
            version=F('version') + 1,
            updated_at=timezone.now(),
            **changes,
        )
        return updated == 1
