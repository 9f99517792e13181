"""
Ledger store: append-only log of quantity changes.

No update/delete operations exist here; LedgerEntry refuses them too.
"""

import logging

from django.db import DEFAULT_DB_ALIAS
from django.db.models import Sum
from django.db.models.functions import Coalesce

from stockledger.conf import stockledger_settings
from stockledger.exceptions import ValidationError
from stockledger.models.enums import TransactionType
from stockledger.models.ledger import LedgerEntry

logger = logging.getLogger('stockledger')


class LedgerStore:
    """Append and read ledger entries."""

    def __init__(self, using: str | None = None):
        self.using = using or DEFAULT_DB_ALIAS

    def append(self, *, product_id: str, warehouse_id: str, transaction_type: str,
               transaction_id, quantity_change: int, quantity_before: int,
               quantity_after: int, line_id: int | None = None,
               reference_number: str = '', notes: str = '',
               created_by: str = '') -> LedgerEntry:
        """
        Persist one entry; id and created_at are assigned here.

        Storage errors propagate to the caller.
        """
        entry = LedgerEntry(
            product_id=product_id,
            warehouse_id=warehouse_id,
            transaction_type=transaction_type,
            transaction_id=str(transaction_id),
            line_id=line_id,
            quantity_change=quantity_change,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            reference_number=reference_number,
            notes=notes[:255],
            created_by=created_by or '',
        )
        entry.save(using=self.using)
        logger.info(
            "stock.ledger.appended",
            extra={
                "entry_id": entry.pk,
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "transaction_type": transaction_type,
                "change": quantity_change,
                "reference": reference_number,
            },
        )
        return entry

    def history(self, product_id: str | None = None, warehouse_id: str | None = None,
                transaction_type: str | None = None, limit: int | None = None) -> list[LedgerEntry]:
        """
        Entries matching the filter, newest first.

        Args:
            limit: Max rows (None = HISTORY_DEFAULT_LIMIT, capped at HISTORY_MAX_LIMIT)

        Raises:
            ValidationError: non-positive limit or unknown transaction type
        """
        if limit is None:
            limit = stockledger_settings.HISTORY_DEFAULT_LIMIT
        if limit <= 0:
            raise ValidationError("limit must be positive", limit=limit)
        limit = min(limit, stockledger_settings.HISTORY_MAX_LIMIT)

        qs = LedgerEntry.objects.using(self.using).all()
        if product_id:
            qs = qs.filter(product_id=product_id)
        if warehouse_id:
            qs = qs.filter(warehouse_id=warehouse_id)
        if transaction_type:
            if transaction_type not in TransactionType.values:
                raise ValidationError(
                    f"Unknown transaction type: {transaction_type}",
                    transaction_type=transaction_type,
                )
            qs = qs.filter(transaction_type=transaction_type)

        return list(qs.newest_first()[:limit])

    def is_posted(self, transaction_id, line_id: int | None, transaction_type: str) -> bool:
        return LedgerEntry.objects.using(self.using).filter(
            transaction_id=str(transaction_id),
            line_id=line_id,
            transaction_type=transaction_type,
        ).exists()

    def replay(self, product_id: str, warehouse_id: str) -> int:
        """Quantity obtained by replaying every entry of a key from zero."""
        return LedgerEntry.objects.using(self.using).for_key(product_id, warehouse_id).aggregate(
            t=Coalesce(Sum('quantity_change'), 0)
        )['t']

    def chain_breaks(self, product_id: str, warehouse_id: str) -> list[LedgerEntry]:
        """
        Entries whose quantity_before does not continue the previous
        entry's quantity_after (the first entry must start at 0).
        """
        breaks = []
        expected = 0
        entries = LedgerEntry.objects.using(self.using).for_key(
            product_id, warehouse_id
        ).chronological()
        for entry in entries.iterator():
            if entry.quantity_before != expected:
                breaks.append(entry)
            expected = entry.quantity_after
        return breaks
