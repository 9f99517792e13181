"""
Reconciliation: cross-check balances against the ledger and open documents.

For every balance row:

    quantity           == sum(quantity_change) over its ledger entries
    reserved_quantity  == units on open delivery / transfer lines at that
                          warehouse whose outbound leg has not posted yet
    ledger chain       each entry's quantity_before continues the previous
                       entry's quantity_after

Read-only. Discrepancies are reported, never repaired.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from stockledger.models.balance import StockBalance
from stockledger.models.documents import DeliveryItem, TransferItem
from stockledger.models.enums import DocumentStatus, TransactionType
from stockledger.models.ledger import LedgerEntry
from stockledger.services.balances import BalanceStore
from stockledger.services.ledger import LedgerStore

logger = logging.getLogger('stockledger')


@dataclass
class Discrepancy:
    product_id: str
    warehouse_id: str
    quantity: int
    ledger_quantity: int
    reserved_quantity: int
    expected_reserved: int
    broken_entries: list[int] = field(default_factory=list)

    @property
    def quantity_mismatch(self) -> bool:
        return self.quantity != self.ledger_quantity

    @property
    def reserved_mismatch(self) -> bool:
        return self.reserved_quantity != self.expected_reserved

    def as_dict(self) -> dict:
        return {
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'quantity': self.quantity,
            'ledger_quantity': self.ledger_quantity,
            'reserved_quantity': self.reserved_quantity,
            'expected_reserved': self.expected_reserved,
            'broken_entries': list(self.broken_entries),
        }


class Reconciler:
    """Report keys whose balance disagrees with the ledger or open documents."""

    OUTBOUND_ITEMS = (
        (DeliveryItem, 'document__warehouse_id', TransactionType.DELIVERY),
        (TransferItem, 'document__from_warehouse_id', TransactionType.TRANSFER_OUT),
    )

    def __init__(self, ledger: LedgerStore, balances: BalanceStore):
        self.ledger = ledger
        self.balances = balances

    @property
    def using(self) -> str:
        return self.balances.using

    def run(self, product_id: str | None = None,
            warehouse_id: str | None = None) -> list[Discrepancy]:
        expected_reserved = self._expected_reserved(product_id, warehouse_id)

        keys = {b.key: b for b in self.balances.all(warehouse_id=warehouse_id, product_id=product_id)}
        ledger_keys = LedgerEntry.objects.using(self.using).all()
        if product_id is not None:
            ledger_keys = ledger_keys.filter(product_id=product_id)
        if warehouse_id is not None:
            ledger_keys = ledger_keys.filter(warehouse_id=warehouse_id)
        for p, w in ledger_keys.order_by().values_list('product_id', 'warehouse_id').distinct():
            keys.setdefault((p, w), StockBalance(product_id=p, warehouse_id=w))
        for key in expected_reserved:
            keys.setdefault(key, StockBalance(product_id=key[0], warehouse_id=key[1]))

        discrepancies = []
        for (p, w), balance in sorted(keys.items()):
            found = Discrepancy(
                product_id=p,
                warehouse_id=w,
                quantity=balance.quantity,
                ledger_quantity=self.ledger.replay(p, w),
                reserved_quantity=balance.reserved_quantity,
                expected_reserved=expected_reserved.get((p, w), 0),
                broken_entries=[entry.pk for entry in self.ledger.chain_breaks(p, w)],
            )
            if found.quantity_mismatch or found.reserved_mismatch or found.broken_entries:
                discrepancies.append(found)
                logger.error("stock.reconcile.mismatch", extra=found.as_dict())

        logger.info(
            "stock.reconcile.finished",
            extra={"checked": len(keys), "mismatches": len(discrepancies)},
        )
        return discrepancies

    def _expected_reserved(self, product_id, warehouse_id) -> dict[tuple[str, str], int]:
        expected = defaultdict(int)
        open_statuses = DocumentStatus.open_statuses()

        for item_model, warehouse_field, leg_type in self.OUTBOUND_ITEMS:
            qs = item_model.objects.using(self.using).filter(document__status__in=open_statuses)
            if product_id is not None:
                qs = qs.filter(product_id=product_id)
            if warehouse_id is not None:
                qs = qs.filter(**{warehouse_field: warehouse_id})

            document_ids = {str(pk) for pk in qs.values_list('document_id', flat=True)}
            posted = set(
                LedgerEntry.objects.using(self.using)
                .filter(transaction_type=leg_type, transaction_id__in=document_ids)
                .values_list('transaction_id', 'line_id')
            )
            for pk, document_id, p, w, quantity in qs.values_list(
                'pk', 'document_id', 'product_id', warehouse_field, 'quantity'
            ):
                if (str(document_id), pk) not in posted:
                    expected[(p, w)] += quantity

        return dict(expected)
