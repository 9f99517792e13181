"""
StockBalance model: current quantity per (product, warehouse).
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class StockBalanceQuerySet(models.QuerySet):
    """QuerySet helpers for balances."""

    def for_key(self, product_id: str, warehouse_id: str):
        return self.filter(product_id=product_id, warehouse_id=warehouse_id)

    def at_warehouse(self, warehouse_id: str):
        return self.filter(warehouse_id=warehouse_id)


class StockBalance(models.Model):
    """
    On-hand and reserved quantity of a product in a warehouse.

    A materialized projection of the ledger plus live reservations.
    Rows are created lazily on the first movement or reservation and
    never deleted.

    Writes go through BalanceStore only:
    - quantity changes via apply_delta() (paired with a LedgerEntry)
    - reserved_quantity changes via set_reserved()

    version is bumped on every write and used as a compare-and-swap guard.
    """

    product_id = models.CharField(max_length=64, verbose_name=_('Product'))
    warehouse_id = models.CharField(max_length=64, verbose_name=_('Warehouse'))

    quantity = models.IntegerField(
        default=0,
        verbose_name=_('On hand'),
        help_text=_('Negative only after a physical count adjustment'),
    )
    reserved_quantity = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Reserved'),
        help_text=_('Earmarked by open outbound documents'),
    )
    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockBalanceQuerySet.as_manager()

    class Meta:
        verbose_name = _('Stock balance')
        verbose_name_plural = _('Stock balances')
        constraints = [
            models.UniqueConstraint(
                fields=['product_id', 'warehouse_id'],
                name='unique_balance_per_product_warehouse',
            ),
        ]
        indexes = [
            models.Index(fields=['warehouse_id'], name='balance_warehouse_idx'),
        ]

    @property
    def available(self) -> int:
        """On hand minus reserved. Not clamped: may be negative."""
        return self.quantity - self.reserved_quantity

    @property
    def key(self) -> tuple[str, str]:
        return (self.product_id, self.warehouse_id)

    def __str__(self) -> str:
        return (
            f"{self.product_id} @ {self.warehouse_id}: "
            f"{self.quantity} ({self.reserved_quantity} reserved)"
        )
