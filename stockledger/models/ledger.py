"""
LedgerEntry model: Immutable ledger of quantity changes.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import TransactionType


class LedgerEntryQuerySet(models.QuerySet):
    """Append-only queryset: bulk update/delete are refused."""

    def update(self, **kwargs):
        raise ValueError(
            "Ledger entries are immutable. "
            "To correct stock, post an adjustment."
        )

    def delete(self):
        raise ValueError(
            "Ledger entries are immutable. "
            "To correct stock, post an adjustment."
        )

    def for_key(self, product_id: str, warehouse_id: str):
        return self.filter(product_id=product_id, warehouse_id=warehouse_id)

    def chronological(self):
        return self.order_by('created_at', 'id')

    def newest_first(self):
        return self.order_by('-created_at', '-id')


class LedgerEntry(models.Model):
    """
    Immutable record of a quantity change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new entries (adjustments)
    - quantity_before/quantity_after are captured under the balance lock,
      so entries of one (product, warehouse) chain when ordered by
      (created_at, id)

    A document line leg (transaction_id, line_id, transaction_type) can be
    posted at most once; the unique constraint makes re-posting after a
    partial failure impossible.
    """

    product_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Product'))
    warehouse_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Warehouse'))

    transaction_type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
        verbose_name=_('Transaction type'),
    )
    transaction_id = models.CharField(
        max_length=64,
        verbose_name=_('Originating document'),
    )
    line_id = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Originating line'),
    )

    quantity_change = models.IntegerField(
        verbose_name=_('Change'),
        help_text=_('Positive = in, Negative = out'),
    )
    quantity_before = models.IntegerField(verbose_name=_('Before'))
    quantity_after = models.IntegerField(verbose_name=_('After'))

    reference_number = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Reference'))
    notes = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Notes'))

    created_by = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Created by'))
    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Created at'))

    objects = LedgerEntryQuerySet.as_manager()

    class Meta:
        verbose_name = _('Ledger entry')
        verbose_name_plural = _('Ledger entries')
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['transaction_id', 'line_id', 'transaction_type'],
                name='unique_ledger_leg_per_line',
            ),
        ]
        indexes = [
            models.Index(fields=['product_id', 'warehouse_id', 'created_at'], name='ledger_key_created_idx'),
            models.Index(fields=['transaction_type', 'created_at'], name='ledger_type_created_idx'),
        ]

    def save(self, *args, **kwargs):
        """Insert only."""
        if self.pk:
            raise ValueError(
                "Ledger entries are immutable. "
                "To correct stock, post an adjustment."
            )

        if self.quantity_before + self.quantity_change != self.quantity_after:
            raise ValueError("quantity_after must equal quantity_before + quantity_change")

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion: entries are immutable."""
        raise ValueError(
            "Ledger entries are immutable. "
            "To correct stock, post an adjustment."
        )

    def __str__(self) -> str:
        sign = '+' if self.quantity_change > 0 else ''
        return (
            f"{sign}{self.quantity_change} {self.product_id} @ {self.warehouse_id} "
            f"| {self.transaction_type} {self.reference_number}"
        )
