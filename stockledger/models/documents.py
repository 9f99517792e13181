"""
Movement documents: receipts, deliveries, transfers and adjustments.

Each document type has its own table plus a child line-items table.
Documents only reference products and warehouses by id; names are
resolved through the catalog backend when needed for display.
"""

import time
import uuid

from django.db import models
from django.utils.crypto import get_random_string
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import DocumentStatus, DocumentType


def generate_document_number(prefix: str) -> str:
    """Human-readable number, e.g. ``DO-1718000000000-K3ZQ9A``."""
    token = get_random_string(6, allowed_chars='ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789')
    return f"{prefix}-{int(time.time() * 1000)}-{token}"


class MovementDocument(models.Model):
    """
    Base for all stock-moving documents.

    LIFECYCLE:

        draft / waiting / ready  ──validate──►  done
                 │
                 └──────────cancel──────────►  canceled

    Only the transition to DONE posts to the ledger; it happens at most
    once and validated_at is stamped at that moment.
    """

    doc_type: str = ''
    number_prefix: str = ''
    is_outbound: bool = False

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    number = models.CharField(max_length=40, unique=True, verbose_name=_('Number'))
    status = models.CharField(
        max_length=20,
        choices=DocumentStatus.choices,
        default=DocumentStatus.DRAFT,
        db_index=True,
        verbose_name=_('Status'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Notes'))

    created_by = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Created by'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    validated_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Validated at'))

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def save(self, *args, **kwargs):
        if not self.number:
            self.number = generate_document_number(self.number_prefix)
        super().save(*args, **kwargs)

    @property
    def is_open(self) -> bool:
        return self.status in DocumentStatus.open_statuses()

    @property
    def is_done(self) -> bool:
        return self.status == DocumentStatus.DONE

    @property
    def source_warehouse_id(self) -> str | None:
        """Warehouse whose stock is reserved by this document (outbound only)."""
        return None

    def __str__(self) -> str:
        return f"{self.number} [{self.status}]"


class Receipt(MovementDocument):
    """Inbound goods from a supplier."""

    doc_type = DocumentType.RECEIPT
    number_prefix = 'REC'

    warehouse_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Warehouse'))
    supplier_name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Supplier'))

    class Meta(MovementDocument.Meta):
        verbose_name = _('Receipt')
        verbose_name_plural = _('Receipts')


class ReceiptItem(models.Model):
    document = models.ForeignKey(Receipt, on_delete=models.CASCADE, related_name='items')
    product_id = models.CharField(max_length=64, verbose_name=_('Product'))
    quantity = models.PositiveIntegerField(verbose_name=_('Quantity'))
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    notes = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return f"+{self.quantity} {self.product_id}"


class DeliveryOrder(MovementDocument):
    """Outbound goods to a customer. Reserves stock while open."""

    doc_type = DocumentType.DELIVERY
    number_prefix = 'DO'
    is_outbound = True

    warehouse_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Warehouse'))
    customer_name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Customer'))

    class Meta(MovementDocument.Meta):
        verbose_name = _('Delivery order')
        verbose_name_plural = _('Delivery orders')

    @property
    def source_warehouse_id(self) -> str | None:
        return self.warehouse_id


class DeliveryItem(models.Model):
    document = models.ForeignKey(DeliveryOrder, on_delete=models.CASCADE, related_name='items')
    product_id = models.CharField(max_length=64, verbose_name=_('Product'))
    quantity = models.PositiveIntegerField(verbose_name=_('Quantity'))
    notes = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return f"-{self.quantity} {self.product_id}"


class InternalTransfer(MovementDocument):
    """
    Move stock between two warehouses.

    The outbound leg reserves at the source while open; validation posts
    transfer_out at the source and transfer_in at the destination.
    """

    doc_type = DocumentType.TRANSFER
    number_prefix = 'TRF'
    is_outbound = True

    from_warehouse_id = models.CharField(max_length=64, db_index=True, verbose_name=_('From warehouse'))
    to_warehouse_id = models.CharField(max_length=64, db_index=True, verbose_name=_('To warehouse'))

    class Meta(MovementDocument.Meta):
        verbose_name = _('Internal transfer')
        verbose_name_plural = _('Internal transfers')

    @property
    def source_warehouse_id(self) -> str | None:
        return self.from_warehouse_id


class TransferItem(models.Model):
    document = models.ForeignKey(InternalTransfer, on_delete=models.CASCADE, related_name='items')
    product_id = models.CharField(max_length=64, verbose_name=_('Product'))
    quantity = models.PositiveIntegerField(verbose_name=_('Quantity'))
    notes = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.quantity} {self.product_id}"


class StockAdjustment(MovementDocument):
    """Physical count correction. May drive on-hand negative."""

    doc_type = DocumentType.ADJUSTMENT
    number_prefix = 'ADJ'

    warehouse_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Warehouse'))
    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Reason'))

    class Meta(MovementDocument.Meta):
        verbose_name = _('Stock adjustment')
        verbose_name_plural = _('Stock adjustments')


class AdjustmentItem(models.Model):
    """
    Counted line. recorded_quantity is the book quantity snapshotted when
    the line was saved, not when the adjustment is validated.
    """

    document = models.ForeignKey(StockAdjustment, on_delete=models.CASCADE, related_name='items')
    product_id = models.CharField(max_length=64, verbose_name=_('Product'))
    counted_quantity = models.PositiveIntegerField(verbose_name=_('Counted'))
    recorded_quantity = models.IntegerField(verbose_name=_('Recorded'))
    difference = models.IntegerField(verbose_name=_('Difference'))
    notes = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.product_id}: {self.recorded_quantity} → {self.counted_quantity}"


DOCUMENT_MODELS = {
    DocumentType.RECEIPT: Receipt,
    DocumentType.DELIVERY: DeliveryOrder,
    DocumentType.TRANSFER: InternalTransfer,
    DocumentType.ADJUSTMENT: StockAdjustment,
}

ITEM_MODELS = {
    DocumentType.RECEIPT: ReceiptItem,
    DocumentType.DELIVERY: DeliveryItem,
    DocumentType.TRANSFER: TransferItem,
    DocumentType.ADJUSTMENT: AdjustmentItem,
}
