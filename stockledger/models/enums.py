"""
Enums for Stockledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class TransactionType(models.TextChoices):
    """
    Kind of ledger posting.

    ADJUSTMENT is the only type allowed to drive on-hand quantity
    negative (a physical count overrides the book value).
    """
    RECEIPT = 'receipt', _('Receipt')
    DELIVERY = 'delivery', _('Delivery')
    TRANSFER_IN = 'transfer_in', _('Transfer in')
    TRANSFER_OUT = 'transfer_out', _('Transfer out')
    ADJUSTMENT = 'adjustment', _('Adjustment')
    INITIAL_STOCK = 'initial_stock', _('Initial stock')


class DocumentStatus(models.TextChoices):
    """
    Movement document lifecycle status.

    DRAFT/WAITING/READY are all "open": editable, reservations held.
    DONE is terminal and is the only status that posts to the ledger.
    CANCELED is terminal and releases reservations.
    """
    DRAFT = 'draft', _('Draft')
    WAITING = 'waiting', _('Waiting')
    READY = 'ready', _('Ready')
    DONE = 'done', _('Done')
    CANCELED = 'canceled', _('Canceled')

    @classmethod
    def open_statuses(cls) -> list[str]:
        return [cls.DRAFT, cls.WAITING, cls.READY]


class DocumentType(models.TextChoices):
    """Movement document variants."""
    RECEIPT = 'receipt', _('Receipt')
    DELIVERY = 'delivery', _('Delivery order')
    TRANSFER = 'transfer', _('Internal transfer')
    ADJUSTMENT = 'adjustment', _('Stock adjustment')
