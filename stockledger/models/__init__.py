"""
Stockledger Models.

Core models for stock accounting:
- StockBalance: On-hand + reserved quantity per (product, warehouse)
- LedgerEntry: Immutable ledger of changes
- Receipt / DeliveryOrder / InternalTransfer / StockAdjustment: Movement
  documents with their line items
"""

from stockledger.models.balance import StockBalance
from stockledger.models.documents import (
    DOCUMENT_MODELS,
    ITEM_MODELS,
    AdjustmentItem,
    DeliveryItem,
    DeliveryOrder,
    InternalTransfer,
    MovementDocument,
    Receipt,
    ReceiptItem,
    StockAdjustment,
    TransferItem,
)
from stockledger.models.enums import DocumentStatus, DocumentType, TransactionType
from stockledger.models.ledger import LedgerEntry

__all__ = [
    'TransactionType',
    'DocumentStatus',
    'DocumentType',
    'StockBalance',
    'LedgerEntry',
    'MovementDocument',
    'Receipt',
    'ReceiptItem',
    'DeliveryOrder',
    'DeliveryItem',
    'InternalTransfer',
    'TransferItem',
    'StockAdjustment',
    'AdjustmentItem',
    'DOCUMENT_MODELS',
    'ITEM_MODELS',
]
