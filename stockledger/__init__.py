"""
Django Stockledger: multi-warehouse stock accounting.

Movement documents (receipts, deliveries, transfers, adjustments) post to
an append-only ledger; per-warehouse balances are its projection.

Usage:
    from stockledger import stock, StockError

    receipt = stock.create_document('receipt', {'warehouse_id': 'wh-1'},
                                    [{'product_id': 'p-1', 'quantity': 100}])
    stock.validate_document('receipt', receipt.pk)
    stock.get_availability('p-1', 'wh-1').available_quantity  # 100
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'stock':
        from stockledger.service import default_engine
        return default_engine()
    elif name == 'StockEngine':
        from stockledger.service import StockEngine
        return StockEngine
    elif name in (
        'StockError',
        'NotFoundError',
        'ValidationError',
        'InsufficientStockError',
        'NegativeStockError',
        'ConcurrencyConflictError',
        'PartialPostingError',
    ):
        from stockledger import exceptions
        return getattr(exceptions, name)
    elif name in (
        'StockBalance',
        'LedgerEntry',
        'Receipt',
        'DeliveryOrder',
        'InternalTransfer',
        'StockAdjustment',
        'DocumentType',
        'DocumentStatus',
        'TransactionType',
    ):
        from stockledger import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'stock',
    'StockEngine',
    'StockError',
    'NotFoundError',
    'ValidationError',
    'InsufficientStockError',
    'NegativeStockError',
    'ConcurrencyConflictError',
    'PartialPostingError',
    'StockBalance',
    'LedgerEntry',
    'Receipt',
    'DeliveryOrder',
    'InternalTransfer',
    'StockAdjustment',
    'DocumentType',
    'DocumentStatus',
    'TransactionType',
]

__version__ = '0.1.0'
