"""
Exceptions for Stockledger.

All errors are StockError subclasses with a structured code for
programmatic handling. The CRUD layer translates them into responses
using ``http_status`` and ``as_dict()``.
"""

from typing import Any


class StockError(Exception):
    """
    Structured exception for stock operations.

    Usage:
        try:
            stock.validate_document('delivery', order_id, actor_id=user_id)
        except InsufficientStockError as e:
            for line in e.items:
                print(f"{line['sku']}: faltam {line['shortfall']}")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    http_status = 500

    _default_messages = {
        'NOT_FOUND': 'Resource not found',
        'INVALID_INPUT': 'Invalid input',
        'DOCUMENT_LOCKED': 'Cannot edit validated document',
        'INSUFFICIENT_STOCK': 'Insufficient stock available',
        'NEGATIVE_STOCK': 'Operation would drive stock negative',
        'CONCURRENT_MODIFICATION': 'Concurrent modification detected',
        'PARTIAL_POSTING': 'Some line items could not be posted',
    }

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': self.data,
        }


class NotFoundError(StockError):
    """Referenced document, product or warehouse does not exist."""

    http_status = 404

    def __init__(self, kind: str, identifier, message: str | None = None):
        super().__init__(
            'NOT_FOUND',
            message or f"{kind.replace('_', ' ').capitalize()} not found: {identifier}",
            kind=kind,
            id=str(identifier),
        )


class ValidationError(StockError):
    """Malformed input or an edit the document state forbids. Never retried."""

    http_status = 400

    def __init__(self, message: str, code: str = 'INVALID_INPUT', **data: Any):
        super().__init__(code, message, **data)


class InsufficientStockError(StockError):
    """
    Availability check failed.

    ``items`` holds one dict per unavailable line with product name, SKU,
    available, requested and shortfall. The message renders them one per
    line so it can be shown to end users as-is.
    """

    http_status = 400

    def __init__(self, items: list[dict[str, Any]], warehouse_id: str):
        lines = []
        for item in items:
            unit = f" {item['unit_of_measure']}" if item.get('unit_of_measure') else ''
            lines.append(
                f"{item['product_name']} ({item['sku']}): "
                f"Available: {item['available']}{unit}, "
                f"Requested: {item['requested']}{unit}, "
                f"Short by: {item['shortfall']}"
            )
        super().__init__(
            'INSUFFICIENT_STOCK',
            "Insufficient stock:\n" + "\n".join(lines),
            items=items,
            warehouse_id=warehouse_id,
        )

    @property
    def items(self) -> list[dict[str, Any]]:
        """Shortcut for data['items']."""
        return self.data['items']


class NegativeStockError(StockError):
    """A non-adjustment delta would drive on-hand quantity below zero."""

    http_status = 400

    def __init__(self, product_id: str, warehouse_id: str,
                 quantity_before: int, delta: int, transaction_type: str):
        super().__init__(
            'NEGATIVE_STOCK',
            f"{transaction_type} of {delta} would leave {quantity_before + delta} "
            f"units of {product_id} at {warehouse_id}",
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity_before=quantity_before,
            delta=delta,
            transaction_type=transaction_type,
        )


class ConcurrencyConflictError(StockError):
    """Compare-and-swap retries exhausted on a balance row. Transient."""

    http_status = 503

    def __init__(self, product_id: str, warehouse_id: str, attempts: int):
        super().__init__(
            'CONCURRENT_MODIFICATION',
            product_id=product_id,
            warehouse_id=warehouse_id,
            attempts=attempts,
        )


class PartialPostingError(StockError):
    """
    A multi-leg validation posted some legs and failed others.

    Already-posted legs stay posted (no compensating rollback); the
    document stays open so a retry posts only the missing legs.

    Attributes (via data):
        posted: list of {'line_id', 'product_id', 'warehouse_id', 'transaction_type', 'quantity_change'}
        failed: same shape plus 'error' (the StockError.as_dict() of the cause)
    """

    http_status = 409

    def __init__(self, document_id, posted: list[dict], failed: list[dict]):
        super().__init__(
            'PARTIAL_POSTING',
            f"{len(failed)} leg(s) failed, {len(posted)} posted for document {document_id}",
            document_id=str(document_id),
            posted=posted,
            failed=failed,
        )

    @property
    def posted(self) -> list[dict]:
        return self.data['posted']

    @property
    def failed(self) -> list[dict]:
        return self.data['failed']
