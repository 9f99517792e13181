"""
Typed operation inputs.

Request bodies arrive as plain dicts; they are parsed here, at the
boundary, into one tagged DocumentInput per document type before the
engine sees them. Anything malformed is a ValidationError.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from stockledger.exceptions import ValidationError
from stockledger.models.enums import DocumentStatus, DocumentType


@dataclass(frozen=True)
class LineInput:
    """Receipt, delivery or transfer line."""

    product_id: str
    quantity: int
    notes: str = ''
    unit_price: Decimal | None = None


@dataclass(frozen=True)
class CountInput:
    """Adjustment line: what was physically counted."""

    product_id: str
    counted_quantity: int
    notes: str = ''


@dataclass(frozen=True)
class DocumentInput:
    """A parsed create/update request."""

    doc_type: DocumentType
    header: dict[str, Any] = field(default_factory=dict)
    items: list[LineInput] | list[CountInput] | None = None


HEADER_FIELDS = {
    DocumentType.RECEIPT: {'warehouse_id', 'supplier_name', 'notes'},
    DocumentType.DELIVERY: {'warehouse_id', 'customer_name', 'notes'},
    DocumentType.TRANSFER: {'from_warehouse_id', 'to_warehouse_id', 'notes'},
    DocumentType.ADJUSTMENT: {'warehouse_id', 'reason', 'notes'},
}

REQUIRED_ON_CREATE = {
    DocumentType.RECEIPT: ('warehouse_id',),
    DocumentType.DELIVERY: ('warehouse_id',),
    DocumentType.TRANSFER: ('from_warehouse_id', 'to_warehouse_id'),
    DocumentType.ADJUSTMENT: ('warehouse_id',),
}

# Counts are taken against one warehouse; recount elsewhere = new adjustment
IMMUTABLE_AFTER_CREATE = {
    DocumentType.ADJUSTMENT: {'warehouse_id'},
}

WAREHOUSE_FIELDS = ('warehouse_id', 'from_warehouse_id', 'to_warehouse_id')


def parse_doc_type(value) -> DocumentType:
    try:
        return DocumentType(value)
    except ValueError:
        raise ValidationError(
            f"Unknown document type: {value}",
            allowed=list(DocumentType.values),
        ) from None


def _to_int(value, name: str, minimum: int) -> int:
    if value is None or value == '':
        raise ValidationError(f"{name} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer") from None
    if number < minimum:
        raise ValidationError(f"{name} must be >= {minimum}", **{name: number})
    return number


def _to_text(value, name: str, required: bool = False) -> str:
    if value is None:
        if required:
            raise ValidationError(f"{name} is required")
        return ''
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError(f"{name} must be a string")
    text = str(value).strip()
    if required and not text:
        raise ValidationError(f"{name} is required")
    return text


def _to_price(value) -> Decimal | None:
    if value is None or value == '':
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("unit_price must be a number") from None
    if price < 0:
        raise ValidationError("unit_price must be >= 0")
    return price


def parse_header(doc_type: DocumentType, header: dict | None, *, creating: bool) -> dict[str, Any]:
    """
    Validate header fields for a document type.

    On update the header may also carry ``status``.
    """
    header = dict(header or {})
    allowed = set(HEADER_FIELDS[doc_type])
    if not creating:
        allowed -= IMMUTABLE_AFTER_CREATE.get(doc_type, set())
        allowed.add('status')

    unknown = sorted(set(header) - allowed)
    if unknown:
        raise ValidationError(
            f"Unknown or read-only fields for {doc_type.label}: {', '.join(unknown)}",
            fields=unknown,
        )

    parsed: dict[str, Any] = {}
    for name, value in header.items():
        if name == 'status':
            if value not in DocumentStatus.values:
                raise ValidationError(f"Unknown status: {value}", allowed=list(DocumentStatus.values))
            parsed[name] = DocumentStatus(value)
        else:
            parsed[name] = _to_text(value, name, required=name in WAREHOUSE_FIELDS)

    if creating:
        missing = [name for name in REQUIRED_ON_CREATE[doc_type] if not parsed.get(name)]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                fields=missing,
            )

    return parsed


def parse_items(doc_type: DocumentType, items) -> list[LineInput] | list[CountInput]:
    """Validate a non-empty list of line items."""
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("Items are required")

    parsed = []
    for index, item in enumerate(items):
        if isinstance(item, (LineInput, CountInput)):
            item = asdict(item)
        if not isinstance(item, dict):
            raise ValidationError(f"Item {index} must be an object", index=index)

        product_id = _to_text(item.get('product_id'), 'product_id', required=True)
        notes = _to_text(item.get('notes'), 'notes')

        if doc_type == DocumentType.ADJUSTMENT:
            parsed.append(CountInput(
                product_id=product_id,
                counted_quantity=_to_int(item.get('counted_quantity'), 'counted_quantity', 0),
                notes=notes,
            ))
        else:
            parsed.append(LineInput(
                product_id=product_id,
                quantity=_to_int(item.get('quantity'), 'quantity', 1),
                notes=notes,
                unit_price=_to_price(item.get('unit_price')) if doc_type == DocumentType.RECEIPT else None,
            ))
    return parsed


def parse_document(doc_type, header: dict | None, items, *, creating: bool) -> DocumentInput:
    """Parse a full create (items required) or update (items optional) request."""
    doc_type = parse_doc_type(doc_type)
    parsed_header = parse_header(doc_type, header, creating=creating)
    parsed_items = None
    if creating or items is not None:
        parsed_items = parse_items(doc_type, items)

    if doc_type == DocumentType.TRANSFER and creating:
        if parsed_header['from_warehouse_id'] == parsed_header['to_warehouse_id']:
            raise ValidationError("Source and destination warehouses must be different")

    return DocumentInput(doc_type=doc_type, header=parsed_header, items=parsed_items)
