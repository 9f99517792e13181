"""
Document lifecycle engine: draft → done posting for movement documents.

Posting model:
    Each line item expands into one or more legs. A leg is one atomic unit:
    reservation release (outbound only) + balance delta + ledger entry.

        receipt      +q at warehouse                     (receipt)
        delivery     release q, -q at warehouse          (delivery)
        transfer     release q, -q at source             (transfer_out)
                     +q at destination                   (transfer_in)
        adjustment   difference at warehouse             (adjustment)

    Legs are not globally transactional. A failing leg does not undo its
    siblings; the document stays open and PartialPostingError lists what
    posted and what failed. The ledger's unique (transaction_id, line_id,
    transaction_type) key makes a retry skip legs that already posted.

Locking:
    Edits, validation and cancel first hold the document lock and read the
    lines under it. Balance key locks come next, always taken (sorted)
    before any transaction is opened. The availability re-check and every
    leg of a validation run inside one critical section.
"""

import logging
from dataclasses import dataclass, field

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import (
    ConcurrencyConflictError,
    NegativeStockError,
    NotFoundError,
    PartialPostingError,
    ValidationError,
)
from stockledger.inputs import WAREHOUSE_FIELDS, LineInput, parse_doc_type, parse_document
from stockledger.locks import document_lock
from stockledger.models.documents import DOCUMENT_MODELS, ITEM_MODELS, MovementDocument
from stockledger.models.enums import DocumentStatus, DocumentType, TransactionType
from stockledger.models.ledger import LedgerEntry
from stockledger.services.availability import AvailabilityChecker
from stockledger.services.balances import BalanceStore
from stockledger.services.ledger import LedgerStore
from stockledger.services.reservations import ReservationManager

logger = logging.getLogger('stockledger')

SOURCE_FIELD = {
    DocumentType.DELIVERY: 'warehouse_id',
    DocumentType.TRANSFER: 'from_warehouse_id',
}

LEDGER_NOTES = {
    TransactionType.RECEIPT: 'Receipt',
    TransactionType.DELIVERY: 'Delivery',
    TransactionType.TRANSFER_OUT: 'Transfer out',
    TransactionType.TRANSFER_IN: 'Transfer in',
    TransactionType.ADJUSTMENT: 'Adjustment',
}


@dataclass(frozen=True)
class Leg:
    """One ledger posting derived from a line item."""

    line_id: int
    product_id: str
    warehouse_id: str
    transaction_type: str
    quantity_change: int
    release: int = 0

    def as_dict(self) -> dict:
        return {
            'line_id': self.line_id,
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'transaction_type': str(self.transaction_type),
            'quantity_change': self.quantity_change,
        }


@dataclass
class PostingResult:
    """Outcome of validate()."""

    document: MovementDocument
    posted: list[dict] = field(default_factory=list)
    already_done: bool = False


class DocumentEngine:
    """Create, edit, validate and cancel movement documents."""

    def __init__(self, ledger: LedgerStore, balances: BalanceStore,
                 availability: AvailabilityChecker, reservations: ReservationManager,
                 catalog):
        self.ledger = ledger
        self.balances = balances
        self.availability = availability
        self.reservations = reservations
        self.catalog = catalog

    @property
    def using(self) -> str:
        return self.balances.using

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    def get(self, doc_type, doc_id) -> MovementDocument:
        """
        Raises:
            NotFoundError: unknown id (or an id that is not a UUID)
        """
        doc_type = parse_doc_type(doc_type)
        model = DOCUMENT_MODELS[doc_type]
        try:
            return model.objects.using(self.using).get(pk=doc_id)
        except (model.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(doc_type.value, doc_id) from None

    # ══════════════════════════════════════════════════════════════
    # CREATE / UPDATE
    # ══════════════════════════════════════════════════════════════

    def create(self, doc_type, header: dict, items, actor_id: str = '') -> MovementDocument:
        """
        Create a document in draft.

        Outbound documents (delivery, transfer) must pass the availability
        check at their source warehouse and reserve each line; check and
        reserve happen in one critical section.

        Raises:
            ValidationError: malformed input, same warehouse on transfer
            NotFoundError: unknown product or warehouse
            InsufficientStockError: outbound lines not available
        """
        data = parse_document(doc_type, header, items, creating=True)
        self._check_references(data.header, data.items)

        document = DOCUMENT_MODELS[data.doc_type](created_by=actor_id or '', **data.header)

        if document.is_outbound:
            source = document.source_warehouse_id
            with self.balances.locked([(item.product_id, source) for item in data.items]):
                with transaction.atomic(using=self.using):
                    self.reservations.check_and_reserve(data.items, source)
                    document.save(using=self.using)
                    self._write_items(document, data.items)
        else:
            with transaction.atomic(using=self.using):
                document.save(using=self.using)
                self._write_items(document, data.items)

        logger.info(
            "stock.document.created",
            extra={
                "doc_type": data.doc_type.value,
                "document_id": str(document.pk),
                "number": document.number,
                "lines": len(data.items),
                "actor_id": actor_id,
            },
        )
        return document

    def update(self, doc_type, doc_id, header: dict | None = None, items=None,
               actor_id: str = '') -> MovementDocument:
        """
        Edit an open document.

        - done: only {'status': 'done'} with no items is accepted (no-op)
        - canceled: every edit is rejected
        - outbound item/source-warehouse changes follow the edit protocol
          (release old at original warehouse → check new at target →
          reserve new)
        - adjustment lines are re-snapshotted against current balances
        - status 'done' validates after the other edits, 'canceled' cancels

        Raises:
            ValidationError, NotFoundError, InsufficientStockError,
            PartialPostingError (when status='done' triggers validation)
        """
        data = parse_document(doc_type, header, items, creating=False)
        pk = self.get(data.doc_type, doc_id).pk
        with document_lock(data.doc_type.value, pk):
            return self._update(data, pk, actor_id)

    def _update(self, data, doc_id, actor_id: str) -> MovementDocument:
        document = self.get(data.doc_type, doc_id)
        fields = dict(data.header)
        status = fields.pop('status', None)
        label = data.doc_type.label.lower()

        if not document.is_open:
            if document.is_done and status == DocumentStatus.DONE and not fields and data.items is None:
                logger.info(
                    "stock.document.revalidate_ignored",
                    extra={"document_id": str(document.pk), "number": document.number},
                )
                return document
            state = 'validated' if document.is_done else 'canceled'
            raise ValidationError(
                f"Cannot edit {state} {label}",
                code='DOCUMENT_LOCKED',
                document_id=str(document.pk),
            )

        self._check_references(fields, data.items)

        if data.doc_type == DocumentType.TRANSFER:
            source = fields.get('from_warehouse_id', document.from_warehouse_id)
            destination = fields.get('to_warehouse_id', document.to_warehouse_id)
            if source == destination:
                raise ValidationError("Source and destination warehouses must be different")

        moves_stock = data.items is not None or any(
            name in fields and fields[name] != getattr(document, name)
            for name in WAREHOUSE_FIELDS
        )
        if moves_stock and self._has_postings(document):
            raise ValidationError(
                f"Cannot change items or warehouses of a partially posted {label}; "
                "validate it again to post the remaining lines",
                code='DOCUMENT_LOCKED',
                document_id=str(document.pk),
            )

        source_field = SOURCE_FIELD.get(data.doc_type)
        old_source = document.source_warehouse_id
        new_source = fields.get(source_field, old_source) if source_field else None

        if document.is_outbound and (data.items is not None or new_source != old_source):
            old_items = list(document.items.all())
            target_items = data.items
            if target_items is None:
                target_items = [
                    LineInput(product_id=item.product_id, quantity=item.quantity, notes=item.notes)
                    for item in old_items
                ]

            keys = [(item.product_id, old_source) for item in old_items]
            keys += [(item.product_id, new_source) for item in target_items]
            with self.balances.locked(keys):
                with transaction.atomic(using=self.using):
                    self.reservations.replace(old_items, old_source, target_items, new_source)
                    self._apply_header(document, fields)
                    if data.items is not None:
                        self._replace_items(document, data.items)
        else:
            with transaction.atomic(using=self.using):
                self._apply_header(document, fields)
                if data.items is not None:
                    self._replace_items(document, data.items)

        logger.info(
            "stock.document.updated",
            extra={
                "document_id": str(document.pk),
                "fields": sorted(fields),
                "items_replaced": data.items is not None,
                "actor_id": actor_id,
            },
        )

        if status == DocumentStatus.DONE:
            return self.validate(data.doc_type, document.pk, actor_id=actor_id).document
        if status == DocumentStatus.CANCELED:
            return self.cancel(data.doc_type, document.pk, actor_id=actor_id)
        if status is not None and status != document.status:
            document.status = status
            document.save(using=self.using, update_fields=['status', 'updated_at'])
        return document

    # ══════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ══════════════════════════════════════════════════════════════

    def validate(self, doc_type, doc_id, actor_id: str = '') -> PostingResult:
        """
        Post an open document to the ledger and mark it done.

        Idempotent: a done document posts nothing and returns
        already_done=True.

        Raises:
            ValidationError: document canceled
            InsufficientStockError: outbound re-check failed; nothing posted
            PartialPostingError: some legs failed; the document stays open
        """
        doc_type = parse_doc_type(doc_type)
        pk = self.get(doc_type, doc_id).pk
        with document_lock(doc_type.value, pk):
            return self._validate(doc_type, pk, actor_id)

    def _validate(self, doc_type, doc_id, actor_id: str) -> PostingResult:
        # lines are read under the document lock so no edit can slip in
        # between building the legs and posting them
        document = self.get(doc_type, doc_id)
        if document.is_done:
            return self._already_done(document)
        self._ensure_not_canceled(document, 'validate')

        legs = self._legs(document, list(document.items.all()))
        keys = [(leg.product_id, leg.warehouse_id) for leg in legs]

        with self.balances.locked(keys):
            pending = [
                leg for leg in legs
                if not self.ledger.is_posted(document.pk, leg.line_id, leg.transaction_type)
            ]
            if document.is_outbound:
                self._recheck(document, pending)

            posted, failed = self._post_legs(document, pending, actor_id)

            if failed:
                logger.warning(
                    "stock.document.partial_posting",
                    extra={
                        "document_id": str(document.pk),
                        "number": document.number,
                        "posted": len(posted),
                        "failed": len(failed),
                    },
                )
                raise PartialPostingError(document.pk, posted, failed)

            with transaction.atomic(using=self.using):
                document.status = DocumentStatus.DONE
                if document.validated_at is None:
                    document.validated_at = timezone.now()
                document.save(
                    using=self.using,
                    update_fields=['status', 'validated_at', 'updated_at'],
                )

        logger.info(
            "stock.document.validated",
            extra={
                "doc_type": doc_type.value,
                "document_id": str(document.pk),
                "number": document.number,
                "legs": len(posted),
                "actor_id": actor_id,
            },
        )
        return PostingResult(document=document, posted=posted)

    def cancel(self, doc_type, doc_id, actor_id: str = '') -> MovementDocument:
        """
        open → canceled, releasing outbound reservations.

        Canceling a canceled document is a no-op.

        Raises:
            ValidationError: document done, or partially posted
        """
        doc_type = parse_doc_type(doc_type)
        pk = self.get(doc_type, doc_id).pk
        with document_lock(doc_type.value, pk):
            return self._cancel(doc_type, pk, actor_id)

    def _cancel(self, doc_type, doc_id, actor_id: str) -> MovementDocument:
        document = self.get(doc_type, doc_id)
        label = doc_type.label.lower()

        if document.status == DocumentStatus.CANCELED:
            return document
        if document.is_done:
            raise ValidationError(
                f"Cannot cancel validated {label}",
                code='DOCUMENT_LOCKED',
                document_id=str(document.pk),
            )
        if self._has_postings(document):
            raise ValidationError(
                f"Cannot cancel a partially posted {label}; validate it again to finish posting",
                code='DOCUMENT_LOCKED',
                document_id=str(document.pk),
            )

        items = list(document.items.all())
        source = document.source_warehouse_id
        keys = [(item.product_id, source) for item in items] if document.is_outbound else []

        with self.balances.locked(keys):
            with transaction.atomic(using=self.using):
                if document.is_outbound:
                    self.reservations.release_items(items, source)
                document.status = DocumentStatus.CANCELED
                document.save(using=self.using, update_fields=['status', 'updated_at'])

        logger.info(
            "stock.document.canceled",
            extra={
                "document_id": str(document.pk),
                "number": document.number,
                "actor_id": actor_id,
            },
        )
        return document

    def post_initial_stock(self, product_id: str, warehouse_id: str, quantity: int,
                           actor_id: str = '') -> LedgerEntry:
        """
        Opening balance for a newly registered product.

        Posts an initial_stock entry with transaction_id = product_id.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Initial stock quantity must be a positive integer", quantity=quantity)
        self._check_references({'warehouse_id': warehouse_id}, [LineInput(product_id, quantity)])

        with self.balances.locked([(product_id, warehouse_id)]):
            with transaction.atomic(using=self.using):
                before, after = self.balances.apply_delta(
                    product_id, warehouse_id, quantity, TransactionType.INITIAL_STOCK
                )
                return self.ledger.append(
                    product_id=product_id,
                    warehouse_id=warehouse_id,
                    transaction_type=TransactionType.INITIAL_STOCK,
                    transaction_id=product_id,
                    quantity_change=quantity,
                    quantity_before=before,
                    quantity_after=after,
                    reference_number='INITIAL',
                    notes='Initial stock',
                    created_by=actor_id,
                )

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    def _already_done(self, document: MovementDocument) -> PostingResult:
        logger.info(
            "stock.document.revalidate_ignored",
            extra={"document_id": str(document.pk), "number": document.number},
        )
        return PostingResult(document=document, already_done=True)

    def _ensure_not_canceled(self, document: MovementDocument, action: str) -> None:
        if document.status == DocumentStatus.CANCELED:
            raise ValidationError(
                f"Cannot {action} canceled {document.doc_type.label.lower()}",
                code='DOCUMENT_LOCKED',
                document_id=str(document.pk),
            )

    def _check_references(self, header: dict, items) -> None:
        """NotFoundError for warehouses/products the catalog doesn't know."""
        if not stockledger_settings.VALIDATE_REFERENCES:
            return
        for name in WAREHOUSE_FIELDS:
            warehouse_id = header.get(name)
            if warehouse_id and self.catalog.resolve_warehouse(warehouse_id) is None:
                raise NotFoundError('warehouse', warehouse_id)
        for item in items or []:
            if self.catalog.resolve_product(item.product_id) is None:
                raise NotFoundError('product', item.product_id)

    def _has_postings(self, document: MovementDocument) -> bool:
        return LedgerEntry.objects.using(self.using).filter(
            transaction_id=str(document.pk)
        ).exists()

    def _apply_header(self, document: MovementDocument, fields: dict) -> None:
        if not fields:
            return
        for name, value in fields.items():
            setattr(document, name, value)
        document.save(using=self.using, update_fields=[*fields, 'updated_at'])

    def _replace_items(self, document: MovementDocument, items) -> None:
        document.items.all().delete()
        self._write_items(document, items)

    def _write_items(self, document: MovementDocument, items) -> list:
        """Insert line rows; adjustment lines snapshot the book quantity now."""
        item_model = ITEM_MODELS[document.doc_type]
        rows = []
        for item in items:
            if document.doc_type == DocumentType.ADJUSTMENT:
                recorded = self.balances.get(item.product_id, document.warehouse_id).quantity
                rows.append(item_model(
                    document=document,
                    product_id=item.product_id,
                    counted_quantity=item.counted_quantity,
                    recorded_quantity=recorded,
                    difference=item.counted_quantity - recorded,
                    notes=item.notes,
                ))
            elif document.doc_type == DocumentType.RECEIPT:
                rows.append(item_model(
                    document=document,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    notes=item.notes,
                ))
            else:
                rows.append(item_model(
                    document=document,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    notes=item.notes,
                ))
        return item_model.objects.using(self.using).bulk_create(rows)

    def _legs(self, document: MovementDocument, items) -> list[Leg]:
        legs = []
        for item in items:
            if document.doc_type == DocumentType.RECEIPT:
                legs.append(Leg(item.pk, item.product_id, document.warehouse_id,
                                TransactionType.RECEIPT, item.quantity))
            elif document.doc_type == DocumentType.DELIVERY:
                legs.append(Leg(item.pk, item.product_id, document.warehouse_id,
                                TransactionType.DELIVERY, -item.quantity, release=item.quantity))
            elif document.doc_type == DocumentType.TRANSFER:
                legs.append(Leg(item.pk, item.product_id, document.from_warehouse_id,
                                TransactionType.TRANSFER_OUT, -item.quantity, release=item.quantity))
                legs.append(Leg(item.pk, item.product_id, document.to_warehouse_id,
                                TransactionType.TRANSFER_IN, item.quantity))
            elif item.difference:
                legs.append(Leg(item.pk, item.product_id, document.warehouse_id,
                                TransactionType.ADJUSTMENT, item.difference))
        return legs

    def _recheck(self, document: MovementDocument, pending: list[Leg]) -> None:
        """
        Re-run the availability check against current balances.

        Lines are summed per product and credited with the document's own
        reservation, which is still held for every pending outbound leg.
        """
        requested: dict[str, int] = {}
        for leg in pending:
            if leg.release:
                requested[leg.product_id] = requested.get(leg.product_id, 0) + leg.release
        if not requested:
            return
        lines = [{'product_id': p, 'quantity': q} for p, q in requested.items()]
        self.availability.validate(lines, document.source_warehouse_id, credits=requested)

    def _post_legs(self, document: MovementDocument, pending: list[Leg],
                   actor_id: str) -> tuple[list[dict], list[dict]]:
        posted, failed = [], []
        blocked_lines = set()

        for leg in pending:
            if leg.line_id in blocked_lines:
                # destination leg of a transfer whose source leg failed
                failed.append({
                    **leg.as_dict(),
                    'error': {'code': 'SOURCE_LEG_FAILED', 'message': 'Source leg not posted', 'data': {}},
                })
                continue
            try:
                self._post_leg(document, leg, actor_id)
            except (NegativeStockError, ConcurrencyConflictError) as exc:
                failed.append({**leg.as_dict(), 'error': exc.as_dict()})
                blocked_lines.add(leg.line_id)
            else:
                posted.append(leg.as_dict())

        return posted, failed

    def _post_leg(self, document: MovementDocument, leg: Leg, actor_id: str) -> LedgerEntry:
        """Release + balance delta + ledger append, all or nothing."""
        with transaction.atomic(using=self.using):
            if leg.release:
                self.reservations.release(leg.product_id, leg.warehouse_id, leg.release)
            before, after = self.balances.apply_delta(
                leg.product_id, leg.warehouse_id, leg.quantity_change, leg.transaction_type
            )
            note = f"{LEDGER_NOTES[leg.transaction_type]}: {document.number}"
            if document.doc_type == DocumentType.ADJUSTMENT:
                note = f"{note} - {document.reason or 'Stock count'}"
            return self.ledger.append(
                product_id=leg.product_id,
                warehouse_id=leg.warehouse_id,
                transaction_type=leg.transaction_type,
                transaction_id=document.pk,
                line_id=leg.line_id,
                quantity_change=leg.quantity_change,
                quantity_before=before,
                quantity_after=after,
                reference_number=document.number,
                notes=note,
                created_by=actor_id,
            )
