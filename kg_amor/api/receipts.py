"""
Receipt (recebimento) endpoints.

A receipt is stored first and then posted line by line to the stock
ledger. It stays ``draft`` until every line is applied, so a receipt
left partially posted is finished with ``POST /receipts/{id}/post``.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..error_handlers import DuplicateResourceError, InvalidStateError, ResourceNotFoundError
from ..ledger import IN, DuplicateTransaction, LedgerError, LineRequest
from ..logging_config import get_logger
from ..models import Product, Receipt, ReceiptItem
from ..schemas import DocumentStatus, ReceiptCreate, ReceiptResponse
from ..stock import receipt_transaction_id, stock_ledger

logger = get_logger("api.receipts")

router = APIRouter(tags=["Receipts"])


def _get_receipt(db: Session, receipt_id: int) -> Receipt:
    receipt = db.get(Receipt, receipt_id)
    if receipt is None:
        raise ResourceNotFoundError("Receipt", receipt_id)
    return receipt


def _lines(receipt: Receipt) -> List[LineRequest]:
    return [LineRequest(key=item.product_id, quantity=item.quantity, unit=item.unit) for item in receipt.items]


def post_receipt_document(db: Session, receipt: Receipt) -> Optional[dict]:
    """
    Apply a draft receipt to stock and mark it posted.

    Raises the ledger error (PartialFailure included) when a line fails;
    the receipt then stays a draft.
    """
    transaction_id = receipt_transaction_id(receipt.reference)
    receipt_id = receipt.id
    try:
        posting = stock_ledger(db).post_inbound(transaction_id, _lines(receipt)).to_dict()
    except DuplicateTransaction:
        # every line was applied by an earlier attempt
        logger.info(f"[RECEIPT] {receipt.reference} already applied, closing draft")
        posting = None
    except LedgerError as exc:
        exc.details.setdefault("document_id", receipt_id)
        raise

    receipt.status = DocumentStatus.POSTED.value
    receipt.posted_at = datetime.utcnow()
    db.commit()
    db.refresh(receipt)
    logger.info(f"[RECEIPT] posted id={receipt.id} reference={receipt.reference}")
    return posting


def _response(receipt: Receipt, posting: Optional[dict] = None) -> ReceiptResponse:
    response = ReceiptResponse.model_validate(receipt)
    response.posting = posting
    return response


@router.get("/receipts", response_model=List[ReceiptResponse])
def list_receipts(
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db)
):
    query = db.query(Receipt)
    if status_filter is not None:
        query = query.filter(Receipt.status == status_filter.value)
    return query.order_by(Receipt.created_at.desc(), Receipt.id.desc()).limit(limit).all()


@router.post("/receipts", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
def create_receipt(payload: ReceiptCreate, db: Session = Depends(get_db)):
    """
    Register a receipt and, unless ``post`` is false, apply it to stock.

    All lines are validated before anything is stored.
    """
    transaction_id = receipt_transaction_id(payload.reference)
    existing = db.query(Receipt).filter(Receipt.reference == payload.reference).first()
    if existing is not None:
        if existing.status == DocumentStatus.POSTED.value:
            raise DuplicateTransaction(transaction_id)
        raise DuplicateResourceError("Receipt", "reference", payload.reference)

    lines = [LineRequest(key=i.product_id, quantity=i.quantity, unit=i.unit) for i in payload.items]
    stock_ledger(db).check(transaction_id, lines, IN)

    units = dict(
        db.query(Product.id, Product.unit).filter(Product.id.in_({i.product_id for i in payload.items}))
    )
    receipt = Receipt(reference=payload.reference, notes=payload.notes, status=DocumentStatus.DRAFT.value)
    for index, item in enumerate(payload.items):
        receipt.items.append(ReceiptItem(
            line_index=index,
            product_id=item.product_id,
            quantity=item.quantity,
            unit=item.unit or units.get(item.product_id),
            expires_at=item.expires_at,
            priority=item.priority.value,
            barcode=item.barcode,
            lot_code=item.lot_code,
        ))
    db.add(receipt)
    db.commit()
    db.refresh(receipt)
    logger.info(f"[RECEIPT] stored id={receipt.id} reference={receipt.reference} lines={len(payload.items)}")

    if not payload.post:
        return _response(receipt)
    posting = post_receipt_document(db, receipt)
    return _response(receipt, posting)


@router.get("/receipts/{receipt_id}", response_model=ReceiptResponse)
def get_receipt(receipt_id: int, db: Session = Depends(get_db)):
    return _response(_get_receipt(db, receipt_id))


@router.post("/receipts/{receipt_id}/post", response_model=ReceiptResponse)
def post_receipt(receipt_id: int, db: Session = Depends(get_db)):
    """Post a draft receipt, or finish one that was partially applied."""
    receipt = _get_receipt(db, receipt_id)
    if receipt.status != DocumentStatus.DRAFT.value:
        if receipt.status == DocumentStatus.POSTED.value:
            raise DuplicateTransaction(receipt_transaction_id(receipt.reference))
        raise InvalidStateError("Receipt", receipt_id, receipt.status, "post")
    posting = post_receipt_document(db, receipt)
    return _response(receipt, posting)


@router.post("/receipts/{receipt_id}/void", response_model=ReceiptResponse)
def void_receipt(receipt_id: int, db: Session = Depends(get_db)):
    """Void a draft receipt that has no line applied to stock."""
    receipt = _get_receipt(db, receipt_id)
    if receipt.status != DocumentStatus.DRAFT.value:
        raise InvalidStateError("Receipt", receipt_id, receipt.status, "void")
    applied = stock_ledger(db).store.applied_lines(receipt_transaction_id(receipt.reference))
    if applied:
        raise InvalidStateError("Receipt", receipt_id, "partially posted", "void")
    receipt.status = DocumentStatus.VOID.value
    db.commit()
    db.refresh(receipt)
    logger.info(f"[RECEIPT] voided id={receipt_id}")
    return _response(receipt)
