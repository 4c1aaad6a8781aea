"""
Withdrawal (retirada) endpoints.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..error_handlers import DuplicateResourceError, InvalidStateError, ResourceNotFoundError
from ..ledger import OUT, DuplicateTransaction, LedgerError, LineRequest
from ..logging_config import get_logger
from ..models import Product, Withdrawal, WithdrawalItem
from ..schemas import DocumentStatus, WithdrawalCreate, WithdrawalResponse
from ..stock import stock_ledger, withdrawal_transaction_id

logger = get_logger("api.withdrawals")

router = APIRouter(tags=["Withdrawals"])


def _get_withdrawal(db: Session, withdrawal_id: int) -> Withdrawal:
    withdrawal = db.get(Withdrawal, withdrawal_id)
    if withdrawal is None:
        raise ResourceNotFoundError("Withdrawal", withdrawal_id)
    return withdrawal


def _post(db: Session, withdrawal: Withdrawal) -> Optional[dict]:
    transaction_id = withdrawal_transaction_id(withdrawal.reference)
    lines = [LineRequest(key=i.product_id, quantity=i.quantity, unit=i.unit) for i in withdrawal.items]
    withdrawal_id = withdrawal.id
    try:
        posting = stock_ledger(db).post_outbound(transaction_id, lines).to_dict()
    except DuplicateTransaction:
        logger.info(f"[WITHDRAWAL] {withdrawal.reference} already applied, closing draft")
        posting = None
    except LedgerError as exc:
        exc.details.setdefault("document_id", withdrawal_id)
        raise

    withdrawal.status = DocumentStatus.POSTED.value
    withdrawal.posted_at = datetime.utcnow()
    db.commit()
    db.refresh(withdrawal)
    logger.info(
        f"[WITHDRAWAL] posted id={withdrawal.id} reference={withdrawal.reference} "
        f"by={withdrawal.responsible_person} sector={withdrawal.sector}"
    )
    return posting


def _response(withdrawal: Withdrawal, posting: Optional[dict] = None) -> WithdrawalResponse:
    response = WithdrawalResponse.model_validate(withdrawal)
    response.posting = posting
    return response


@router.get("/withdrawals", response_model=List[WithdrawalResponse])
def list_withdrawals(
    sector: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db)
):
    query = db.query(Withdrawal)
    if sector:
        query = query.filter(Withdrawal.sector == sector)
    return query.order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc()).limit(limit).all()


@router.post("/withdrawals", response_model=WithdrawalResponse, status_code=status.HTTP_201_CREATED)
def create_withdrawal(payload: WithdrawalCreate, db: Session = Depends(get_db)):
    """
    Register a withdrawal and take its quantities out of stock.

    - **responsible_person** / **sector**: required
    - rejected as a whole when any product lacks the requested quantity
    """
    transaction_id = withdrawal_transaction_id(payload.reference)
    existing = db.query(Withdrawal).filter(Withdrawal.reference == payload.reference).first()
    if existing is not None:
        if existing.status == DocumentStatus.POSTED.value:
            raise DuplicateTransaction(transaction_id)
        raise DuplicateResourceError("Withdrawal", "reference", payload.reference)

    lines = [LineRequest(key=i.product_id, quantity=i.quantity, unit=i.unit) for i in payload.items]
    stock_ledger(db).check(transaction_id, lines, OUT)

    units = dict(
        db.query(Product.id, Product.unit).filter(Product.id.in_({i.product_id for i in payload.items}))
    )
    withdrawal = Withdrawal(
        reference=payload.reference,
        responsible_person=payload.responsible_person,
        sector=payload.sector,
        notes=payload.notes,
        status=DocumentStatus.DRAFT.value,
    )
    for index, item in enumerate(payload.items):
        withdrawal.items.append(WithdrawalItem(
            line_index=index,
            product_id=item.product_id,
            quantity=item.quantity,
            unit=item.unit or units.get(item.product_id),
        ))
    db.add(withdrawal)
    db.commit()
    db.refresh(withdrawal)

    posting = _post(db, withdrawal)
    return _response(withdrawal, posting)


@router.get("/withdrawals/{withdrawal_id}", response_model=WithdrawalResponse)
def get_withdrawal(withdrawal_id: int, db: Session = Depends(get_db)):
    return _response(_get_withdrawal(db, withdrawal_id))


@router.post("/withdrawals/{withdrawal_id}/post", response_model=WithdrawalResponse)
def post_withdrawal(withdrawal_id: int, db: Session = Depends(get_db)):
    """Retry a withdrawal whose posting failed or was partial."""
    withdrawal = _get_withdrawal(db, withdrawal_id)
    if withdrawal.status != DocumentStatus.DRAFT.value:
        if withdrawal.status == DocumentStatus.POSTED.value:
            raise DuplicateTransaction(withdrawal_transaction_id(withdrawal.reference))
        raise InvalidStateError("Withdrawal", withdrawal_id, withdrawal.status, "post")
    posting = _post(db, withdrawal)
    return _response(withdrawal, posting)


@router.post("/withdrawals/{withdrawal_id}/void", response_model=WithdrawalResponse)
def void_withdrawal(withdrawal_id: int, db: Session = Depends(get_db)):
    """Void a draft withdrawal that has no line applied to stock."""
    withdrawal = _get_withdrawal(db, withdrawal_id)
    if withdrawal.status != DocumentStatus.DRAFT.value:
        raise InvalidStateError("Withdrawal", withdrawal_id, withdrawal.status, "void")
    if stock_ledger(db).store.applied_lines(withdrawal_transaction_id(withdrawal.reference)):
        raise InvalidStateError("Withdrawal", withdrawal_id, "partially posted", "void")
    withdrawal.status = DocumentStatus.VOID.value
    db.commit()
    db.refresh(withdrawal)
    return _response(withdrawal)
