# app/routers/checks.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import require_auth, get_executor
from app.models.core import Check, Order
from app.schemas.checks import OpenCheck, SplitCheckIn, SplitCheck, PayCheck, SettleCheck
from app.services.mutations import MutationExecutor, CHECK_NOT_FOUND
from app.services.render import check_row
from app.util.http import unwrap

router = APIRouter(prefix="/checks", tags=["checks"])


@router.post("/", status_code=201)
def open_check(body: OpenCheck, ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    """Open a tab for an order; every line not yet on a check moves onto it."""
    return {"check": unwrap(ex.open_check(body, sub))}

@router.get("/{check_id}")
def get_check(check_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    c = (
        db.query(Check)
          .join(Order, Order.id == Check.order_id)
          .filter(Check.id == check_id, Order.user_id == sub)
          .first()
    )
    if not c:
        raise HTTPException(404, detail=CHECK_NOT_FOUND)
    return {"check": check_row(db, c)}

@router.post("/{check_id}/split", status_code=201)
def split_check(check_id: int, body: SplitCheckIn,
                ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    """
    body: {line_ids: [int, ...]}

    Moves the listed lines to a new Open check on the same order.
    Response: {source: {...}, new_check: {...}}
    """
    cmd = SplitCheck(source_check_id=check_id, line_ids=body.line_ids)
    return unwrap(ex.split_check(cmd, sub))

@router.post("/{check_id}/pay")
def pay_check(check_id: int, body: PayCheck,
              ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    return {"check": unwrap(ex.pay_check(check_id, body, sub))}

@router.post("/{check_id}/settle")
def settle_check(check_id: int, body: SettleCheck,
                 ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    return {"check": unwrap(ex.settle_check(check_id, body, sub))}
