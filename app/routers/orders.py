import json
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import require_auth, get_executor
from app.schemas.orders import (
    PlaceOrder, ReplaceOrderItems, OrderStatusIn, OrderPriorityIn, AssignIn,
    ModifiersIn, ReviewIn, OrderStatusLiteral,
)
from app.models.core import (
    Order, OrderStatus, OrderPriority, OrderItem, Payment, Check, Review, Employee,
)
from app.models.common import utcnow
from app.services.mutations import MutationExecutor, ORDER_NOT_FOUND
from app.services.render import order_rows, order_row, review_row
from app.util.http import unwrap

router = APIRouter(prefix="/orders", tags=["orders"])


def _own(db: Session, order_id: int, sub: str) -> Order:
    o = db.query(Order).filter(Order.id == order_id, Order.user_id == sub).first()
    if not o:
        raise HTTPException(404, detail=ORDER_NOT_FOUND)
    return o


# ---------- reads ----------

@router.get("/")
def list_orders(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    """Caller's orders with their lines, newest first."""
    rows = db.query(Order).filter(Order.user_id == sub).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return {"orders": order_rows(db, rows)}

@router.get("/history")
def order_history(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = db.query(Order).filter(Order.user_id == sub).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return {"history": order_rows(db, rows, with_payments=True)}

@router.get("/status/{status}")
def orders_by_status(status: OrderStatusLiteral, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = (
        db.query(Order)
          .filter(Order.user_id == sub, Order.status == OrderStatus(status))
          .order_by(Order.created_at.desc(), Order.id.desc())
          .all()
    )
    return {"filtered": order_rows(db, rows)}

# Kitchen display: every restaurant order, not just the caller's
@router.get("/kds/active")
def kds_active(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = (
        db.query(Order)
          .filter(Order.status.in_([OrderStatus.PENDING, OrderStatus.PREPARING]))
          .order_by(Order.created_at.asc(), Order.id.asc())
          .all()
    )
    return {"active_orders": order_rows(db, rows)}

@router.get("/kds/completed")
def kds_completed(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = (
        db.query(Order)
          .filter(Order.status == OrderStatus.COMPLETED)
          .order_by(Order.updated_at.desc(), Order.id.desc())
          .all()
    )
    return {"completed_orders": order_rows(db, rows)}

@router.get("/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return {"order": order_row(db, _own(db, order_id, sub))}


# ---------- transactional mutations ----------

@router.post("/", status_code=201)
def place_order(body: PlaceOrder, ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    return {"order": unwrap(ex.place_order(body, sub))}

@router.put("/{order_id}")
def replace_order_items(order_id: int, body: ReplaceOrderItems,
                        ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    return {"order": unwrap(ex.replace_order_items(order_id, body, sub))}


# ---------- single-row updates ----------

@router.put("/{order_id}/status")
def update_status(order_id: int, body: OrderStatusIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    o = _own(db, order_id, sub)
    o.status = OrderStatus(body.status)
    o.updated_at = utcnow()
    db.commit()
    return {"order": order_row(db, o)}

@router.put("/{order_id}/priority")
def update_priority(order_id: int, body: OrderPriorityIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    o = _own(db, order_id, sub)
    o.priority = OrderPriority(body.priority_level)
    o.updated_at = utcnow()
    db.commit()
    return {"order": order_row(db, o)}

@router.put("/{order_id}/assign")
def assign_staff(order_id: int, body: AssignIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    o = _own(db, order_id, sub)
    if not db.get(Employee, body.staff_id):
        raise HTTPException(404, detail="Employee not found")
    o.assigned_staff_id = body.staff_id
    o.updated_at = utcnow()
    db.commit()
    return {"order": order_row(db, o)}

@router.post("/{order_id}/modifiers")
def set_modifiers(order_id: int, body: ModifiersIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    o = _own(db, order_id, sub)
    o.modifiers = json.dumps(body.modifiers)
    o.updated_at = utcnow()
    db.commit()
    return {"order": order_row(db, o)}

@router.post("/{order_id}/review", status_code=201)
def review_order(order_id: int, body: ReviewIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    o = _own(db, order_id, sub)
    r = Review(user_id=sub, order_id=o.id, rating=body.rating, comment=body.comment)
    db.add(r)
    db.commit()
    db.refresh(r)
    return {"review": review_row(r)}

@router.delete("/{order_id}")
def delete_order(order_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    o = _own(db, order_id, sub)
    check_ids = [row[0] for row in db.query(Check.id).filter(Check.order_id == o.id).all()]
    # children first; one commit for the lot
    if check_ids:
        db.query(Payment).filter(Payment.check_id.in_(check_ids)).delete(synchronize_session=False)
    db.query(Payment).filter(Payment.order_id == o.id).delete(synchronize_session=False)
    db.query(OrderItem).filter(OrderItem.order_id == o.id).delete(synchronize_session=False)
    db.query(Check).filter(Check.order_id == o.id).delete(synchronize_session=False)
    db.query(Review).filter(Review.order_id == o.id).delete(synchronize_session=False)
    db.delete(o)
    db.commit()
    return {"message": "Order deleted successfully"}
