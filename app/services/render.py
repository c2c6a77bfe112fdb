# Row → JSON shapes shared by the routers and the executor's read-back step.
import json
from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Session

from app.models.core import (
    Order, OrderItem, Payment, Check, InventoryItem, MenuItem, Employee, Review,
    SupplierOrder, SupplierOrderLine, Reservation, DiningTable, WaitlistEntry,
    Restaurant, MenuCategory, MenuModifier, Shift, PayrollEntry, Notification,
)
from app.services.billing import lines_total, money


def _as_float(val: Decimal | float | int | None) -> float | None:
    if val is None:
        return None
    return float(val)

def _ts(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat()

def _enum(v):
    return getattr(v, "value", v)


def line_row(l: OrderItem) -> dict:
    return {
        "id": l.id,
        "order_id": l.order_id,
        "menu_id": l.menu_id,
        "quantity": l.quantity,
        "price": _as_float(l.price),
        "check_id": l.check_id,
    }

def payment_row(p: Payment) -> dict:
    return {
        "id": p.id,
        "order_id": p.order_id,
        "check_id": p.check_id,
        "amount": _as_float(p.amount),
        "method": _enum(p.method),
        "paid_at": _ts(p.paid_at),
    }

def _order_fields(o: Order) -> dict:
    return {
        "id": o.id,
        "user_id": o.user_id,
        "restaurant_id": o.restaurant_id,
        "total_price": _as_float(o.total_price),
        "status": _enum(o.status),
        "priority_level": _enum(o.priority),
        "assigned_staff_id": o.assigned_staff_id,
        "modifiers": json.loads(o.modifiers) if o.modifiers else None,
        "created_at": _ts(o.created_at),
        "updated_at": _ts(o.updated_at),
    }

def order_rows(db: Session, orders: list[Order], with_payments: bool = False) -> list[dict]:
    """Orders with their lines attached; one query per child table, not per order."""
    ids = [o.id for o in orders]
    lines: dict[int, list[dict]] = {i: [] for i in ids}
    pays: dict[int, list[dict]] = {i: [] for i in ids}
    if ids:
        for l in db.query(OrderItem).filter(OrderItem.order_id.in_(ids)).order_by(OrderItem.id).all():
            lines[l.order_id].append(line_row(l))
        if with_payments:
            for p in db.query(Payment).filter(Payment.order_id.in_(ids)).order_by(Payment.id).all():
                pays[p.order_id].append(payment_row(p))

    out = []
    for o in orders:
        row = _order_fields(o)
        row["items"] = lines[o.id]
        if with_payments:
            row["payments"] = pays[o.id]
        out.append(row)
    return out

def order_row(db: Session, o: Order) -> dict:
    return order_rows(db, [o], with_payments=True)[0]

def check_row(db: Session, c: Check) -> dict:
    lines = db.query(OrderItem).filter(OrderItem.check_id == c.id).order_by(OrderItem.id).all()
    pays = db.query(Payment).filter(Payment.check_id == c.id).order_by(Payment.id).all()
    return {
        "id": c.id,
        "order_id": c.order_id,
        "status": _enum(c.status),
        "tip_amount": _as_float(c.tip_amount),
        "balance": money(lines_total(lines)),
        "lines": [line_row(l) for l in lines],
        "payments": [payment_row(p) for p in pays],
    }

def inventory_row(i: InventoryItem) -> dict:
    qty = _as_float(i.quantity) or 0.0
    threshold = _as_float(i.low_stock_threshold) or 0.0
    return {
        "id": i.id,
        "name": i.name,
        "quantity": qty,
        "unit": i.unit,
        "low_stock_threshold": threshold,
        "low_stock": qty <= threshold,
    }

def menu_row(m: MenuItem) -> dict:
    return {
        "id": m.id,
        "restaurant_id": m.restaurant_id,
        "name": m.name,
        "price": _as_float(m.price),
        "description": m.description,
        "category": m.category,
        "available": m.available,
    }

def employee_row(e: Employee) -> dict:
    return {"id": e.id, "name": e.name, "role": e.role, "email": e.email}

def review_row(r: Review) -> dict:
    return {
        "id": r.id,
        "user_id": r.user_id,
        "order_id": r.order_id,
        "rating": r.rating,
        "comment": r.comment,
        "created_at": _ts(r.created_at),
    }

def supplier_order_row(db: Session, so: SupplierOrder) -> dict:
    lines = (
        db.query(SupplierOrderLine)
          .filter(SupplierOrderLine.supplier_order_id == so.id)
          .order_by(SupplierOrderLine.id)
          .all()
    )
    return {
        "id": so.id,
        "supplier": so.supplier,
        "note": so.note,
        "order_status": _enum(so.status),
        "received_at": _ts(so.received_at),
        "created_at": _ts(so.created_at),
        "items": [
            {"id": l.id, "inventory_id": l.inventory_id,
             "quantity": _as_float(l.quantity), "unit_cost": _as_float(l.unit_cost)}
            for l in lines
        ],
    }

def reservation_row(r: Reservation) -> dict:
    return {
        "id": r.id,
        "user_id": r.user_id,
        "restaurant_id": r.restaurant_id,
        "reservation_time": _ts(r.reservation_time),
        "num_guests": r.num_guests,
        "table_id": r.table_id,
        "notes": r.notes,
    }

def table_row(t: DiningTable) -> dict:
    return {"id": t.id, "restaurant_id": t.restaurant_id, "table_number": t.table_number, "capacity": t.capacity}

def waitlist_row(w: WaitlistEntry) -> dict:
    return {
        "id": w.id,
        "user_id": w.user_id,
        "restaurant_id": w.restaurant_id,
        "num_guests": w.num_guests,
        "notes": w.notes,
        "created_at": _ts(w.created_at),
    }

def restaurant_row(r: Restaurant) -> dict:
    return {"id": r.id, "name": r.name, "address": r.address, "phone": r.phone, "description": r.description}

def category_row(c: MenuCategory) -> dict:
    return {"id": c.id, "restaurant_id": c.restaurant_id, "name": c.name}

def modifier_row(m: MenuModifier) -> dict:
    return {"id": m.id, "menu_id": m.menu_id, "name": m.name, "price": _as_float(m.price)}

def shift_row(s: Shift) -> dict:
    return {
        "id": s.id,
        "employee_id": s.employee_id,
        "shift_date": s.shift_date.isoformat(),
        "start_time": s.start_time.isoformat(),
        "end_time": s.end_time.isoformat(),
    }

def payroll_row(p: PayrollEntry) -> dict:
    return {
        "id": p.id,
        "employee_id": p.employee_id,
        "pay_period": p.pay_period,
        "gross_salary": _as_float(p.gross_salary),
        "net_salary": _as_float(p.net_salary),
    }

def notification_row(n: Notification) -> dict:
    return {
        "id": n.id,
        "user_id": n.user_id,
        "title": n.title,
        "message": n.message,
        "read": n.read,
        "created_at": _ts(n.created_at),
    }
