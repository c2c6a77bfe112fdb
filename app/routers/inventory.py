# app/routers/inventory.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import require_auth, get_executor
from app.models.core import InventoryItem, SupplierOrder, SupplierOrderLine, SupplierOrderStatus
from app.schemas.inventory import (
    InventoryItemIn, BulkInventoryUpdate, PlaceSupplierOrder, SupplierOrderStatusIn,
)
from app.services.billing import qty3
from app.services.mutations import MutationExecutor
from app.services.render import inventory_row, supplier_order_row
from app.util.http import unwrap

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("/")
def list_inventory(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = db.query(InventoryItem).order_by(InventoryItem.id.asc()).all()
    return {"inventory": [inventory_row(i) for i in rows]}

@router.post("/", status_code=201)
def add_item(body: InventoryItemIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    i = InventoryItem(
        name=body.name,
        quantity=qty3(body.quantity),
        unit=body.unit,
        low_stock_threshold=qty3(body.low_stock_threshold),
    )
    db.add(i); db.commit(); db.refresh(i)
    return {"inventory_item": inventory_row(i)}

@router.get("/low-stock")
def low_stock(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = (
        db.query(InventoryItem)
          .filter(InventoryItem.quantity <= InventoryItem.low_stock_threshold)
          .order_by(InventoryItem.id.asc())
          .all()
    )
    return {"low_stock_items": [inventory_row(i) for i in rows]}

@router.get("/report")
def stock_report(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = db.query(InventoryItem).order_by(InventoryItem.name.asc()).all()
    out = []
    for i in rows:
        r = inventory_row(i)
        out.append({
            "item_name": r["name"],
            "quantity": r["quantity"],
            "low_stock_threshold": r["low_stock_threshold"],
            "low_stock": r["low_stock"],
        })
    return {"inventory_report": out}

@router.post("/bulk-update")
def bulk_update(body: BulkInventoryUpdate, ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    """
    body: {items: [{id: int, quantity: number}, ...]}

    All-or-nothing: a malformed entry rejects the whole batch with 400 before
    anything is written; an unknown id rolls the batch back with 404.
    """
    items = unwrap(ex.bulk_update_inventory(body, sub))
    return {"message": "Bulk update successful", "inventory": items}

# ---------- supplier orders ----------

@router.post("/order", status_code=201)
def place_supplier_order(body: PlaceSupplierOrder, ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    """body: {supplier, note?, items: [{inventory_id, quantity, unit_cost?}, ...]}"""
    return {"order": unwrap(ex.place_supplier_order(body, sub))}

@router.get("/orders")
def list_supplier_orders(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = db.query(SupplierOrder).order_by(SupplierOrder.id.desc()).all()
    return {"supplier_orders": [supplier_order_row(db, so) for so in rows]}

@router.put("/orders/{order_id}")
def update_supplier_order(order_id: int, body: SupplierOrderStatusIn, ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    """Pending -> Ordered -> Received (stock booked), or Cancelled before that."""
    return {"order": unwrap(ex.set_supplier_order_status(order_id, body, sub))}

@router.delete("/orders/{order_id}")
def delete_supplier_order(order_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    so = db.get(SupplierOrder, order_id)
    if not so:
        raise HTTPException(404, detail="Order not found")
    # received stock is already on the shelf
    if so.status == SupplierOrderStatus.RECEIVED:
        raise HTTPException(409, detail="Received supplier orders cannot be deleted")
    db.query(SupplierOrderLine).filter(SupplierOrderLine.supplier_order_id == order_id).delete(synchronize_session=False)
    db.delete(so); db.commit()
    return {"message": "Supplier order deleted"}

@router.put("/{item_id}")
def update_item(item_id: int, body: InventoryItemIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    i = db.get(InventoryItem, item_id)
    if not i:
        raise HTTPException(404, detail="Inventory item not found")
    i.name = body.name
    i.quantity = qty3(body.quantity)
    i.unit = body.unit
    i.low_stock_threshold = qty3(body.low_stock_threshold)
    db.commit(); db.refresh(i)
    return {"inventory_item": inventory_row(i)}

@router.delete("/{item_id}")
def delete_item(item_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    i = db.get(InventoryItem, item_id)
    if not i:
        raise HTTPException(404, detail="Inventory item not found")
    if db.query(SupplierOrderLine.id).filter(SupplierOrderLine.inventory_id == item_id).first():
        raise HTTPException(409, detail="Inventory item is on a supplier order")
    db.delete(i); db.commit()
    return {"message": "Inventory item deleted"}
