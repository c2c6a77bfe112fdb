from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import require_auth
from app.models.core import MenuItem, MenuModifier, OrderItem
from app.schemas.menu import MenuItemIn, MenuItemUpdate, AvailabilityIn
from app.services.billing import cents
from app.services.render import menu_row

router = APIRouter(prefix="/menu", tags=["menu"])


@router.get("/categories/all")
def all_categories(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = (
        db.query(MenuItem.category)
          .filter(MenuItem.category.is_not(None), MenuItem.category != "")
          .distinct()
          .order_by(MenuItem.category.asc())
          .all()
    )
    return {"categories": [r[0] for r in rows]}

@router.get("/popular/all")
def popular_items(limit: int = 10, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    order_count = func.count(OrderItem.id).label("order_count")
    rows = (
        db.query(MenuItem, order_count)
          .join(OrderItem, OrderItem.menu_id == MenuItem.id)
          .group_by(MenuItem.id)
          .order_by(order_count.desc(), MenuItem.id.asc())
          .limit(max(1, min(limit, 50)))
          .all()
    )
    return {"popular_items": [{**menu_row(m), "order_count": int(n)} for m, n in rows]}

# public: guests browse the menu without a token
@router.get("/{restaurant_id}")
def list_menu(restaurant_id: int, db: Session = Depends(get_db)):
    rows = (
        db.query(MenuItem)
          .filter(MenuItem.restaurant_id == restaurant_id)
          .order_by(MenuItem.category.asc(), MenuItem.name.asc())
          .all()
    )
    return {"menu": [menu_row(m) for m in rows]}

@router.get("/{restaurant_id}/search")
def search_menu(restaurant_id: int, q: str = "", db: Session = Depends(get_db)):
    pattern = f"%{q.strip()}%"
    rows = (
        db.query(MenuItem)
          .filter(MenuItem.restaurant_id == restaurant_id,
                  or_(MenuItem.name.ilike(pattern), MenuItem.description.ilike(pattern)))
          .order_by(MenuItem.name.asc())
          .all()
    )
    return {"results": [menu_row(m) for m in rows]}

@router.post("/", status_code=201)
def add_menu_item(body: MenuItemIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    m = MenuItem(**body.model_dump(exclude={"price"}), price=cents(body.price))
    db.add(m); db.commit(); db.refresh(m)
    return {"menu_item": menu_row(m)}

@router.put("/{item_id}")
def update_menu_item(item_id: int, body: MenuItemUpdate, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    m = db.get(MenuItem, item_id)
    if not m:
        raise HTTPException(404, detail="Menu item not found")
    for k, v in body.model_dump(exclude={"price"}).items():
        setattr(m, k, v)
    m.price = cents(body.price)
    db.commit(); db.refresh(m)
    return {"menu_item": menu_row(m)}

@router.patch("/{item_id}/availability")
def set_availability(item_id: int, body: AvailabilityIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    m = db.get(MenuItem, item_id)
    if not m:
        raise HTTPException(404, detail="Menu item not found")
    m.available = body.available
    db.commit(); db.refresh(m)
    return {"menu_item": menu_row(m)}

@router.delete("/{item_id}")
def delete_menu_item(item_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    m = db.get(MenuItem, item_id)
    if not m:
        raise HTTPException(404, detail="Menu item not found")
    # menu items referenced by order lines are only switched off
    if db.query(OrderItem.id).filter(OrderItem.menu_id == item_id).first():
        m.available = False
        db.commit()
        return {"message": "Menu item disabled", "id": item_id}
    db.query(MenuModifier).filter(MenuModifier.menu_id == item_id).delete(synchronize_session=False)
    db.delete(m); db.commit()
    return {"message": "Menu item deleted", "id": item_id}
