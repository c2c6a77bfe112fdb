# app/routers/restaurants.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import require_auth
from app.models.core import Restaurant, MenuCategory, MenuItem, MenuModifier
from app.schemas.restaurants import RestaurantIn, CategoryIn, ModifierIn
from app.services.billing import cents
from app.services.render import restaurant_row, category_row, modifier_row

router = APIRouter(prefix="/restaurants", tags=["restaurants"])


def _restaurant_or_404(db: Session, restaurant_id: int) -> Restaurant:
    r = db.get(Restaurant, restaurant_id)
    if not r:
        raise HTTPException(404, detail="Restaurant not found")
    return r


# public: the restaurant list is shown before login
@router.get("/")
def list_restaurants(db: Session = Depends(get_db)):
    rows = db.query(Restaurant).order_by(Restaurant.name.asc()).all()
    return {"restaurants": [restaurant_row(r) for r in rows]}

@router.post("/", status_code=201)
def create_restaurant(body: RestaurantIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    r = Restaurant(**body.model_dump())
    db.add(r); db.commit(); db.refresh(r)
    return {"restaurant": restaurant_row(r)}

@router.put("/{restaurant_id}")
def update_restaurant(restaurant_id: int, body: RestaurantIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    r = _restaurant_or_404(db, restaurant_id)
    for k, v in body.model_dump().items():
        setattr(r, k, v)
    db.commit(); db.refresh(r)
    return {"restaurant": restaurant_row(r)}

@router.delete("/{restaurant_id}")
def delete_restaurant(restaurant_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    r = _restaurant_or_404(db, restaurant_id)
    db.query(MenuCategory).filter(MenuCategory.restaurant_id == restaurant_id).delete(synchronize_session=False)
    db.delete(r); db.commit()
    return {"message": "Restaurant deleted"}

# ---------- categories ----------

@router.post("/{restaurant_id}/categories", status_code=201)
def add_category(restaurant_id: int, body: CategoryIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    _restaurant_or_404(db, restaurant_id)
    try:
        c = MenuCategory(restaurant_id=restaurant_id, name=body.name)
        db.add(c); db.commit(); db.refresh(c)
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, detail="category with this name already exists")
    return {"category": category_row(c)}

@router.get("/{restaurant_id}/categories")
def list_categories(restaurant_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = (
        db.query(MenuCategory)
          .filter(MenuCategory.restaurant_id == restaurant_id)
          .order_by(MenuCategory.name.asc())
          .all()
    )
    return {"categories": [category_row(c) for c in rows]}

# ---------- modifiers ----------

@router.post("/menu/{menu_id}/modifiers", status_code=201)
def add_modifier(menu_id: int, body: ModifierIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    if not db.get(MenuItem, menu_id):
        raise HTTPException(404, detail="Menu item not found")
    m = MenuModifier(menu_id=menu_id, name=body.name, price=cents(body.price))
    db.add(m); db.commit(); db.refresh(m)
    return {"modifier": modifier_row(m)}

# public, like the menu itself
@router.get("/menu/{menu_id}/modifiers")
def list_modifiers(menu_id: int, db: Session = Depends(get_db)):
    rows = db.query(MenuModifier).filter(MenuModifier.menu_id == menu_id).order_by(MenuModifier.name.asc()).all()
    return {"modifiers": [modifier_row(m) for m in rows]}

@router.delete("/modifiers/{modifier_id}")
def delete_modifier(modifier_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    m = db.get(MenuModifier, modifier_id)
    if not m:
        raise HTTPException(404, detail="Modifier not found")
    db.delete(m); db.commit()
    return {"message": "Modifier deleted"}
