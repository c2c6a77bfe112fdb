# app/routers/reservations.py
from datetime import date, datetime, time, timedelta, timezone
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import require_auth, get_executor
from app.models.common import utcnow
from app.models.core import Reservation, DiningTable, WaitlistEntry
from app.schemas.dining import TableIn, CreateReservation, AssignTable, WaitlistIn
from app.services.mutations import MutationExecutor, TABLE_HOLD, as_utc
from app.services.render import reservation_row, table_row, waitlist_row
from app.util.http import unwrap

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.get("/")
def list_reservations(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = db.query(Reservation).order_by(Reservation.reservation_time.asc(), Reservation.id.asc()).all()
    return {"reservations": [reservation_row(r) for r in rows]}

@router.post("/", status_code=201)
def create_reservation(body: CreateReservation, ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    """
    body: {restaurant_id, reservation_time, num_guests, table_id?, notes?}

    The booking belongs to the caller. A table, when given, must be at the
    same restaurant, seat the party and be free within two hours either side.
    """
    return {"reservation": unwrap(ex.create_reservation(body, sub))}

# ---------- waitlist ----------

@router.get("/waitlist")
def list_waitlist(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = db.query(WaitlistEntry).order_by(WaitlistEntry.created_at.asc(), WaitlistEntry.id.asc()).all()
    return {"waitlist": [waitlist_row(w) for w in rows]}

@router.post("/waitlist", status_code=201)
def join_waitlist(body: WaitlistIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    w = WaitlistEntry(user_id=sub, **body.model_dump())
    db.add(w); db.commit(); db.refresh(w)
    return {"waitlist_entry": waitlist_row(w)}

@router.delete("/waitlist/{entry_id}")
def leave_waitlist(entry_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    w = db.get(WaitlistEntry, entry_id)
    if not w:
        raise HTTPException(404, detail="Waitlist entry not found")
    db.delete(w); db.commit()
    return {"message": "Waitlist entry removed"}

# ---------- tables ----------

@router.get("/tables/available")
def available_tables(
    restaurant_id: int | None = None,
    guests: int = Query(1, ge=1),
    at: datetime | None = None,
    db: Session = Depends(get_db),
    sub: str = Depends(require_auth),
):
    """Tables big enough for the party with no booking within two hours of `at` (default: now)."""
    when = as_utc(at) if at else utcnow()
    held = select(Reservation.table_id).where(
        Reservation.table_id.is_not(None),
        Reservation.reservation_time > when - TABLE_HOLD,
        Reservation.reservation_time < when + TABLE_HOLD,
    )
    q = db.query(DiningTable).filter(DiningTable.capacity >= guests, DiningTable.id.not_in(held))
    if restaurant_id is not None:
        q = q.filter(DiningTable.restaurant_id == restaurant_id)
    rows = q.order_by(DiningTable.table_number.asc(), DiningTable.id.asc()).all()
    return {"available_tables": [table_row(t) for t in rows]}

@router.post("/tables", status_code=201)
def add_table(body: TableIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    try:
        t = DiningTable(**body.model_dump())
        db.add(t); db.commit(); db.refresh(t)
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, detail="table with this number already exists")
    return {"table": table_row(t)}

@router.delete("/tables/{table_id}")
def delete_table(table_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    t = db.get(DiningTable, table_id)
    if not t:
        raise HTTPException(404, detail="Table not found")
    # bookings keep their slot but lose the table
    db.query(Reservation).filter(Reservation.table_id == table_id).update(
        {Reservation.table_id: None}, synchronize_session=False)
    db.delete(t); db.commit()
    return {"message": "Table deleted"}

# ---------- lookups ----------

@router.get("/date/{day}")
def reservations_on(day: date, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    rows = (
        db.query(Reservation)
          .filter(Reservation.reservation_time >= start, Reservation.reservation_time < start + timedelta(days=1))
          .order_by(Reservation.reservation_time.asc(), Reservation.id.asc())
          .all()
    )
    return {"reservations": [reservation_row(r) for r in rows]}

@router.get("/user/{user_id}")
def reservations_of(user_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = (
        db.query(Reservation)
          .filter(Reservation.user_id == user_id)
          .order_by(Reservation.reservation_time.desc(), Reservation.id.desc())
          .all()
    )
    return {"reservations": [reservation_row(r) for r in rows]}

# ---------- single reservation ----------

@router.put("/{reservation_id}/assign-table")
def assign_table(reservation_id: int, body: AssignTable, ex: MutationExecutor = Depends(get_executor), sub: str = Depends(require_auth)):
    return {"reservation": unwrap(ex.assign_table(reservation_id, body, sub))}

@router.delete("/{reservation_id}")
def cancel_reservation(reservation_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    r = db.query(Reservation).filter(Reservation.id == reservation_id, Reservation.user_id == sub).first()
    if not r:
        raise HTTPException(404, detail="Reservation not found or unauthorized")
    db.delete(r); db.commit()
    return {"message": "Reservation cancelled"}
