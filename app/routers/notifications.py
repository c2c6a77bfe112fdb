# app/routers/notifications.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import require_auth
from app.models.core import Notification
from app.schemas.notifications import NotificationIn
from app.services.render import notification_row

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _own(db: Session, sub: str):
    return db.query(Notification).filter(Notification.user_id == sub)

@router.get("/")
def my_notifications(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = _own(db, sub).order_by(Notification.created_at.desc(), Notification.id.desc()).all()
    return {"notifications": [notification_row(n) for n in rows]}

@router.get("/unread")
def unread(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = (
        _own(db, sub)
          .filter(Notification.read.is_(False))
          .order_by(Notification.created_at.desc(), Notification.id.desc())
          .all()
    )
    return {"unread": [notification_row(n) for n in rows]}

# stored only; delivery to devices is someone else's job
@router.post("/", status_code=201)
def send(body: NotificationIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    n = Notification(user_id=body.user_id, title=body.title, message=body.message, read=False)
    db.add(n); db.commit(); db.refresh(n)
    return {"notification": notification_row(n)}

@router.patch("/{notification_id}/read")
def mark_read(notification_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    n = _own(db, sub).filter(Notification.id == notification_id).first()
    if not n:
        raise HTTPException(404, detail="Notification not found")
    n.read = True
    db.commit(); db.refresh(n)
    return {"updated": notification_row(n)}
