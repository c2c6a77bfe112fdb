from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.schemas.common import Token, RegisterIn
from app.util.security import create_token, hash_pw, verify_pw
from app.models.core import User
from app.db import get_db
from app.deps import require_auth

router = APIRouter(prefix="/auth", tags=["auth"])

def _user_row(u: User) -> dict:
    return {"id": u.id, "name": u.name, "email": u.email, "phone": u.phone}

@router.post("/register", status_code=201)
def register(body: RegisterIn, db: Session = Depends(get_db)):
    u = User(name=body.name, email=body.email.lower(), phone=body.phone, pass_hash=hash_pw(body.password))
    try:
        db.add(u)
        db.commit()
        db.refresh(u)
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, detail="Email already exists")
    return {"message": "User profile created", "user": _user_row(u)}

@router.post("/login", response_model=Token)
def login(email: str, password: str, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == email.lower(), User.active.is_(True)).first()
    if not user or not verify_pw(user.pass_hash, password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return Token(access_token=create_token(user.id))

@router.get("/me")
def me(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    u = db.get(User, sub)
    if not u:
        raise HTTPException(404, detail="User not found")
    return {"user": _user_row(u)}
