# app/routers/employees.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import require_auth
from app.models.core import Employee, Shift, PayrollEntry, Order, Check
from app.schemas.employees import EmployeeIn, ShiftIn, PayrollIn
from app.services.billing import cents, money
from app.services.render import employee_row, shift_row, payroll_row

router = APIRouter(prefix="/employees", tags=["employees"])


def _employee_or_404(db: Session, employee_id: int) -> Employee:
    e = db.get(Employee, employee_id)
    if not e:
        raise HTTPException(404, detail="Employee not found")
    return e


@router.get("/")
def list_employees(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = db.query(Employee).order_by(Employee.name.asc()).all()
    return {"employees": [employee_row(e) for e in rows]}

@router.post("/", status_code=201)
def create_employee(body: EmployeeIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    e = Employee(**body.model_dump())
    db.add(e); db.commit(); db.refresh(e)
    return {"employee": employee_row(e)}

@router.put("/{employee_id}")
def update_employee(employee_id: int, body: EmployeeIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    e = _employee_or_404(db, employee_id)
    for k, v in body.model_dump().items():
        setattr(e, k, v)
    db.commit(); db.refresh(e)
    return {"employee": employee_row(e)}

@router.delete("/{employee_id}")
def delete_employee(employee_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    e = _employee_or_404(db, employee_id)
    # orders stay, they just lose their assignee
    db.query(Order).filter(Order.assigned_staff_id == employee_id).update(
        {Order.assigned_staff_id: None}, synchronize_session=False)
    db.query(Shift).filter(Shift.employee_id == employee_id).delete(synchronize_session=False)
    db.query(PayrollEntry).filter(PayrollEntry.employee_id == employee_id).delete(synchronize_session=False)
    db.delete(e); db.commit()
    return {"message": "Employee deleted"}

# ---------- shifts ----------

@router.get("/{employee_id}/shifts")
def list_shifts(employee_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    _employee_or_404(db, employee_id)
    rows = (
        db.query(Shift)
          .filter(Shift.employee_id == employee_id)
          .order_by(Shift.shift_date.asc(), Shift.start_time.asc())
          .all()
    )
    return {"shifts": [shift_row(s) for s in rows]}

@router.post("/{employee_id}/shifts", status_code=201)
def add_shift(employee_id: int, body: ShiftIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    _employee_or_404(db, employee_id)
    s = Shift(employee_id=employee_id, **body.model_dump())
    db.add(s); db.commit(); db.refresh(s)
    return {"shift": shift_row(s)}

# ---------- payroll ----------

@router.get("/{employee_id}/payroll")
def list_payroll(employee_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    _employee_or_404(db, employee_id)
    rows = db.query(PayrollEntry).filter(PayrollEntry.employee_id == employee_id).order_by(PayrollEntry.pay_period.asc()).all()
    return {"payroll": [payroll_row(p) for p in rows]}

@router.post("/{employee_id}/payroll", status_code=201)
def add_payroll(employee_id: int, body: PayrollIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    _employee_or_404(db, employee_id)
    try:
        p = PayrollEntry(
            employee_id=employee_id,
            pay_period=body.pay_period,
            gross_salary=cents(body.gross_salary),
            net_salary=cents(body.net_salary),
        )
        db.add(p); db.commit(); db.refresh(p)
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, detail="payroll for this period already recorded")
    return {"payroll": payroll_row(p)}

# ---------- tips ----------

@router.get("/{employee_id}/tips-earnings")
def tips_earnings(employee_id: int, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    """Tips from settled checks on orders assigned to the employee."""
    _employee_or_404(db, employee_id)
    rows = (
        db.query(Check.id, Check.order_id, Check.tip_amount, Check.updated_at)
          .join(Order, Order.id == Check.order_id)
          .filter(Order.assigned_staff_id == employee_id, Check.tip_amount.is_not(None))
          .order_by(Check.id.asc())
          .all()
    )
    total = sum((cents(tip) for _, _, tip, _ in rows), cents(0))
    return {
        "tips_earnings": [
            {"check_id": cid, "order_id": oid, "amount": money(tip), "settled_at": ts.isoformat() if ts else None}
            for cid, oid, tip, ts in rows
        ],
        "total_tips": money(total),
    }
