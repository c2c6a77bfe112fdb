from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol

from sqlalchemy.orm import Session

from app.models.core import OrderItem

# Largest values the Numeric(10, 2) / Numeric(12, 3) columns hold
MAX_MONEY = Decimal("99999999.99")
MAX_QTY = Decimal("999999999.999")


class _Line(Protocol):
    quantity: int
    price: float


def money(x) -> float:
    return float(Decimal(str(x)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))

def cents(x) -> Decimal:
    # use string to avoid float binary artifacts
    return Decimal(str(x)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

def qty3(x) -> Decimal:
    return Decimal(str(x)).quantize(Decimal('0.001'), rounding=ROUND_HALF_UP)

def line_total(quantity: int, price) -> Decimal:
    return cents(cents(price) * int(quantity))

def lines_total(lines: Iterable[_Line]) -> Decimal:
    total = Decimal("0.00")
    for l in lines:
        total += line_total(l.quantity, l.price)
    return cents(total)

def check_balance(db: Session, check_id: int) -> Decimal:
    """Sum of quantity × price over the lines currently owned by the check."""
    lines = db.query(OrderItem).filter(OrderItem.check_id == check_id).all()
    return lines_total(lines)
