"""
Multi-statement order, check, inventory, supplier-order and reservation
mutations.

Each public method runs a fixed sequence of dependent writes as one unit
through ``PersistenceGateway.with_transaction``: every step's effect is
visible afterwards, or none is. Commands arrive already validated (they are
pydantic models), so a malformed payload never opens a transaction.

Steps return ``Ok``/``Err``. An ``Err`` from any step stops the sequence and
the gateway rolls back; driver exceptions are turned into
``Err(PersistenceFailure)`` by the gateway. Nothing here retries.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models.core import (
    Order, OrderItem, OrderStatus, OrderPriority, Payment, PayMethod,
    Check, CheckStatus, InventoryItem, SupplierOrder, SupplierOrderLine,
    SupplierOrderStatus, DiningTable, Reservation,
)
from app.models.common import utcnow
from app.schemas.orders import PlaceOrder, ReplaceOrderItems, OrderLineIn
from app.schemas.checks import OpenCheck, SplitCheck, PayCheck, SettleCheck
from app.schemas.inventory import BulkInventoryUpdate, PlaceSupplierOrder, SupplierOrderStatusIn
from app.schemas.dining import CreateReservation, AssignTable
from app.services.billing import MAX_QTY, lines_total, check_balance, cents, qty3, money
from app.services.gateway import PersistenceGateway
from app.services.render import (
    order_row, check_row, inventory_row, supplier_order_row, reservation_row,
)
from app.services.results import (
    Ok, Err, Result, ValidationFailed, NotFound, InvalidState,
)
from app.util.audit import log_audit
from app.util.http import invalid_field_message

logger = logging.getLogger(__name__)

ORDER_NOT_FOUND = "Order not found or unauthorized"
CHECK_NOT_FOUND = "Check not found or unauthorized"

# a reserved table is held this long either side of the booking
TABLE_HOLD = timedelta(hours=2)

# Received and Cancelled are terminal
SUPPLIER_TRANSITIONS = {
    SupplierOrderStatus.PENDING: {SupplierOrderStatus.ORDERED, SupplierOrderStatus.CANCELLED},
    SupplierOrderStatus.ORDERED: {SupplierOrderStatus.RECEIVED, SupplierOrderStatus.CANCELLED},
}


def as_utc(dt: datetime) -> datetime:
    # naive timestamps are taken as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def table_is_held(db: Session, table_id: int, at: datetime, exclude_id: int | None = None) -> bool:
    q = db.query(Reservation.id).filter(
        Reservation.table_id == table_id,
        Reservation.reservation_time > at - TABLE_HOLD,
        Reservation.reservation_time < at + TABLE_HOLD,
    )
    if exclude_id is not None:
        q = q.filter(Reservation.id != exclude_id)
    return q.first() is not None


def _owned_order(db: Session, order_id: int, sub: str) -> Order | None:
    return db.query(Order).filter(Order.id == order_id, Order.user_id == sub).first()

def _owned_check(db: Session, check_id: int, sub: str) -> Check | None:
    return (
        db.query(Check)
          .join(Order, Order.id == Check.order_id)
          .filter(Check.id == check_id, Order.user_id == sub)
          .first()
    )

def _add_lines(db: Session, order_id: int, items: list[OrderLineIn], check_id: int | None = None):
    for line in items:
        db.add(OrderItem(
            order_id=order_id,
            menu_id=line.menu_id,
            quantity=line.quantity,
            price=cents(line.price),
            check_id=check_id,
        ))
        # flush per line so a bad reference fails on its own insert
        db.flush()

def _seat_refusal(db: Session, table_id: int, restaurant_id: int, guests: int,
                  at: datetime, exclude_id: int | None = None) -> Err | None:
    t = db.get(DiningTable, table_id)
    if not t:
        return Err(NotFound(f"Table {table_id} not found"))
    if t.restaurant_id != restaurant_id:
        return Err(ValidationFailed(f"table {table_id} belongs to another restaurant"))
    if t.capacity < guests:
        return Err(ValidationFailed(f"table {table_id} seats {t.capacity}, party is {guests}"))
    if table_is_held(db, table_id, at, exclude_id):
        return Err(InvalidState(f"table {table_id} is already reserved around that time"))
    return None


class MutationExecutor:
    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    def _commit(self, name: str, steps: Callable[[Session], Result],
                read_back: Optional[Callable[[Session, Any], Any]] = None) -> Result:
        result = self.gateway.with_transaction(steps, read_back=read_back)
        if isinstance(result, Ok):
            logger.info("%s committed", name)
        else:
            logger.warning("%s failed: %s", name, result.error.kind)
        return result

    # ── orders ──────────────────────────────────────────────────────────────
    def place_order(self, cmd: PlaceOrder, sub: str) -> Result:
        total = lines_total(cmd.items)

        def steps(db: Session) -> Result:
            o = Order(
                user_id=sub,
                restaurant_id=cmd.restaurant_id,
                total_price=total,
                status=OrderStatus.PENDING,
                priority=OrderPriority.MEDIUM,
            )
            db.add(o)
            db.flush()

            _add_lines(db, o.id, cmd.items)

            if cmd.payment is not None:
                db.add(Payment(
                    order_id=o.id,
                    amount=cents(cmd.payment.amount),
                    method=PayMethod(cmd.payment.method),
                ))
                db.flush()

            log_audit(db, sub, "order", o.id, "PLACE", after={"total_price": money(total), "lines": len(cmd.items)})
            return Ok(o.id)

        return self._commit("place_order", steps, read_back=lambda db, oid: order_row(db, db.get(Order, oid)))

    def replace_order_items(self, order_id: int, cmd: ReplaceOrderItems, sub: str) -> Result:
        total = lines_total(cmd.items)

        def steps(db: Session) -> Result:
            o = _owned_order(db, order_id, sub)
            if not o:
                return Err(NotFound(ORDER_NOT_FOUND))

            checks = db.query(Check).filter(Check.order_id == order_id).order_by(Check.id).all()
            if any(c.status != CheckStatus.OPEN for c in checks):
                return Err(InvalidState("order has a closed or paid check"))
            # new lines stay on a check if the order is already being billed
            target_check = checks[0].id if checks else None

            before = money(o.total_price or 0)
            db.query(OrderItem).filter(OrderItem.order_id == order_id).delete(synchronize_session=False)
            _add_lines(db, order_id, cmd.items, check_id=target_check)

            o.total_price = total
            o.updated_at = utcnow()
            log_audit(db, sub, "order", order_id, "REPLACE_ITEMS",
                      before={"total_price": before}, after={"total_price": money(total)})
            return Ok(order_id)

        return self._commit("replace_order_items", steps,
                            read_back=lambda db, oid: order_row(db, db.get(Order, oid)))

    # ── inventory ───────────────────────────────────────────────────────────
    def bulk_update_inventory(self, cmd: BulkInventoryUpdate, sub: str) -> Result:
        ids = [i.id for i in cmd.items]

        def steps(db: Session) -> Result:
            # write first: no read lock is held before the first UPDATE
            for item in cmd.items:
                res = db.execute(
                    update(InventoryItem)
                    .where(InventoryItem.id == item.id)
                    .values(quantity=qty3(item.quantity), updated_at=utcnow())
                )
                if res.rowcount == 0:
                    return Err(NotFound(f"Inventory item {item.id} not found"))
            log_audit(db, sub, "inventory", f"batch:{len(ids)}", "BULK_UPDATE",
                      after={str(i.id): i.quantity for i in cmd.items})
            return Ok(ids)

        def read_back(db: Session, item_ids: list[int]) -> list[dict]:
            rows = db.query(InventoryItem).filter(InventoryItem.id.in_(item_ids)).order_by(InventoryItem.id).all()
            return [inventory_row(r) for r in rows]

        return self._commit("bulk_update_inventory", steps, read_back=read_back)

    # ── checks ──────────────────────────────────────────────────────────────
    def open_check(self, cmd: OpenCheck, sub: str) -> Result:
        def steps(db: Session) -> Result:
            o = _owned_order(db, cmd.order_id, sub)
            if not o:
                return Err(NotFound(ORDER_NOT_FOUND))
            c = Check(order_id=o.id, status=CheckStatus.OPEN)
            db.add(c)
            db.flush()
            moved = (
                db.query(OrderItem)
                  .filter(OrderItem.order_id == o.id, OrderItem.check_id.is_(None))
                  .update({OrderItem.check_id: c.id}, synchronize_session=False)
            )
            if moved == 0:
                return Err(InvalidState("order has no lines without a check"))
            log_audit(db, sub, "check", c.id, "OPEN", after={"order_id": o.id, "lines": moved})
            return Ok(c.id)

        return self._commit("open_check", steps, read_back=lambda db, cid: check_row(db, db.get(Check, cid)))

    def split_check(self, cmd: SplitCheck, sub: str) -> Result:
        wanted = set(cmd.line_ids)

        def steps(db: Session) -> Result:
            src = _owned_check(db, cmd.source_check_id, sub)
            if not src:
                return Err(NotFound(CHECK_NOT_FOUND))
            if src.status != CheckStatus.OPEN:
                return Err(InvalidState(f"check is {src.status.value}, only Open checks can be split"))

            owned = {
                row[0] for row in
                db.query(OrderItem.id).filter(OrderItem.check_id == src.id).all()
            }
            missing = sorted(wanted - owned)
            if missing:
                return Err(NotFound(f"lines {missing} are not on check {src.id}"))
            if wanted == owned:
                return Err(ValidationFailed("cannot move every line off the source check"))

            new = Check(order_id=src.order_id, status=CheckStatus.OPEN)
            db.add(new)
            db.flush()

            moved = (
                db.query(OrderItem)
                  .filter(OrderItem.id.in_(sorted(wanted)), OrderItem.check_id == src.id)
                  .update({OrderItem.check_id: new.id}, synchronize_session=False)
            )
            if moved != len(wanted):
                return Err(InvalidState("check lines changed while splitting"))

            src.updated_at = utcnow()
            log_audit(db, sub, "check", src.id, "SPLIT", after={"new_check_id": new.id, "line_ids": sorted(wanted)})
            return Ok((src.id, new.id))

        def read_back(db: Session, ids: tuple[int, int]) -> dict:
            src_id, new_id = ids
            return {
                "source": check_row(db, db.get(Check, src_id)),
                "new_check": check_row(db, db.get(Check, new_id)),
            }

        return self._commit("split_check", steps, read_back=read_back)

    def pay_check(self, check_id: int, cmd: PayCheck, sub: str) -> Result:
        def steps(db: Session) -> Result:
            c = _owned_check(db, check_id, sub)
            if not c:
                return Err(NotFound(CHECK_NOT_FOUND))
            if c.status != CheckStatus.OPEN:
                return Err(InvalidState(f"check is {c.status.value}, only Open checks can be paid"))
            balance = check_balance(db, c.id)
            if cents(cmd.amount) < balance:
                return Err(ValidationFailed(f"payment {money(cmd.amount)} does not cover balance {money(balance)}"))

            db.add(Payment(check_id=c.id, amount=cents(cmd.amount), method=PayMethod(cmd.method)))
            c.status = CheckStatus.CLOSED
            c.updated_at = utcnow()
            log_audit(db, sub, "check", c.id, "PAY", after={"amount": cmd.amount, "method": cmd.method})
            return Ok(c.id)

        return self._commit("pay_check", steps, read_back=lambda db, cid: check_row(db, db.get(Check, cid)))

    def settle_check(self, check_id: int, cmd: SettleCheck, sub: str) -> Result:
        def steps(db: Session) -> Result:
            c = _owned_check(db, check_id, sub)
            if not c:
                return Err(NotFound(CHECK_NOT_FOUND))
            if c.status != CheckStatus.CLOSED:
                return Err(InvalidState(f"check is {c.status.value}, only Closed checks can be settled"))
            c.tip_amount = cents(cmd.tip_amount)
            c.status = CheckStatus.PAID
            c.updated_at = utcnow()
            log_audit(db, sub, "check", c.id, "SETTLE", after={"tip_amount": cmd.tip_amount})
            return Ok(c.id)

        return self._commit("settle_check", steps, read_back=lambda db, cid: check_row(db, db.get(Check, cid)))

    # ── supplier orders ─────────────────────────────────────────────────────
    def place_supplier_order(self, cmd: PlaceSupplierOrder, sub: str) -> Result:
        ids = [l.inventory_id for l in cmd.items]

        def steps(db: Session) -> Result:
            known = {row[0] for row in db.query(InventoryItem.id).filter(InventoryItem.id.in_(ids)).all()}
            missing = [i for i in ids if i not in known]
            if missing:
                return Err(NotFound(f"Inventory items {missing} not found"))

            so = SupplierOrder(supplier=cmd.supplier, note=cmd.note, status=SupplierOrderStatus.PENDING)
            db.add(so)
            db.flush()
            for line in cmd.items:
                db.add(SupplierOrderLine(
                    supplier_order_id=so.id,
                    inventory_id=line.inventory_id,
                    quantity=qty3(line.quantity),
                    unit_cost=cents(line.unit_cost),
                ))
            db.flush()
            log_audit(db, sub, "supplier_order", so.id, "PLACE",
                      after={"supplier": cmd.supplier, "lines": len(cmd.items)})
            return Ok(so.id)

        return self._commit("place_supplier_order", steps,
                            read_back=lambda db, sid: supplier_order_row(db, db.get(SupplierOrder, sid)))

    def set_supplier_order_status(self, order_id: int, cmd: SupplierOrderStatusIn, sub: str) -> Result:
        """Move a supplier order along; Received books every line into stock."""
        target = SupplierOrderStatus(cmd.order_status)

        def steps(db: Session) -> Result:
            so = db.get(SupplierOrder, order_id)
            if not so:
                return Err(NotFound("Supplier order not found"))
            if target not in SUPPLIER_TRANSITIONS.get(so.status, set()):
                return Err(InvalidState(f"supplier order is {so.status.value}, cannot move to {target.value}"))

            if target == SupplierOrderStatus.RECEIVED:
                lines = (
                    db.query(SupplierOrderLine)
                      .filter(SupplierOrderLine.supplier_order_id == so.id)
                      .order_by(SupplierOrderLine.id)
                      .all()
                )
                for line in lines:
                    qty = qty3(line.quantity)
                    res = db.execute(
                        update(InventoryItem)
                        .where(InventoryItem.id == line.inventory_id, InventoryItem.quantity <= MAX_QTY - qty)
                        .values(quantity=InventoryItem.quantity + qty, updated_at=utcnow())
                        .execution_options(synchronize_session=False)
                    )
                    if res.rowcount == 0:
                        if db.get(InventoryItem, line.inventory_id) is None:
                            return Err(NotFound(f"Inventory item {line.inventory_id} not found"))
                        return Err(ValidationFailed(f"receiving would overflow stock of item {line.inventory_id}"))
                so.received_at = utcnow()

            before = so.status.value
            so.status = target
            so.updated_at = utcnow()
            log_audit(db, sub, "supplier_order", so.id, "STATUS",
                      before={"status": before}, after={"status": target.value})
            return Ok(so.id)

        return self._commit("set_supplier_order_status", steps,
                            read_back=lambda db, sid: supplier_order_row(db, db.get(SupplierOrder, sid)))

    # ── reservations ────────────────────────────────────────────────────────
    def create_reservation(self, cmd: CreateReservation, sub: str) -> Result:
        at = as_utc(cmd.reservation_time)

        def steps(db: Session) -> Result:
            if cmd.table_id is not None:
                refused = _seat_refusal(db, cmd.table_id, cmd.restaurant_id, cmd.num_guests, at)
                if refused:
                    return refused
            r = Reservation(
                user_id=sub,
                restaurant_id=cmd.restaurant_id,
                reservation_time=at,
                num_guests=cmd.num_guests,
                table_id=cmd.table_id,
                notes=cmd.notes,
            )
            db.add(r)
            db.flush()
            log_audit(db, sub, "reservation", r.id, "CREATE",
                      after={"reservation_time": at.isoformat(), "table_id": cmd.table_id})
            return Ok(r.id)

        return self._commit("create_reservation", steps,
                            read_back=lambda db, rid: reservation_row(db.get(Reservation, rid)))

    def assign_table(self, reservation_id: int, cmd: AssignTable, sub: str) -> Result:
        def steps(db: Session) -> Result:
            r = db.get(Reservation, reservation_id)
            if not r:
                return Err(NotFound("Reservation not found"))
            refused = _seat_refusal(db, cmd.table_id, r.restaurant_id, r.num_guests,
                                    as_utc(r.reservation_time), exclude_id=r.id)
            if refused:
                return refused
            before = r.table_id
            r.table_id = cmd.table_id
            r.updated_at = utcnow()
            log_audit(db, sub, "reservation", r.id, "ASSIGN_TABLE",
                      before={"table_id": before}, after={"table_id": cmd.table_id})
            return Ok(r.id)

        return self._commit("assign_table", steps,
                            read_back=lambda db, rid: reservation_row(db.get(Reservation, rid)))

    # ── dispatch by name ────────────────────────────────────────────────────
    def run(self, operation: str, payload: dict, sub: str, **path) -> Result:
        """
        Run a named operation from a raw payload, e.g.
        run("split_check", {"source_check_id": 3, "line_ids": [7, 9]}, "u1").

        Path-style identifiers (order_id, check_id, reservation_id) are
        passed as keywords.
        """
        entry = _OPERATIONS.get(operation)
        if entry is None:
            return Err(ValidationFailed(f"unknown operation '{operation}'"))
        command_cls, method = entry
        try:
            cmd = command_cls.model_validate(payload)
        except PydanticValidationError as exc:
            return Err(ValidationFailed(invalid_field_message(exc.errors())))
        return getattr(self, method)(cmd=cmd, sub=sub, **path)


_OPERATIONS: dict[str, tuple[type[BaseModel], str]] = {
    "place_order": (PlaceOrder, "place_order"),
    "replace_order_items": (ReplaceOrderItems, "replace_order_items"),
    "bulk_update_inventory": (BulkInventoryUpdate, "bulk_update_inventory"),
    "open_check": (OpenCheck, "open_check"),
    "split_check": (SplitCheck, "split_check"),
    "pay_check": (PayCheck, "pay_check"),
    "settle_check": (SettleCheck, "settle_check"),
    "place_supplier_order": (PlaceSupplierOrder, "place_supplier_order"),
    "set_supplier_order_status": (SupplierOrderStatusIn, "set_supplier_order_status"),
    "create_reservation": (CreateReservation, "create_reservation"),
    "assign_table": (AssignTable, "assign_table"),
}
