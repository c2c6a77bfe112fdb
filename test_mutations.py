# test_mutations.py
import threading
from decimal import Decimal

from app.models.core import (
    Order, OrderItem, Payment, Check, CheckStatus, InventoryItem, AuditLog,
    SupplierOrder, SupplierOrderStatus, DiningTable, Reservation,
)
from app.schemas.orders import PlaceOrder, ReplaceOrderItems
from app.schemas.checks import OpenCheck, SplitCheck, PayCheck, SettleCheck
from app.schemas.inventory import BulkInventoryUpdate, PlaceSupplierOrder, SupplierOrderStatusIn
from app.schemas.dining import CreateReservation, AssignTable
from app.services.billing import MAX_QTY, cents, money, qty3
from app.services.results import Ok, Err, ValidationFailed, NotFound, InvalidState, PersistenceFailure


def _count(session_factory, model) -> int:
    with session_factory() as s:
        return s.query(model).count()

def _place(executor, lines, sub="u1", payment=None):
    body = {"restaurant_id": 4, "items": lines}
    if payment:
        body["payment"] = payment
    res = executor.place_order(PlaceOrder.model_validate(body), sub)
    assert isinstance(res, Ok), res
    return res.value


# ---------- place order ----------

def test_place_order_example_scenario(executor, session_factory, menu):
    res = executor.run("place_order", {
        "user": "u1", "restaurant": 4,
        "lines": [{"menu_id": 10, "quantity": 2, "price": 6.5}],
        "payment": {"amount": 13.0, "method": "Card"},
    }, "u1")
    assert isinstance(res, Ok)
    order = res.value
    assert order["total_price"] == 13.0
    assert order["status"] == "Pending"
    assert len(order["items"]) == 1 and order["items"][0]["order_id"] == order["id"]
    assert len(order["payments"]) == 1 and order["payments"][0]["order_id"] == order["id"]
    assert order["payments"][0]["method"] == "Card"

    with session_factory() as s:
        assert s.query(OrderItem).filter(OrderItem.order_id == order["id"]).count() == 1
        assert s.query(Payment).filter(Payment.order_id == order["id"]).count() == 1


def test_place_order_failure_on_line_k_leaves_nothing(executor, session_factory, menu):
    # third line points at a menu item that does not exist
    cmd = PlaceOrder.model_validate({
        "restaurant_id": 4,
        "items": [
            {"menu_id": 10, "quantity": 1, "price": 6.5},
            {"menu_id": 11, "quantity": 1, "price": 5.0},
            {"menu_id": 999, "quantity": 1, "price": 1.0},
            {"menu_id": 12, "quantity": 1, "price": 3.0},
        ],
        "payment": {"amount": 15.5, "method": "Cash"},
    })
    res = executor.place_order(cmd, "u1")
    assert isinstance(res, Err)
    assert isinstance(res.error, PersistenceFailure)
    assert res.error.retryable is False
    for model in (Order, OrderItem, Payment, AuditLog):
        assert _count(session_factory, model) == 0


def test_malformed_command_never_reaches_gateway(executor, session_factory, menu):
    res = executor.run("place_order", {"restaurant_id": 4, "items": [{"menu_id": 10, "quantity": 0, "price": 1.0}]}, "u1")
    assert isinstance(res, Err)
    assert isinstance(res.error, ValidationFailed)
    assert "quantity" in res.error.message
    assert _count(session_factory, Order) == 0


def test_unknown_operation(executor):
    res = executor.run("refund_everything", {}, "u1")
    assert isinstance(res, Err) and isinstance(res.error, ValidationFailed)


def test_non_finite_numbers_rejected_before_any_write(executor, session_factory, menu, stock):
    inf, nan = float("inf"), float("nan")
    attempts = [
        ("place_order", {"restaurant_id": 4, "items": [{"menu_id": 10, "quantity": 1, "price": inf}]}),
        ("place_order", {"restaurant_id": 4, "items": [{"menu_id": 10, "quantity": 1, "price": nan}]}),
        ("place_order", {"restaurant_id": 4, "items": [{"menu_id": 10, "quantity": 1, "price": 6.5}],
                         "payment": {"amount": inf, "method": "Cash"}}),
        ("bulk_update_inventory", {"items": [{"id": 1, "quantity": inf}]}),
        ("bulk_update_inventory", {"items": [{"id": 1, "quantity": -inf}]}),
    ]
    for op, payload in attempts:
        res = executor.run(op, payload, "u1")
        assert isinstance(res, Err) and isinstance(res.error, ValidationFailed), (op, payload, res)
    assert _count(session_factory, Order) == 0
    assert _count(session_factory, AuditLog) == 0
    with session_factory() as s:
        assert {float(i.quantity) for i in s.query(InventoryItem).all()} == {10.0}


def test_values_too_large_for_their_columns_rejected(executor, session_factory, menu, stock):
    attempts = [
        ("place_order", {"restaurant_id": 4, "items": [{"menu_id": 10, "quantity": 1, "price": 1e9}]}),
        # every line fits, the sum does not
        ("place_order", {"restaurant_id": 4, "items": [{"menu_id": 10, "quantity": 10_000, "price": 99_999.99}]}),
        ("replace_order_items", {"items": [{"menu_id": 10, "quantity": 10_001, "price": 1.0}]}),
        ("bulk_update_inventory", {"items": [{"id": 1, "quantity": 1e10}]}),
    ]
    for op, payload in attempts:
        res = executor.run(op, payload, "u1", **({"order_id": 1} if op == "replace_order_items" else {}))
        assert isinstance(res, Err) and isinstance(res.error, ValidationFailed), (op, payload, res)
    assert _count(session_factory, Order) == 0
    with session_factory() as s:
        assert {float(i.quantity) for i in s.query(InventoryItem).all()} == {10.0}


def test_largest_storable_price_is_accepted(executor, menu):
    order = _place(executor, [{"menu_id": 10, "quantity": 1, "price": 99_999_999.99}])
    assert order["total_price"] == 99_999_999.99


# ---------- replace order contents ----------

def test_replace_order_items_recomputes_total(executor, session_factory, menu):
    order = _place(executor, [{"menu_id": 12, "quantity": 5, "price": 3.0}])
    res = executor.replace_order_items(order["id"], ReplaceOrderItems.model_validate({"items": [
        {"menu_id": 11, "quantity": 2, "price": 5.0},
        {"menu_id": 12, "quantity": 1, "price": 3.0},
    ]}), "u1")
    assert isinstance(res, Ok)
    assert res.value["total_price"] == 13.0
    assert [l["menu_id"] for l in res.value["items"]] == [11, 12]

    with session_factory() as s:
        assert float(s.get(Order, order["id"]).total_price) == 13.0
        assert s.query(OrderItem).filter(OrderItem.order_id == order["id"]).count() == 2


def test_replace_order_of_another_user_is_not_found(executor, session_factory, menu):
    order = _place(executor, [{"menu_id": 10, "quantity": 1, "price": 6.5}], sub="u1")
    res = executor.replace_order_items(order["id"], ReplaceOrderItems.model_validate({"items": [
        {"menu_id": 11, "quantity": 9, "price": 5.0},
    ]}), "u2")
    assert isinstance(res, Err) and isinstance(res.error, NotFound)
    with session_factory() as s:
        lines = s.query(OrderItem).filter(OrderItem.order_id == order["id"]).all()
        assert [(l.menu_id, l.quantity) for l in lines] == [(10, 1)]
        assert float(s.get(Order, order["id"]).total_price) == 6.5


def test_replace_failure_keeps_old_lines(executor, session_factory, menu):
    order = _place(executor, [{"menu_id": 10, "quantity": 2, "price": 6.5}])
    res = executor.replace_order_items(order["id"], ReplaceOrderItems.model_validate({"items": [
        {"menu_id": 11, "quantity": 1, "price": 5.0},
        {"menu_id": 404, "quantity": 1, "price": 5.0},
    ]}), "u1")
    assert isinstance(res, Err) and isinstance(res.error, PersistenceFailure)
    with session_factory() as s:
        lines = s.query(OrderItem).filter(OrderItem.order_id == order["id"]).all()
        assert [l.menu_id for l in lines] == [10]
        assert float(s.get(Order, order["id"]).total_price) == 13.0


# ---------- bulk inventory ----------

def test_bulk_update_applies_every_pair(executor, session_factory, stock):
    res = executor.bulk_update_inventory(BulkInventoryUpdate.model_validate({"items": [
        {"id": 1, "quantity": 4}, {"id": 2, "quantity": 0.5},
    ]}), "u1")
    assert isinstance(res, Ok)
    assert [(r["id"], r["quantity"]) for r in res.value] == [(1, 4.0), (2, 0.5)]


def test_bulk_update_one_malformed_item_changes_nothing(executor, session_factory, stock):
    payload = {"items": [
        {"id": 1, "quantity": 1}, {"id": 2, "quantity": 2}, {"id": 3, "quantity": 3},
        {"id": "4", "quantity": 4},
        {"id": 5, "quantity": 5}, {"id": 6, "quantity": 6},
    ]}
    res = executor.run("bulk_update_inventory", payload, "u1")
    assert isinstance(res, Err) and isinstance(res.error, ValidationFailed)
    with session_factory() as s:
        assert {float(i.quantity) for i in s.query(InventoryItem).all()} == {10.0}


def test_bulk_update_negative_quantity_rejected(executor, stock):
    res = executor.run("bulk_update_inventory", {"items": [{"id": 1, "quantity": -1}]}, "u1")
    assert isinstance(res, Err) and isinstance(res.error, ValidationFailed)


def test_bulk_update_unknown_id_rolls_back(executor, session_factory, stock):
    res = executor.bulk_update_inventory(BulkInventoryUpdate.model_validate({"items": [
        {"id": 1, "quantity": 1}, {"id": 2, "quantity": 2}, {"id": 77, "quantity": 3},
    ]}), "u1")
    assert isinstance(res, Err) and isinstance(res.error, NotFound)
    with session_factory() as s:
        assert float(s.get(InventoryItem, 1).quantity) == 10.0
        assert float(s.get(InventoryItem, 2).quantity) == 10.0


def test_concurrent_disjoint_bulk_updates(executor, session_factory, stock):
    barrier = threading.Barrier(2)
    results = {}

    def worker(name, items):
        barrier.wait()
        results[name] = executor.bulk_update_inventory(BulkInventoryUpdate.model_validate({"items": items}), name)

    a = threading.Thread(target=worker, args=("a", [{"id": 1, "quantity": 1}, {"id": 2, "quantity": 2}, {"id": 3, "quantity": 3}]))
    b = threading.Thread(target=worker, args=("b", [{"id": 4, "quantity": 40}, {"id": 5, "quantity": 50}, {"id": 6, "quantity": 60}]))
    a.start(); b.start()
    a.join(30); b.join(30)

    assert isinstance(results["a"], Ok), results["a"]
    assert isinstance(results["b"], Ok), results["b"]
    assert [r["id"] for r in results["a"].value] == [1, 2, 3]
    assert [r["id"] for r in results["b"].value] == [4, 5, 6]
    with session_factory() as s:
        got = {i.id: float(i.quantity) for i in s.query(InventoryItem).all()}
    assert got == {1: 1.0, 2: 2.0, 3: 3.0, 4: 40.0, 5: 50.0, 6: 60.0}


# ---------- checks ----------

def _ten_line_check(executor):
    order = _place(executor, [{"menu_id": 10 + (n % 3), "quantity": 1, "price": 2.0} for n in range(10)])
    res = executor.open_check(OpenCheck(order_id=order["id"]), "u1")
    assert isinstance(res, Ok)
    return order, res.value


def test_open_check_takes_every_line(executor, menu):
    order, check = _ten_line_check(executor)
    assert check["status"] == "Open"
    assert sorted(l["id"] for l in check["lines"]) == sorted(l["id"] for l in order["items"])
    assert check["balance"] == 20.0


def test_open_second_check_without_free_lines_is_invalid(executor, session_factory, menu):
    order, _ = _ten_line_check(executor)
    res = executor.open_check(OpenCheck(order_id=order["id"]), "u1")
    assert isinstance(res, Err) and isinstance(res.error, InvalidState)
    assert _count(session_factory, Check) == 1


def test_split_check_partitions_lines(executor, session_factory, menu):
    order, check = _ten_line_check(executor)
    before = {l["id"] for l in check["lines"]}
    assert {7, 9} <= before

    res = executor.split_check(SplitCheck(source_check_id=check["id"], line_ids=[7, 9]), "u1")
    assert isinstance(res, Ok)
    src, new = res.value["source"], res.value["new_check"]
    src_ids = {l["id"] for l in src["lines"]}
    new_ids = {l["id"] for l in new["lines"]}

    assert new_ids == {7, 9}
    assert src_ids.isdisjoint({7, 9})
    assert src_ids | new_ids == before
    assert len(src_ids) + len(new_ids) == len(before)
    assert new["status"] == "Open" and src["status"] == "Open"
    assert new["order_id"] == src["order_id"] == order["id"]


def test_split_with_foreign_line_moves_nothing(executor, session_factory, menu):
    _, check = _ten_line_check(executor)
    res = executor.split_check(SplitCheck(source_check_id=check["id"], line_ids=[7, 500]), "u1")
    assert isinstance(res, Err) and isinstance(res.error, NotFound)
    assert _count(session_factory, Check) == 1
    with session_factory() as s:
        assert s.get(OrderItem, 7).check_id == check["id"]


def test_split_every_line_rejected(executor, session_factory, menu):
    _, check = _ten_line_check(executor)
    res = executor.split_check(SplitCheck(source_check_id=check["id"], line_ids=list(range(1, 11))), "u1")
    assert isinstance(res, Err) and isinstance(res.error, ValidationFailed)
    assert _count(session_factory, Check) == 1


def test_check_lifecycle_open_closed_paid(executor, session_factory, menu):
    _, check = _ten_line_check(executor)

    short = executor.pay_check(check["id"], PayCheck(amount=5.0, method="Cash"), "u1")
    assert isinstance(short, Err) and isinstance(short.error, ValidationFailed)

    paid = executor.pay_check(check["id"], PayCheck(amount=20.0, method="GiftCard"), "u1")
    assert isinstance(paid, Ok)
    assert paid.value["status"] == "Closed"
    assert [p["amount"] for p in paid.value["payments"]] == [20.0]

    again = executor.pay_check(check["id"], PayCheck(amount=20.0, method="Cash"), "u1")
    assert isinstance(again, Err) and isinstance(again.error, InvalidState)

    split = executor.split_check(SplitCheck(source_check_id=check["id"], line_ids=[1]), "u1")
    assert isinstance(split, Err) and isinstance(split.error, InvalidState)

    settled = executor.settle_check(check["id"], SettleCheck(tip_amount=3.5), "u1")
    assert isinstance(settled, Ok)
    assert settled.value["status"] == "Paid"
    assert settled.value["tip_amount"] == 3.5

    with session_factory() as s:
        assert s.get(Check, check["id"]).status == CheckStatus.PAID
        assert s.query(Payment).filter(Payment.check_id == check["id"]).count() == 1


def test_settle_open_check_is_invalid(executor, menu):
    _, check = _ten_line_check(executor)
    res = executor.settle_check(check["id"], SettleCheck(tip_amount=1.0), "u1")
    assert isinstance(res, Err) and isinstance(res.error, InvalidState)


def test_check_of_another_user_is_not_found(executor, menu):
    _, check = _ten_line_check(executor)
    res = executor.pay_check(check["id"], PayCheck(amount=100.0, method="Card"), "u2")
    assert isinstance(res, Err) and isinstance(res.error, NotFound)


def test_non_finite_payment_and_tip_rejected(executor, session_factory, menu):
    _, check = _ten_line_check(executor)
    res = executor.run("pay_check", {"amount": float("inf"), "method": "Cash"}, "u1", check_id=check["id"])
    assert isinstance(res, Err) and isinstance(res.error, ValidationFailed)
    assert _count(session_factory, Payment) == 0

    assert isinstance(executor.pay_check(check["id"], PayCheck(amount=20.0, method="Cash"), "u1"), Ok)
    res = executor.run("settle_check", {"tip_amount": float("nan")}, "u1", check_id=check["id"])
    assert isinstance(res, Err) and isinstance(res.error, ValidationFailed)
    with session_factory() as s:
        assert s.get(Check, check["id"]).status == CheckStatus.CLOSED


# ---------- supplier orders ----------

def _supplier_order(executor, lines):
    res = executor.place_supplier_order(PlaceSupplierOrder.model_validate({"supplier": "Fresh Farms", "items": lines}), "u1")
    assert isinstance(res, Ok), res
    return res.value

def _move(executor, order_id, status):
    return executor.set_supplier_order_status(order_id, SupplierOrderStatusIn(order_status=status), "u1")


def test_receiving_books_every_line(executor, session_factory, stock):
    so = _supplier_order(executor, [{"inventory_id": 1, "quantity": 2.5}, {"inventory_id": 3, "quantity": 4}])
    assert isinstance(_move(executor, so["id"], "Ordered"), Ok)
    res = _move(executor, so["id"], "Received")
    assert isinstance(res, Ok) and res.value["order_status"] == "Received"
    with session_factory() as s:
        assert {i.id: float(i.quantity) for i in s.query(InventoryItem).all()} == {
            1: 12.5, 2: 10.0, 3: 14.0, 4: 10.0, 5: 10.0, 6: 10.0,
        }
        assert s.query(AuditLog).filter(AuditLog.entity == "supplier_order").count() == 3


def test_receiving_that_would_overflow_stock_changes_nothing(executor, session_factory, db, stock):
    db.get(InventoryItem, 2).quantity = MAX_QTY - 1
    db.commit()
    so = _supplier_order(executor, [{"inventory_id": 1, "quantity": 5}, {"inventory_id": 2, "quantity": 5}])
    assert isinstance(_move(executor, so["id"], "Ordered"), Ok)

    res = _move(executor, so["id"], "Received")
    assert isinstance(res, Err) and isinstance(res.error, ValidationFailed)
    with session_factory() as s:
        assert float(s.get(InventoryItem, 1).quantity) == 10.0
        assert s.get(SupplierOrder, so["id"]).status == SupplierOrderStatus.ORDERED


def test_supplier_order_transitions(executor, stock):
    so = _supplier_order(executor, [{"inventory_id": 1, "quantity": 1}])
    for status in ("Pending", "Received"):
        res = _move(executor, so["id"], status)
        assert isinstance(res, Err) and isinstance(res.error, InvalidState), status
    assert isinstance(_move(executor, so["id"], "Cancelled"), Ok)
    for status in ("Ordered", "Received", "Cancelled"):
        res = _move(executor, so["id"], status)
        assert isinstance(res, Err) and isinstance(res.error, InvalidState), status
    res = _move(executor, 999, "Ordered")
    assert isinstance(res, Err) and isinstance(res.error, NotFound)


def test_supplier_order_with_unknown_item_writes_nothing(executor, session_factory, stock):
    res = executor.run("place_supplier_order", {
        "supplier": "Fresh Farms",
        "items": [{"inventory_id": 1, "quantity": 1}, {"inventory_id": 42, "quantity": 1}],
    }, "u1")
    assert isinstance(res, Err) and isinstance(res.error, NotFound)
    assert "42" in res.error.message
    assert _count(session_factory, SupplierOrder) == 0


# ---------- reservations ----------

def _tables(db):
    small = DiningTable(restaurant_id=4, table_number=1, capacity=2)
    large = DiningTable(restaurant_id=4, table_number=2, capacity=8)
    db.add_all([small, large])
    db.commit()
    return small.id, large.id


def test_reservation_keeps_tables_two_hours_apart(executor, session_factory, db):
    _, large = _tables(db)

    def book(when, table_id=None, guests=4):
        return executor.create_reservation(CreateReservation.model_validate({
            "restaurant_id": 4, "reservation_time": when, "num_guests": guests, "table_id": table_id,
        }), "u1")

    assert isinstance(book("2026-12-24T18:00:00Z", large), Ok)
    clash = book("2026-12-24T19:59:00Z", large)
    assert isinstance(clash, Err) and isinstance(clash.error, InvalidState)
    assert isinstance(book("2026-12-24T20:00:00Z", large), Ok)
    assert isinstance(book("2026-12-24T16:00:00Z", large), Ok)

    loose = book("2026-12-24T17:00:00Z")
    assert isinstance(loose, Ok)
    res = executor.assign_table(loose.value["id"], AssignTable(table_id=large), "u1")
    assert isinstance(res, Err) and isinstance(res.error, InvalidState)
    with session_factory() as s:
        assert s.get(Reservation, loose.value["id"]).table_id is None
        assert s.query(Reservation).count() == 4


def test_assign_table_checks_seats_and_references(executor, db):
    small, large = _tables(db)
    r = executor.run("create_reservation", {
        "restaurant_id": 4, "reservation_time": "2026-12-24T18:00:00", "num_guests": 3,
    }, "u1")
    assert isinstance(r, Ok)
    rid = r.value["id"]

    too_small = executor.assign_table(rid, AssignTable(table_id=small), "u1")
    assert isinstance(too_small, Err) and isinstance(too_small.error, ValidationFailed)
    missing = executor.assign_table(rid, AssignTable(table_id=999), "u1")
    assert isinstance(missing, Err) and isinstance(missing.error, NotFound)
    gone = executor.run("assign_table", {"table_id": large}, "u1", reservation_id=999)
    assert isinstance(gone, Err) and isinstance(gone.error, NotFound)

    ok = executor.run("assign_table", {"table_id": large}, "u1", reservation_id=rid)
    assert isinstance(ok, Ok) and ok.value["table_id"] == large


def test_rounding_helpers():
    assert money(2.675) == 2.68
    assert cents("0.1") + cents("0.2") == Decimal("0.30")
    assert qty3(1.0005) == Decimal("1.001")
    assert str(cents(7)) == "7.00"
