from collections import defaultdict
from datetime import date, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import extract, func, select

from app.deps import require_auth, get_gateway
from app.models.common import utcnow
from app.models.core import Order
from app.schemas.reports import SalesRange
from app.services.gateway import PersistenceGateway
from app.services.billing import cents, money

router = APIRouter(prefix="/reports", tags=["reports"])

# Raw parameterized SQL through the gateway; kept to constructs that both
# PostgreSQL and SQLite understand.
DAILY_SALES_SQL = """
    SELECT DATE(created_at) AS date, COUNT(*) AS orders_count, SUM(total_price) AS total_sales
    FROM orders
    WHERE (:start IS NULL OR created_at >= :start) AND (:end IS NULL OR created_at < :end)
    GROUP BY DATE(created_at)
    ORDER BY date DESC
    LIMIT :limit
"""

TOP_ITEMS_SQL = """
    SELECT m.name AS item_name, COUNT(*) AS order_count, SUM(oi.quantity) AS units_sold
    FROM order_items oi
    JOIN menu m ON oi.menu_id = m.id
    GROUP BY m.name
    ORDER BY order_count DESC, units_sold DESC
    LIMIT :limit
"""

AVG_ORDER_SQL = "SELECT AVG(total_price) AS avg_order_value, COUNT(*) AS orders_count FROM orders"

REVENUE_BY_RESTAURANT_SQL = """
    SELECT r.id AS restaurant_id, r.name AS restaurant, COUNT(o.id) AS orders_count, SUM(o.total_price) AS revenue
    FROM orders o
    JOIN restaurants r ON o.restaurant_id = r.id
    GROUP BY r.id, r.name
    ORDER BY revenue DESC, r.id ASC
"""

# tips come from checks; counted separately so the join does not multiply orders
EMPLOYEE_PERFORMANCE_SQL = """
    SELECT e.id AS id, e.name AS name,
           (SELECT COUNT(*) FROM orders o WHERE o.assigned_staff_id = e.id) AS orders_handled,
           (SELECT COALESCE(SUM(c.tip_amount), 0)
              FROM checks c JOIN orders o ON o.id = c.order_id
             WHERE o.assigned_staff_id = e.id) AS total_tips
    FROM employees e
    ORDER BY orders_handled DESC, e.id ASC
"""


def _sales_rows(rows) -> list[dict]:
    return [
        {"date": str(r["date"]), "orders_count": int(r["orders_count"]), "total_sales": money(r["total_sales"] or 0)}
        for r in rows
    ]


@router.get("/sales/daily")
def daily_sales(start: date | None = None, end: date | None = None, limit: int = 30,
                gw: PersistenceGateway = Depends(get_gateway), sub: str = Depends(require_auth)):
    if start and end and end < start:
        raise HTTPException(400, detail="end must not be before start")
    rows = gw.execute(DAILY_SALES_SQL, {
        "start": start.isoformat() if start else None,
        "end": (end + timedelta(days=1)).isoformat() if end else None,  # inclusive end day
        "limit": max(1, min(limit, 366)),
    })
    return {"daily_sales": _sales_rows(rows)}

@router.post("/sales/custom")
def custom_sales(body: SalesRange, gw: PersistenceGateway = Depends(get_gateway), sub: str = Depends(require_auth)):
    """body: {start_date, end_date}, both days inclusive."""
    rows = gw.execute(DAILY_SALES_SQL, {
        "start": body.start_date.isoformat(),
        "end": (body.end_date + timedelta(days=1)).isoformat(),
        "limit": (body.end_date - body.start_date).days + 1,
    })
    return {"custom_sales": _sales_rows(rows)}

@router.get("/revenue/weekly")
def weekly_revenue(weeks: int = Query(8, ge=1, le=104),
                   gw: PersistenceGateway = Depends(get_gateway), sub: str = Depends(require_auth)):
    """Revenue per ISO week (keyed by its Monday), newest first."""
    since = utcnow().date() - timedelta(weeks=weeks)
    rows = gw.execute(DAILY_SALES_SQL, {"start": since.isoformat(), "end": None, "limit": weeks * 7 + 7})
    buckets: dict[date, list] = defaultdict(lambda: [0, cents(0)])
    for r in rows:
        day = r["date"] if isinstance(r["date"], date) else date.fromisoformat(str(r["date"]))
        monday = day - timedelta(days=day.weekday())
        buckets[monday][0] += int(r["orders_count"])
        buckets[monday][1] += cents(r["total_sales"] or 0)
    out = [
        {"week": monday.isoformat(), "orders_count": n, "revenue": money(total)}
        for monday, (n, total) in sorted(buckets.items(), reverse=True)
    ]
    return {"weekly_revenue": out[:weeks]}

@router.get("/revenue/by-restaurant")
def revenue_by_restaurant(gw: PersistenceGateway = Depends(get_gateway), sub: str = Depends(require_auth)):
    rows = gw.execute(REVENUE_BY_RESTAURANT_SQL)
    return {"revenue_by_restaurant": [
        {"restaurant_id": r["restaurant_id"], "restaurant": r["restaurant"],
         "orders_count": int(r["orders_count"]), "revenue": money(r["revenue"] or 0)}
        for r in rows
    ]}

@router.get("/trends/hourly")
def hourly_trends(gw: PersistenceGateway = Depends(get_gateway), sub: str = Depends(require_auth)):
    # EXTRACT has no SQLite spelling; the Core construct compiles per dialect
    hour = extract("hour", Order.created_at).label("hour")
    stmt = select(hour, func.count(Order.id).label("orders")).group_by(hour).order_by(hour)
    return {"hourly_trends": [{"hour": int(r["hour"]), "orders": int(r["orders"])} for r in gw.execute(stmt)]}

@router.get("/employees/performance")
def employee_performance(gw: PersistenceGateway = Depends(get_gateway), sub: str = Depends(require_auth)):
    rows = gw.execute(EMPLOYEE_PERFORMANCE_SQL)
    return {"performance": [
        {"id": r["id"], "name": r["name"], "orders_handled": int(r["orders_handled"]),
         "total_tips": money(r["total_tips"] or 0)}
        for r in rows
    ]}

@router.get("/top-items")
def top_items(limit: int = 10, gw: PersistenceGateway = Depends(get_gateway), sub: str = Depends(require_auth)):
    rows = gw.execute(TOP_ITEMS_SQL, {"limit": max(1, min(limit, 100))})
    return {"top_items": [
        {"item_name": r["item_name"], "order_count": int(r["order_count"]), "units_sold": int(r["units_sold"] or 0)}
        for r in rows
    ]}

@router.get("/orders/average-value")
def average_order_value(gw: PersistenceGateway = Depends(get_gateway), sub: str = Depends(require_auth)):
    row = gw.execute(AVG_ORDER_SQL)[0]
    avg = row["avg_order_value"]
    return {"avg_order_value": money(avg) if avg is not None else None, "orders_count": int(row["orders_count"])}
