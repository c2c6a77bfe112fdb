from sqlalchemy import (
    String, ForeignKey, Boolean, Numeric, Text, Integer, DateTime, Date, Time,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from enum import Enum as PyEnum
from datetime import datetime, date, time
from app.db import Base
from app.models.common import IdMixin, UuidMixin, TSMMixin, enum_col, utcnow

# ── Enums ───────────────────────────────────────────────────────────────────
class OrderStatus(PyEnum):
    PENDING = "Pending"
    PREPARING = "Preparing"
    READY = "Ready"
    SERVED = "Served"
    COMPLETED = "Completed"

class OrderPriority(PyEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"

class PayMethod(PyEnum):
    CASH = "Cash"
    CARD = "Card"
    GIFT_CARD = "GiftCard"
    LOYALTY_POINTS = "LoyaltyPoints"

class CheckStatus(PyEnum):
    OPEN = "Open"
    CLOSED = "Closed"   # payment recorded, tip may be outstanding
    PAID = "Paid"       # terminal

class SupplierOrderStatus(PyEnum):
    PENDING = "Pending"
    ORDERED = "Ordered"
    RECEIVED = "Received"    # stock booked; terminal
    CANCELLED = "Cancelled"  # terminal

# ── Identity ────────────────────────────────────────────────────────────────
class User(Base, UuidMixin, TSMMixin):
    __tablename__ = "users"
    name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str] = mapped_column(String(160), unique=True)
    phone: Mapped[str | None] = mapped_column(String(20))
    pass_hash: Mapped[str] = mapped_column(String(200))
    active: Mapped[bool] = mapped_column(Boolean, default=True)

class Notification(Base, IdMixin, TSMMixin):
    __tablename__ = "notifications"
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    title: Mapped[str] = mapped_column(String(160))
    message: Mapped[str] = mapped_column(Text)
    read: Mapped[bool] = mapped_column(Boolean, default=False)

# ── Restaurants ─────────────────────────────────────────────────────────────
class Restaurant(Base, IdMixin, TSMMixin):
    __tablename__ = "restaurants"
    name: Mapped[str] = mapped_column(String(160))
    address: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(String(20))
    description: Mapped[str | None] = mapped_column(Text)

class MenuCategory(Base, IdMixin, TSMMixin):
    __tablename__ = "menu_categories"
    restaurant_id: Mapped[int] = mapped_column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120))
    __table_args__ = (
        UniqueConstraint("restaurant_id", "name", name="uq_menu_category_name"),
    )

# ── Staff ───────────────────────────────────────────────────────────────────
class Employee(Base, IdMixin, TSMMixin):
    __tablename__ = "employees"
    name: Mapped[str] = mapped_column(String(160))
    role: Mapped[str | None] = mapped_column(String(60))   # e.g. Chef, Waiter, Manager
    email: Mapped[str | None] = mapped_column(String(160))

class Shift(Base, IdMixin, TSMMixin):
    __tablename__ = "shifts"
    employee_id: Mapped[int] = mapped_column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), index=True)
    shift_date: Mapped[date] = mapped_column(Date)
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)

class PayrollEntry(Base, IdMixin, TSMMixin):
    __tablename__ = "payroll"
    employee_id: Mapped[int] = mapped_column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), index=True)
    pay_period: Mapped[str] = mapped_column(String(20))  # e.g. 2026-10
    gross_salary: Mapped[float] = mapped_column(Numeric(10, 2))
    net_salary: Mapped[float] = mapped_column(Numeric(10, 2))
    __table_args__ = (
        UniqueConstraint("employee_id", "pay_period", name="uq_payroll_employee_period"),
        CheckConstraint("net_salary <= gross_salary", name="ck_payroll_net_le_gross"),
    )

# ── Menu ────────────────────────────────────────────────────────────────────
class MenuItem(Base, IdMixin, TSMMixin):
    __tablename__ = "menu"
    restaurant_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(160))
    price: Mapped[float] = mapped_column(Numeric(10, 2))
    description: Mapped[str | None] = mapped_column(Text, default="")
    category: Mapped[str | None] = mapped_column(String(120), default="")
    available: Mapped[bool] = mapped_column(Boolean, default=True)

class MenuModifier(Base, IdMixin, TSMMixin):
    __tablename__ = "menu_modifiers"
    menu_id: Mapped[int] = mapped_column(Integer, ForeignKey("menu.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120))
    price: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_menu_modifier_price_nonneg"),
    )

# ── Dining ──────────────────────────────────────────────────────────────────
class DiningTable(Base, IdMixin, TSMMixin):
    __tablename__ = "dining_tables"
    restaurant_id: Mapped[int] = mapped_column(Integer, index=True)
    table_number: Mapped[int] = mapped_column(Integer)
    capacity: Mapped[int] = mapped_column(Integer)
    __table_args__ = (
        UniqueConstraint("restaurant_id", "table_number", name="uq_dining_table_number"),
        CheckConstraint("capacity > 0", name="ck_dining_table_capacity_pos"),
    )

class Reservation(Base, IdMixin, TSMMixin):
    __tablename__ = "reservations"
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    restaurant_id: Mapped[int] = mapped_column(Integer)
    reservation_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)  # stored as UTC
    num_guests: Mapped[int] = mapped_column(Integer)
    table_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("dining_tables.id", ondelete="SET NULL"))
    notes: Mapped[str | None] = mapped_column(Text)
    __table_args__ = (
        CheckConstraint("num_guests > 0", name="ck_reservation_guests_pos"),
    )

class WaitlistEntry(Base, IdMixin, TSMMixin):
    __tablename__ = "waitlist"
    user_id: Mapped[str] = mapped_column(String(36))
    restaurant_id: Mapped[int] = mapped_column(Integer)
    num_guests: Mapped[int] = mapped_column(Integer)
    notes: Mapped[str | None] = mapped_column(Text)

# ── Orders / checks / payments ──────────────────────────────────────────────
class Order(Base, IdMixin, TSMMixin):
    __tablename__ = "orders"
    user_id: Mapped[str] = mapped_column(String(36), index=True)  # token subject
    restaurant_id: Mapped[int] = mapped_column(Integer)
    total_price: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    status: Mapped[OrderStatus] = mapped_column(enum_col(OrderStatus), default=OrderStatus.PENDING)
    priority: Mapped[OrderPriority] = mapped_column(enum_col(OrderPriority), default=OrderPriority.MEDIUM)
    assigned_staff_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("employees.id"))
    modifiers: Mapped[str | None] = mapped_column(Text)  # JSON text

class Check(Base, IdMixin, TSMMixin):
    __tablename__ = "checks"
    order_id: Mapped[int] = mapped_column(Integer, ForeignKey("orders.id", ondelete="CASCADE"))
    status: Mapped[CheckStatus] = mapped_column(enum_col(CheckStatus), default=CheckStatus.OPEN)
    tip_amount: Mapped[float | None] = mapped_column(Numeric(10, 2))
    __table_args__ = (
        CheckConstraint("tip_amount IS NULL OR tip_amount >= 0", name="ck_check_tip_nonneg"),
    )

class OrderItem(Base, IdMixin, TSMMixin):
    __tablename__ = "order_items"
    order_id: Mapped[int] = mapped_column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    menu_id: Mapped[int] = mapped_column(Integer, ForeignKey("menu.id"))
    quantity: Mapped[int] = mapped_column(Integer)
    price: Mapped[float] = mapped_column(Numeric(10, 2))
    check_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("checks.id", ondelete="SET NULL"), index=True)
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_qty_pos"),
        CheckConstraint("price >= 0", name="ck_order_item_price_nonneg"),
    )

class Payment(Base, IdMixin, TSMMixin):
    __tablename__ = "payments"
    order_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("orders.id", ondelete="CASCADE"))
    check_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("checks.id", ondelete="CASCADE"))
    amount: Mapped[float] = mapped_column(Numeric(10, 2))
    method: Mapped[PayMethod] = mapped_column(enum_col(PayMethod))
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payment_amount_nonneg"),
    )

class Review(Base, IdMixin, TSMMixin):
    __tablename__ = "reviews"
    user_id: Mapped[str] = mapped_column(String(36))
    order_id: Mapped[int] = mapped_column(Integer, ForeignKey("orders.id", ondelete="CASCADE"))
    rating: Mapped[int] = mapped_column(Integer)
    comment: Mapped[str | None] = mapped_column(Text)
    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating_range"),
    )

# ── Inventory ───────────────────────────────────────────────────────────────
class InventoryItem(Base, IdMixin, TSMMixin):
    __tablename__ = "inventory"
    name: Mapped[str] = mapped_column(String(160))
    quantity: Mapped[float] = mapped_column(Numeric(12, 3), default=0)
    unit: Mapped[str] = mapped_column(String(20))  # e.g. g, kg, ml, l, pcs
    low_stock_threshold: Mapped[float] = mapped_column(Numeric(12, 3), default=0)
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_qty_nonneg"),
    )

class SupplierOrder(Base, IdMixin, TSMMixin):
    __tablename__ = "supplier_orders"
    supplier: Mapped[str] = mapped_column(String(160))
    note: Mapped[str | None] = mapped_column(Text)
    status: Mapped[SupplierOrderStatus] = mapped_column(enum_col(SupplierOrderStatus), default=SupplierOrderStatus.PENDING)
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

class SupplierOrderLine(Base, IdMixin, TSMMixin):
    __tablename__ = "supplier_order_lines"
    supplier_order_id: Mapped[int] = mapped_column(Integer, ForeignKey("supplier_orders.id", ondelete="CASCADE"), index=True)
    inventory_id: Mapped[int] = mapped_column(Integer, ForeignKey("inventory.id"))
    quantity: Mapped[float] = mapped_column(Numeric(12, 3))
    unit_cost: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_supplier_line_qty_pos"),
        CheckConstraint("unit_cost >= 0", name="ck_supplier_line_cost_nonneg"),
    )

# ── Audit ───────────────────────────────────────────────────────────────────
class AuditLog(Base, IdMixin, TSMMixin):
    __tablename__ = "audit_log"
    actor_user_id: Mapped[str] = mapped_column(String(36))
    entity: Mapped[str] = mapped_column(String(60))
    entity_id: Mapped[str] = mapped_column(String(36))
    action: Mapped[str] = mapped_column(String(60))
    reason: Mapped[str | None] = mapped_column(Text)
    before: Mapped[str | None] = mapped_column(Text)
    after: Mapped[str | None] = mapped_column(Text)
