# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    OrderStatus, OrderPriority, PayMethod, CheckStatus, SupplierOrderStatus,

    # Identity & staff
    User, Notification, Employee, Shift, PayrollEntry,

    # Restaurants & menu
    Restaurant, MenuCategory, MenuItem, MenuModifier,

    # Dining
    DiningTable, Reservation, WaitlistEntry,

    # Orders / checks / payments
    Order, OrderItem, Check, Payment, Review,

    # Inventory
    InventoryItem, SupplierOrder, SupplierOrderLine,

    # Audit
    AuditLog,
)

__all__ = [
    "OrderStatus", "OrderPriority", "PayMethod", "CheckStatus", "SupplierOrderStatus",
    "User", "Notification", "Employee", "Shift", "PayrollEntry",
    "Restaurant", "MenuCategory", "MenuItem", "MenuModifier",
    "DiningTable", "Reservation", "WaitlistEntry",
    "Order", "OrderItem", "Check", "Payment", "Review",
    "InventoryItem", "SupplierOrder", "SupplierOrderLine",
    "AuditLog",
]
