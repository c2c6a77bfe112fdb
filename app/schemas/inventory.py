from pydantic import BaseModel, Field, AliasChoices, field_validator
from typing import Literal, Optional

from app.schemas.common import Money, Quantity, PositiveQuantity

SupplierOrderStatusLiteral = Literal["Pending", "Ordered", "Received", "Cancelled"]

class InventoryItemIn(BaseModel):
    name: str = Field(min_length=1)
    quantity: Quantity
    unit: str = Field(min_length=1)
    low_stock_threshold: Quantity = 0

class InventoryQuantityIn(BaseModel):
    id: int = Field(strict=True)
    quantity: Quantity

class BulkInventoryUpdate(BaseModel):
    items: list[InventoryQuantityIn] = Field(min_length=1)

    @field_validator("items")
    @classmethod
    def _no_dupes(cls, v: list[InventoryQuantityIn]) -> list[InventoryQuantityIn]:
        ids = [i.id for i in v]
        if len(set(ids)) != len(ids):
            raise ValueError("duplicate inventory id in batch")
        return v

# ---------- supplier orders ----------

class SupplierOrderLineIn(BaseModel):
    inventory_id: int = Field(strict=True)
    quantity: PositiveQuantity
    unit_cost: Money = 0.0

class PlaceSupplierOrder(BaseModel):
    supplier: str = Field(min_length=1, validation_alias=AliasChoices("supplier", "supplier_id"))
    note: Optional[str] = None
    items: list[SupplierOrderLineIn] = Field(min_length=1)

    @field_validator("supplier", mode="before")
    @classmethod
    def _supplier_str(cls, v):
        # older clients send a numeric supplier_id
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v

    @field_validator("items")
    @classmethod
    def _one_line_per_item(cls, v: list[SupplierOrderLineIn]) -> list[SupplierOrderLineIn]:
        ids = [l.inventory_id for l in v]
        if len(set(ids)) != len(ids):
            raise ValueError("duplicate inventory id in supplier order")
        return v

class SupplierOrderStatusIn(BaseModel):
    order_status: SupplierOrderStatusLiteral = Field(validation_alias=AliasChoices("order_status", "status"))
