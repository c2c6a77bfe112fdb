from pydantic import BaseModel, Field, AliasChoices, field_validator
from typing import Any, Optional, Literal

from app.schemas.common import Money
from app.services.billing import MAX_MONEY, lines_total

OrderStatusLiteral = Literal["Pending", "Preparing", "Ready", "Served", "Completed"]
OrderPriorityLiteral = Literal["Low", "Medium", "High", "Urgent"]
PayMethodLiteral = Literal["Cash", "Card", "GiftCard", "LoyaltyPoints"]

class OrderLineIn(BaseModel):
    menu_id: int = Field(strict=True)
    quantity: int = Field(strict=True, gt=0, le=10_000)
    price: Money

class PaymentIn(BaseModel):
    amount: Money
    method: PayMethodLiteral

class ReplaceOrderItems(BaseModel):
    items: list[OrderLineIn] = Field(min_length=1, validation_alias=AliasChoices("items", "lines"))

    @field_validator("items")
    @classmethod
    def _total_fits(cls, v: list[OrderLineIn]) -> list[OrderLineIn]:
        if lines_total(v) > MAX_MONEY:
            raise ValueError("order total is too large")
        return v

class PlaceOrder(ReplaceOrderItems):
    restaurant_id: int = Field(strict=True, validation_alias=AliasChoices("restaurant_id", "restaurant"))
    payment: Optional[PaymentIn] = None

class OrderStatusIn(BaseModel):
    status: OrderStatusLiteral

class OrderPriorityIn(BaseModel):
    priority_level: OrderPriorityLiteral

class AssignIn(BaseModel):
    staff_id: int = Field(strict=True, gt=0, validation_alias=AliasChoices("staff_id", "chef_id"))

class ModifiersIn(BaseModel):
    modifiers: list[Any] | dict[str, Any]

class ReviewIn(BaseModel):
    rating: int = Field(strict=True, ge=1, le=5)
    comment: Optional[str] = None

    @field_validator("comment")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v
