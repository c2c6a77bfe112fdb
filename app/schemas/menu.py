from pydantic import BaseModel, Field
from typing import Optional

from app.schemas.common import Money

class MenuItemUpdate(BaseModel):
    name: str = Field(min_length=1)
    price: Money
    description: Optional[str] = ""
    category: Optional[str] = ""
    available: bool = True

class MenuItemIn(MenuItemUpdate):
    restaurant_id: int = Field(strict=True)

class AvailabilityIn(BaseModel):
    available: bool = Field(strict=True)
