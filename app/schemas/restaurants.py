from pydantic import BaseModel, Field
from typing import Optional

from app.schemas.common import Money

class RestaurantIn(BaseModel):
    name: str = Field(min_length=1)
    address: Optional[str] = None
    phone: Optional[str] = None
    description: Optional[str] = None

class CategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)

class ModifierIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    price: Money = 0.0
