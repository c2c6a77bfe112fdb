from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional

class TableIn(BaseModel):
    restaurant_id: int = Field(strict=True)
    table_number: int = Field(strict=True, gt=0)
    capacity: int = Field(strict=True, gt=0, le=100)

class CreateReservation(BaseModel):
    restaurant_id: int = Field(strict=True)
    reservation_time: datetime
    num_guests: int = Field(strict=True, gt=0, le=100)
    table_id: Optional[int] = Field(default=None, strict=True)
    notes: Optional[str] = None

class AssignTable(BaseModel):
    table_id: int = Field(strict=True)

class WaitlistIn(BaseModel):
    restaurant_id: int = Field(strict=True)
    num_guests: int = Field(strict=True, gt=0, le=100)
    notes: Optional[str] = None
