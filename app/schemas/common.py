from pydantic import BaseModel, Field
from typing import Annotated, Optional

from app.services.billing import MAX_MONEY, MAX_QTY

# Finite, non-negative and small enough for the Numeric columns they land in
Money = Annotated[float, Field(strict=True, ge=0, le=float(MAX_MONEY), allow_inf_nan=False)]
Quantity = Annotated[float, Field(strict=True, ge=0, le=float(MAX_QTY), allow_inf_nan=False)]
PositiveQuantity = Annotated[float, Field(strict=True, gt=0, le=float(MAX_QTY), allow_inf_nan=False)]

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class RegisterIn(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=4)
    phone: Optional[str] = None
