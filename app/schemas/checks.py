from pydantic import BaseModel, Field, field_validator

from app.schemas.common import Money
from app.schemas.orders import PayMethodLiteral

class OpenCheck(BaseModel):
    order_id: int = Field(strict=True)

class SplitCheckIn(BaseModel):
    line_ids: list[int] = Field(min_length=1)

    @field_validator("line_ids")
    @classmethod
    def _unique(cls, v: list[int]) -> list[int]:
        if len(set(v)) != len(v):
            raise ValueError("line_ids must not repeat")
        return v

class SplitCheck(SplitCheckIn):
    source_check_id: int = Field(strict=True)

class PayCheck(BaseModel):
    amount: Money
    method: PayMethodLiteral

class SettleCheck(BaseModel):
    tip_amount: Money = 0.0
