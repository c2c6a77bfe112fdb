from datetime import date, time
from pydantic import BaseModel, Field, model_validator
from typing import Optional

from app.schemas.common import Money

class EmployeeIn(BaseModel):
    name: str = Field(min_length=1)
    role: Optional[str] = None
    email: Optional[str] = None

class ShiftIn(BaseModel):
    shift_date: date
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def _ends_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

class PayrollIn(BaseModel):
    pay_period: str = Field(min_length=1, max_length=20)
    gross_salary: Money
    net_salary: Money

    @model_validator(mode="after")
    def _net_within_gross(self):
        if self.net_salary > self.gross_salary:
            raise ValueError("net_salary must not exceed gross_salary")
        return self
