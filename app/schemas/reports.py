from datetime import date
from pydantic import BaseModel, model_validator

class SalesRange(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _ordered(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self
