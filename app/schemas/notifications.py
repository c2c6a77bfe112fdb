from pydantic import BaseModel, Field

class NotificationIn(BaseModel):
    user_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=160)
    message: str = Field(min_length=1)
