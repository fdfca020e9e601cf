from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class Message(BaseModel):
    id: str
    link_id: str
    text: str
    is_safe: Optional[bool] = None
    moderation_reason: Optional[str] = None
    created_at: datetime
    is_anonymous: bool = True

    model_config = ConfigDict(from_attributes=True)


class MessageCreate(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Please type a message before sending.")
        return value


class SummaryRead(BaseModel):
    summary: str


class MessageRead(BaseModel):
    id: str
    text: str
    is_safe: Optional[bool] = None
    moderation_reason: Optional[str] = None
    created_at: datetime
    is_anonymous: bool

    model_config = ConfigDict(from_attributes=True)
