from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Link(BaseModel):
    id: str
    short_id: str
    secret_key: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LinkRead(BaseModel):
    short_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LinkCreated(LinkRead):
    secret_key: str
    send_url: str
    view_url: str
