"""Client error log schemas."""

from datetime import datetime

from pydantic import BaseModel


class ClientErrorCreate(BaseModel):
    """Error reported by a client."""

    error_type: str
    error_message: str
    user_id: str | None = None
    error_stack: str | None = None
    component: str | None = None
    url: str | None = None
    user_agent: str | None = None


class ClientError(ClientErrorCreate):
    """Stored client error."""

    id: str
    resolved: bool = False
    created_at: datetime | None = None
