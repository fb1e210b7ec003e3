# ticketdesk/ticket/schemas.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel, to_pascal

from ticketdesk.core.timeutil import to_naive_utc


class TicketBase(BaseModel):
    # Wire names are the grid's PascalCase column names (TicketId, PublicTicketId, ...)
    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        from_attributes=True,
    )

    public_ticket_id: str | None = None
    title: str | None = None
    description: str | None = None
    category: str | None = None
    department: str | None = None
    assignee: str | None = None
    created_by: str | None = None
    status: str | None = None
    priority: str | None = None
    response_due: datetime | None = None
    due_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("response_due", "due_date", "created_at", "updated_at")
    @classmethod
    def _naive_utc(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)


class TicketIn(TicketBase):
    ticket_id: int = 0


class TicketOut(TicketBase):
    ticket_id: int


class CrudRequest(BaseModel):
    """Body the grid's UrlAdaptor posts to insert/update/remove/batch."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    value: TicketIn | None = None
    key: Any = None
    key_column: str | None = None
    action: str | None = None
    changed: list[TicketIn] | None = None
    added: list[TicketIn] | None = None
    deleted: list[TicketIn] | None = None


class BatchResult(BaseModel):
    status: str = "ok"
    changed: list[TicketOut] = []
    added: list[TicketOut] = []
    deleted: list[int] = []
