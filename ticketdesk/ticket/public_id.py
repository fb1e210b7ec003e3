# ticketdesk/ticket/public_id.py
import re
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from ticketdesk.core.config import Settings
from ticketdesk.ticket.models import Ticket

_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class PublicIdConfig:
    prefix: str = "NET"
    separator: str = "-"
    start_number: int = 1001

    @classmethod
    def from_settings(cls, settings: Settings) -> "PublicIdConfig":
        return cls(
            prefix=settings.PUBLIC_ID_PREFIX,
            separator=settings.PUBLIC_ID_SEPARATOR,
            start_number=settings.PUBLIC_ID_START_NUMBER,
        )

    @property
    def stem(self) -> str:
        return f"{self.prefix}{self.separator}"


class PublicIdGenerator:
    """Derives the next human-facing ticket label, e.g. ``NET-1042``.

    The read and the later insert are separate round trips, so two concurrent
    inserts can be handed the same label. Nothing here prevents that.
    """

    def __init__(self, db: Session, config: PublicIdConfig):
        self.db = db
        self.config = config

    def current_max(self) -> int | None:
        stem = self.config.stem
        stmt = select(Ticket.public_ticket_id).where(
            Ticket.public_ticket_id.startswith(stem, autoescape=True)
        )
        numbers = [
            int(suffix)
            for suffix in (value[len(stem):] for value in self.db.scalars(stmt))
            if _DIGITS.fullmatch(suffix)
        ]
        return max(numbers, default=None)

    def next(self) -> str:
        current = self.current_max()
        number = self.config.start_number if current is None else current + 1
        return f"{self.config.stem}{number}"
