# ticketdesk/ticket/services.py
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ticketdesk.core.timeutil import utcnow
from ticketdesk.ticket.models import Ticket
from ticketdesk.ticket.public_id import PublicIdGenerator
from ticketdesk.ticket.schemas import BatchResult, TicketIn, TicketOut

logger = logging.getLogger(__name__)


def list_tickets(db: Session) -> list[Ticket]:
    return list(db.scalars(select(Ticket).order_by(Ticket.ticket_id)))


def insert_ticket(db: Session, payload: TicketIn, generator: PublicIdGenerator) -> Ticket:
    data = payload.model_dump(exclude={"ticket_id"})
    if not (data["public_ticket_id"] or "").strip():
        data["public_ticket_id"] = generator.next()

    now = utcnow()
    data["created_at"] = data["created_at"] or now
    data["updated_at"] = data["updated_at"] or now

    db_ticket = Ticket(**data)
    db.add(db_ticket)
    db.commit()
    db.refresh(db_ticket)
    logger.info("Ticket inserted", extra={"ticket_id": db_ticket.ticket_id, "public_ticket_id": db_ticket.public_ticket_id})
    return db_ticket


def update_ticket(db: Session, payload: TicketIn) -> TicketOut:
    """Overwrite every mutable field of one row. A missing id is a silent no-op."""
    values = payload.model_dump(exclude={"ticket_id", "created_at"})
    values["updated_at"] = values["updated_at"] or utcnow()

    result = db.execute(
        update(Ticket).where(Ticket.ticket_id == payload.ticket_id).values(**values)
    )
    db.commit()
    if result.rowcount == 0:
        logger.warning("Update matched no ticket", extra={"ticket_id": payload.ticket_id})
    return TicketOut.model_validate({**payload.model_dump(), "updated_at": values["updated_at"]})


def delete_ticket(db: Session, ticket_id: int) -> int:
    result = db.execute(delete(Ticket).where(Ticket.ticket_id == ticket_id))
    db.commit()
    if result.rowcount == 0:
        logger.warning("Delete matched no ticket", extra={"ticket_id": ticket_id})
    return result.rowcount


def apply_batch(
    db: Session,
    generator: PublicIdGenerator,
    changed: list[TicketIn] | None = None,
    added: list[TicketIn] | None = None,
    deleted: list[TicketIn] | None = None,
) -> BatchResult:
    """Changed, then added, then deleted. Each item commits on its own."""
    result = BatchResult()
    for item in changed or []:
        result.changed.append(update_ticket(db, item))
    for item in added or []:
        result.added.append(TicketOut.model_validate(insert_ticket(db, item, generator)))
    for item in deleted or []:
        delete_ticket(db, item.ticket_id)
        result.deleted.append(item.ticket_id)
    return result
