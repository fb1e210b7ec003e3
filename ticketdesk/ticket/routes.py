# ticketdesk/ticket/routes.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ticketdesk.core.config import Settings, get_settings
from ticketdesk.core.database import get_db
from ticketdesk.core.exceptions import InvalidPayloadError
from ticketdesk.core.query import DataManagerRequest, QueryPipeline
from ticketdesk.ticket import services as ticket_service
from ticketdesk.ticket.public_id import PublicIdConfig, PublicIdGenerator
from ticketdesk.ticket.schemas import BatchResult, CrudRequest, TicketOut

router = APIRouter(prefix="/tickets", tags=["Tickets"])


def get_public_id_generator(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> PublicIdGenerator:
    return PublicIdGenerator(db, PublicIdConfig.from_settings(settings))


def get_query_pipeline(settings: Settings = Depends(get_settings)) -> QueryPipeline:
    return QueryPipeline(TicketOut, first_operator_governs=settings.FILTER_FIRST_OPERATOR_GOVERNS)


# The grid's UrlAdaptor reads with POST
@router.post("")
def list_all(
    dm: DataManagerRequest,
    db: Session = Depends(get_db),
    pipeline: QueryPipeline = Depends(get_query_pipeline),
):
    pipeline.check(dm)
    items = [TicketOut.model_validate(t) for t in ticket_service.list_tickets(db)]
    return pipeline.run(items, dm)


@router.get("/ping")
def ping():
    return {"ok": True, "time": datetime.now(timezone.utc)}


@router.post("/insert", response_model=TicketOut)
def insert(
    args: CrudRequest,
    db: Session = Depends(get_db),
    generator: PublicIdGenerator = Depends(get_public_id_generator),
):
    if args.value is None:
        raise InvalidPayloadError()
    return ticket_service.insert_ticket(db, args.value, generator)


@router.post("/update", response_model=TicketOut)
def update(args: CrudRequest, db: Session = Depends(get_db)):
    if args.value is None:
        raise InvalidPayloadError()
    if args.value.ticket_id <= 0:
        raise InvalidPayloadError("TicketId is required for update.")
    return ticket_service.update_ticket(db, args.value)


# UrlAdaptor sends { key: <id>, keyColumn: "TicketId", action: "remove" }
@router.post("/remove")
def remove(args: CrudRequest, db: Session = Depends(get_db)):
    if args.key is None:
        raise InvalidPayloadError("Key is required.")
    try:
        ticket_id = int(str(args.key).strip())
    except ValueError:
        raise InvalidPayloadError("Invalid key format.")

    ticket_service.delete_ticket(db, ticket_id)
    return {"TicketId": ticket_id}


@router.post("/batch", response_model=BatchResult)
def batch(
    args: CrudRequest,
    db: Session = Depends(get_db),
    generator: PublicIdGenerator = Depends(get_public_id_generator),
):
    return ticket_service.apply_batch(
        db,
        generator,
        changed=args.changed,
        added=args.added,
        deleted=args.deleted,
    )
