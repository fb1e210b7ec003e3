# ticketdesk/ticket/models.py
from sqlalchemy import Column, DateTime, Integer, String, Text
from ticketdesk.core.database import Base


class Ticket(Base):
    __tablename__ = "tickets"

    ticket_id = Column(Integer, primary_key=True, index=True)
    public_ticket_id = Column(String(50), index=True)
    title = Column(String(200))
    description = Column(Text)
    category = Column(String(100))
    department = Column(String(100))
    assignee = Column(String(100))
    created_by = Column(String(100))
    status = Column(String(50), index=True)
    priority = Column(String(50))
    response_due = Column(DateTime)
    due_date = Column(DateTime)
    # naive UTC
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<Ticket {self.ticket_id}: {self.public_ticket_id}>"
