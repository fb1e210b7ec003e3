# ticketdesk/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticketdesk.core.config import get_settings
from ticketdesk.core.database import init_db
from ticketdesk.core.exceptions import register_exception_handlers
from ticketdesk.core.logging import log_requests, setup_logging
from ticketdesk.ticket.routes import router as ticket_router

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

init_db()

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESC,
    version=settings.APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(log_requests)

register_exception_handlers(app)

# Routers
app.include_router(ticket_router, prefix=settings.API_PREFIX)

logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} ready")


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}
