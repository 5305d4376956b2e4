import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .api.errors import register_exception_handlers
from .api.routes import slots, cart, bookings, misc
from .db.session import Base, engine
from .config import get_settings
from .workers.scheduler import get_scheduler

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="MentorHub API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(slots.router, prefix="/api/v1")
app.include_router(cart.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(misc.router, prefix="/api/v1")

scheduler = None


@app.on_event("startup")
async def startup_event() -> None:
    global scheduler
    Base.metadata.create_all(bind=engine)
    if settings.scheduler_enabled:
        scheduler = get_scheduler()
        scheduler.start()
        logger.info("Scheduler started")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
