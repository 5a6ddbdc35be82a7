"""
HotelOps application entry point
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from hotelops import __version__
from hotelops.config import settings
from hotelops.database import init_db
from hotelops.routers import (
    auth, facilities, rooms, bookings, ota_orders, housekeeping, inventory,
    webhooks, guests, expenses, hr, reports, bank_accounts
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and wire event handlers to outbound webhooks"""
    init_db()

    from hotelops.services.event_handlers import register_event_handlers
    register_event_handlers()
    logger.info(f"{settings.APP_NAME} {__version__} started")

    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Hotel property management: bookings, OTA orders, housekeeping, inventory and staff",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(facilities.router)
app.include_router(rooms.router)
app.include_router(bookings.router)
app.include_router(ota_orders.router)
app.include_router(housekeeping.router)
app.include_router(inventory.router)
app.include_router(webhooks.router)
app.include_router(guests.router)
app.include_router(expenses.router)
app.include_router(hr.router)
app.include_router(reports.router)
app.include_router(bank_accounts.router)


@app.get("/")
def root():
    return {
        "name": settings.APP_NAME,
        "version": __version__,
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}
