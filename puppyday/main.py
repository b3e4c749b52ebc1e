import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Import all models to ensure they're registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS
from .database import Base, SessionLocal, engine
from .domain.appointments.router import customer_router as customer_appointments_router
from .domain.appointments.router import router as appointments_router
from .domain.booking.router import admin_router as admin_booking_router
from .domain.booking.router import router as booking_router
from .domain.catalog.router import router as catalog_router
from .domain.campaigns.router import router as campaigns_router
from .domain.customers.router import customer_router as customer_pets_router
from .domain.customers.router import router as customers_router
from .domain.notifications.router import customer_router as customer_notifications_router
from .domain.notifications.router import public_router as unsubscribe_router
from .domain.notifications.router import router as notifications_router
from .domain.notifications.templates import seed_default_templates
from .domain.settings.router import router as settings_router
from .domain.waitlist.router import customer_router as customer_waitlist_router
from .domain.waitlist.router import router as waitlist_router
from .errors import ApiError, api_error_handler, validation_exception_handler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("✅ Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"❌ Failed to create database tables: {e}")

    db = SessionLocal()
    try:
        seed_default_templates(db)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to seed notification templates: {e}")
    finally:
        db.close()

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Puppy Day API", version="1.0.0", lifespan=lifespan)

app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(booking_router)
app.include_router(admin_booking_router)
app.include_router(catalog_router)
app.include_router(appointments_router)
app.include_router(customer_appointments_router)
app.include_router(waitlist_router)
app.include_router(customer_waitlist_router)
app.include_router(notifications_router)
app.include_router(customer_notifications_router)
app.include_router(unsubscribe_router)
app.include_router(settings_router)
app.include_router(campaigns_router)
app.include_router(customers_router)
app.include_router(customer_pets_router)


@app.get("/")
def root():
    return {"message": "Puppy Day API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
