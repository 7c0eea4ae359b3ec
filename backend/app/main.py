"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.database import Base, SessionLocal, engine

# Import routers
from app.routers import catalog, class_requests, confirmed_classes, educators, organizations, profiles
from app.services.reconciliation import reconcile_promotions

# Import all models so Base.metadata knows about them
from app.models.profile import Profile                     # noqa: F401
from app.models.organization import Company, Site          # noqa: F401
from app.models.educator import Educator                   # noqa: F401
from app.models.class_request import ClassRequest          # noqa: F401
from app.models.confirmed_class import ConfirmedClass      # noqa: F401
from app.models.lifecycle_event import LifecycleEvent      # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="LifeSafe Scheduler",
    description="Class request lifecycle, confirmed-class billing and reminders for a safety-training provider",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(profiles.router, prefix="/api/profiles", tags=["Profiles"])
app.include_router(organizations.router, prefix="/api/companies", tags=["Companies"])
app.include_router(educators.router, prefix="/api/educators", tags=["Educators"])
app.include_router(catalog.router, prefix="/api/catalog", tags=["Catalog"])
app.include_router(class_requests.router, prefix="/api/class-requests", tags=["ClassRequests"])
app.include_router(confirmed_classes.router, prefix="/api/confirmed-classes", tags=["ConfirmedClasses"])


@app.on_event("startup")
def on_startup():
    """Create tables for SQLite dev mode, then check for half-applied promotions."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)

    if settings.RECONCILE_ON_STARTUP:
        db = SessionLocal()
        try:
            findings = reconcile_promotions(db, repair=settings.RECONCILE_REPAIR)
            if findings:
                logger.error("Startup reconciliation found %d inconsistent promotion(s)", len(findings))
        except SQLAlchemyError:
            logger.exception("Startup reconciliation could not run")
        finally:
            db.close()


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
