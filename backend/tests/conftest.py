"""Pytest fixtures — SQLite database per test, API and service-level helpers."""
import os
from datetime import date, timedelta
from decimal import Decimal

SQLITE_URL = "sqlite:///./test.db"

# Settings are read at import time; point the app at the test database first.
os.environ.setdefault("DATABASE_URL", SQLITE_URL)
os.environ.setdefault("RECONCILE_ON_STARTUP", "false")
os.environ.setdefault("EMAIL_BACKEND", "log")

import pytest  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402

# Import all models so they register with Base.metadata
from app.models.profile import Profile, Role                 # noqa: E402
from app.models.organization import Company, Site            # noqa: E402
from app.models.educator import Educator                     # noqa: E402
from app.models.class_request import ClassRequest            # noqa: E402, F401
from app.models.confirmed_class import ConfirmedClass        # noqa: E402, F401
from app.models.lifecycle_event import LifecycleEvent        # noqa: E402, F401
from app.services.authz import Actor                         # noqa: E402


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session, closed after the test."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create reference rows via the API, return the JSON response
# ---------------------------------------------------------------------------
def create_test_profile(
    client: TestClient, name: str = "Casey", role: str = "LifeSafe", email: str = None, company_id: str = None,
) -> dict:
    """Helper — POST /api/profiles and return response JSON."""
    resp = client.post("/api/profiles/", json={
        "first_name": name,
        "last_name": "Tester",
        "email": email or f"{name.lower().replace(' ', '.')}@example.com",
        "role": role,
        "company_id": company_id,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_site(client: TestClient, company_name: str = "Acme Corp", site_name: str = "Acme HQ") -> dict:
    """Helper — create a company and one site under it; returns the site JSON."""
    company = client.post("/api/companies/", json={"name": company_name})
    assert company.status_code == 201, company.text
    site = client.post(f"/api/companies/{company.json()['id']}/sites", json={
        "name": site_name,
        "city": "Fresno",
        "state": "CA",
        "site_email": "frontdesk@acme.example.com",
    })
    assert site.status_code == 201, site.text
    return site.json()


def create_test_educator(client: TestClient, first: str = "Erin", rate1: str = "25", email: str = None) -> dict:
    """Helper — POST /api/educators and return response JSON."""
    resp = client.post("/api/educators/", json={
        "first": first,
        "last": "Instructor",
        "email1": email or f"{first.lower()}@educators.example.com",
        "teach_state": "CA",
        "rate1": rate1,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_request(client: TestClient, actor_id: str, site_id: str = None, class_types=None, **extra) -> dict:
    """Helper — POST /api/class-requests and return the request JSON."""
    start = date.today() + timedelta(days=14)
    body = {
        "class_types": class_types or ["CPR", "AED"],
        "preferred_date_start": start.isoformat(),
        "preferred_date_end": (start + timedelta(days=7)).isoformat(),
        "site_id": site_id,
        "notes": "Warehouse crew",
    }
    body.update(extra)
    resp = client.post(f"/api/class-requests/?actor_user_id={actor_id}", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["request"]


# ---------------------------------------------------------------------------
# Helpers: rows written straight through the session for service-level tests
# ---------------------------------------------------------------------------
def make_profile(db, name: str, role: Role, email: str = None, company_id: str = None) -> Actor:
    profile = Profile(
        first_name=name, last_name="Tester", email=email or f"{name.lower()}@example.com",
        role=role, company_id=company_id,
    )
    db.add(profile)
    db.commit()
    return Actor.from_profile(profile)


def make_site(db, name: str = "Main Plant", site_email: str = "site@example.com") -> Site:
    company = Company(name=f"{name} Inc")
    db.add(company)
    db.flush()
    site = Site(company_id=company.id, name=name, city="Reno", state="NV", site_email=site_email)
    db.add(site)
    db.commit()
    return site


def make_educator(db, first: str = "Erin", rate1=Decimal("25"), email: str = None) -> Educator:
    educator = Educator(first=first, last="Instructor", email1=email or f"{first.lower()}@educators.example.com", rate1=rate1)
    db.add(educator)
    db.commit()
    return educator


@pytest.fixture
def staff(db) -> Actor:
    return make_profile(db, "Stacy", Role.lifesafe)


@pytest.fixture
def site(db) -> Site:
    return make_site(db)


@pytest.fixture
def educator(db) -> Educator:
    return make_educator(db)
