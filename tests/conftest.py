"""
Pytest fixtures and configuration for Puppy Day API tests

Every test gets a fresh in-memory SQLite database seeded with the default
notification templates, mock SMS/email providers, and an in-memory rate limiter.
"""
import os

# Must be set before any puppyday module reads configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["NOTIFICATION_PROVIDER"] = "mock"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("REDIS_URL", None)

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from puppyday import models, rate_limiter
from puppyday.auth import create_access_token
from puppyday.database import Base, get_db
from puppyday.domain.notifications.providers import MockEmailProvider, MockSMSProvider, set_providers
from puppyday.domain.notifications.templates import seed_default_templates
from puppyday.main import app
from puppyday.shared.dates import business_to_utc, get_today_date


@pytest.fixture
def engine():
    """
    Provides an in-memory SQLite engine shared by every connection

    Scope: function (schema created and dropped per test)
    """
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    """
    Provides a database session with default templates and settings seeded
    """
    session = session_factory()
    seed_default_templates(session)
    yield session
    session.close()


@pytest.fixture(autouse=True)
def providers():
    """
    Installs mock SMS and email providers

    Tests inspect providers.sms.sent / providers.email.sent or set fail_with
    """
    sms = MockSMSProvider()
    email = MockEmailProvider()
    set_providers(sms_provider=sms, email_provider=email)

    class Providers:
        pass

    holder = Providers()
    holder.sms = sms
    holder.email = email
    yield holder
    set_providers()


@pytest.fixture(autouse=True)
def in_memory_rate_limiter(monkeypatch):
    """Forces the rate limiter onto its in-memory fallback"""
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: None)
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


@pytest.fixture
def client(db):
    """
    Provides a TestClient bound to the test session

    The lifespan hook is not run, so the app never touches its own engine
    """

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Builds a Bearer header for a given user"""

    def build(user) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return build


@pytest.fixture
def make_customer(db):
    counter = {"n": 0}

    def factory(**overrides):
        counter["n"] += 1
        data = {
            "email": f"customer{counter['n']}@example.com",
            "first_name": "Jamie",
            "last_name": f"Owner{counter['n']}",
            "phone": "+15551234567",
            "role": "customer",
            "preferences": {},
        }
        data.update(overrides)
        user = models.User(**data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture
def customer(make_customer):
    return make_customer()


@pytest.fixture
def admin_user(db):
    user = models.User(
        email="admin@thepuppyday.com",
        first_name="Alex",
        last_name="Admin",
        phone="+15550000000",
        role="admin",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_pet(db):
    def factory(owner, **overrides):
        data = {"owner_id": owner.id, "name": "Biscuit", "size": "medium"}
        data.update(overrides)
        pet = models.Pet(**data)
        db.add(pet)
        db.commit()
        db.refresh(pet)
        return pet

    return factory


@pytest.fixture
def make_service(db):
    def factory(name="Basic Grooming", duration_minutes=60, prices=None):
        service = models.Service(name=name, duration_minutes=duration_minutes)
        prices = prices or {"small": 40.0, "medium": 55.0, "large": 70.0, "xlarge": 85.0}
        for size, price in prices.items():
            service.prices.append(models.ServicePrice(size=size, price=price))
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    return factory


@pytest.fixture
def grooming_service(make_service):
    return make_service()


@pytest.fixture
def make_addon(db):
    def factory(name="Teeth Brushing", price=10.0, **overrides):
        addon = models.Addon(name=name, price=price, **overrides)
        db.add(addon)
        db.commit()
        db.refresh(addon)
        return addon

    return factory


@pytest.fixture
def booking_day() -> date:
    """A future open business day well inside the booking window"""
    day = get_today_date() + timedelta(days=3)
    while day.isoweekday() == 7:
        day += timedelta(days=1)
    return day


@pytest.fixture
def make_appointment(db):
    def factory(customer, pet, service, day, hhmm="10:00", **overrides):
        data = {
            "customer_id": customer.id,
            "pet_id": pet.id,
            "service_id": service.id,
            "scheduled_at": business_to_utc(day, hhmm),
            "duration_minutes": service.duration_minutes,
            "status": "confirmed",
            "total_price": 55.0,
            "source": "online",
        }
        data.update(overrides)
        appointment = models.Appointment(**data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return factory
