"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")

import uuid
import pytest
from datetime import datetime, timezone
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from verifund_gateway.api.dependencies import get_notification_client
from verifund_gateway.api.main import create_app
from verifund_gateway.domain.models import CampaignFields
from verifund_gateway.infrastructure.clients.notifications import NotificationClient
from verifund_gateway.infrastructure.database.models import Base, Campaign, ProgressReport, User
from verifund_gateway.infrastructure.database.repositories import UserRepository
from verifund_gateway.infrastructure.database.session import get_db
from verifund_gateway.services.campaigns import CampaignLifecycleManager
from verifund_gateway.services.progress import ProgressDocumentationService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def other_session(db: Session) -> Generator[Session, None, None]:
    """Independent session on the same database, standing in for a concurrent request"""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and silent notifications"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_client] = lambda: NotificationClient(enabled=False)
    return TestClient(app)


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Factory for committed users; keyword arguments override column defaults"""

    def _make(**attributes) -> User:
        user = UserRepository(db).create_user(email=f"{uuid.uuid4().hex}@example.com", **attributes)
        db.commit()
        return user

    return _make


@pytest.fixture
def creator(make_user) -> User:
    return make_user()


@pytest.fixture
def admin(make_user) -> User:
    return make_user(is_admin=True)


@pytest.fixture
def support(make_user) -> User:
    return make_user(is_support=True)


@pytest.fixture
def contributor(make_user) -> User:
    return make_user()


@pytest.fixture
def manager(db: Session) -> CampaignLifecycleManager:
    return CampaignLifecycleManager(db)


@pytest.fixture
def progress_service(db: Session) -> ProgressDocumentationService:
    return ProgressDocumentationService(db)


@pytest.fixture
def campaign_fields() -> CampaignFields:
    """Goal 100000, minimum 50000"""
    return CampaignFields(
        title="Flood relief for Barangay San Isidro",
        description="Relief packs and temporary shelter",
        category="emergency",
        goal_amount_cents=100000,
        minimum_amount_cents=50000,
        duration_days=30,
    )


@pytest.fixture
def pending_campaign(db, manager, creator, campaign_fields) -> Campaign:
    campaign = manager.submit_campaign(creator.id, campaign_fields)
    db.commit()
    return campaign


@pytest.fixture
def active_campaign(db, manager, admin, pending_campaign) -> Campaign:
    manager.approve(admin.id, pending_campaign.id)
    db.commit()
    return pending_campaign


@pytest.fixture
def on_progress_campaign(db, manager, active_campaign) -> Campaign:
    """Active campaign funded to exactly its minimum (auto-moves to on_progress)"""
    manager.record_contribution(active_campaign.id, active_campaign.minimum_amount_cents)
    db.commit()
    return active_campaign


@pytest.fixture
def progress_report(db, progress_service, creator, on_progress_campaign) -> ProgressReport:
    report = progress_service.create_progress_report(
        creator_id=creator.id,
        campaign_id=on_progress_campaign.id,
        title="Week 1: relief packs delivered",
        report_date=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )
    db.commit()
    return report


@pytest.fixture
def auth() -> Callable[[User], dict]:
    """Headers forwarded by the auth layer for a given user"""

    def _headers(user: User) -> dict:
        return {"X-User-ID": str(user.id)}

    return _headers
