import json
from types import SimpleNamespace
from typing import AsyncGenerator, List
from unittest.mock import AsyncMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from educafric.core.config import Settings
from educafric.core.platform_config import PlatformNotificationConfig
from educafric.models import Base, ParentStudentRelation, School, User
from educafric.models.shared.enums import UserRole
from educafric.services.communication.email_service import EmailService
from educafric.services.communication.whatsapp_service import WhatsAppService
from educafric.services.notification.dispatcher import NotificationDispatcher

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite://"

PARENT_FR_PHONE = "+237656200001"


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": TEST_DATABASE_URL,
        "WHATSAPP_PHONE_NUMBER_ID": "123456789",
        "WHATSAPP_ACCESS_TOKEN": "test-token",
        "MAIL_SERVER": None,
        "SCHEDULER_BACKEND": "disabled",
        "LOG_TO_FILE": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeWhatsAppApi:
    """Stands in for the Cloud API through an httpx mock transport."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"error": {"message": "Recipient not allowed"}})
        return httpx.Response(200, json={"messages": [{"id": f"wamid.{len(self.requests)}"}]})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def payloads(self) -> List[dict]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def school_data(db):
    """One school, a student with two parents (fr with WhatsApp, en without) and a teacher."""
    school = School(name="Lycée de Bonabéri", phone="+237 233 000 000")
    db.add(school)
    await db.flush()

    student = User(school_id=school.id, first_name="Jean", last_name="Dupont",
                   role=UserRole.STUDENT.value, preferred_language="fr")
    db.add(student)
    await db.flush()

    parent_fr = User(school_id=school.id, first_name="Marie", last_name="Dupont",
                     email="marie@example.com", phone=PARENT_FR_PHONE, whatsapp_e164=PARENT_FR_PHONE,
                     wa_opt_in=True, preferred_language="fr", role=UserRole.PARENT.value)
    parent_en = User(school_id=school.id, first_name="Paul", last_name="Dupont",
                     email="paul@example.com", preferred_language="en", role=UserRole.PARENT.value)
    teacher = User(school_id=school.id, first_name="Alain", last_name="Kamga",
                   email="kamga@example.com", role=UserRole.TEACHER.value)
    orphan = User(school_id=school.id, first_name="Awa", last_name="Ngono", role=UserRole.STUDENT.value)
    db.add_all([parent_fr, parent_en, teacher, orphan])
    await db.flush()

    db.add_all([
        ParentStudentRelation(parent_id=parent_fr.id, student_id=student.id,
                              relationship_type="mother", is_primary=True),
        ParentStudentRelation(parent_id=parent_en.id, student_id=student.id,
                              relationship_type="father", is_primary=False),
    ])
    await db.commit()

    return SimpleNamespace(
        school_id=school.id,
        student_id=student.id,
        parent_fr_id=parent_fr.id,
        parent_en_id=parent_en.id,
        teacher_id=teacher.id,
        orphan_id=orphan.id,
    )


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def whatsapp_api() -> FakeWhatsAppApi:
    return FakeWhatsAppApi()


@pytest.fixture
def email_service(test_settings) -> EmailService:
    service = EmailService(test_settings)
    service.send_email = AsyncMock(return_value=True)
    return service


@pytest.fixture
def make_dispatcher(session_factory, email_service, whatsapp_api):
    """Build a dispatcher over the test database with settings overrides."""
    def _make(**overrides) -> NotificationDispatcher:
        settings = make_settings(**overrides)
        return NotificationDispatcher(
            session_factory,
            PlatformNotificationConfig.from_settings(settings),
            email_service,
            WhatsAppService(settings, transport=whatsapp_api.transport),
            settings=settings,
        )
    return _make


@pytest.fixture
def dispatcher(make_dispatcher) -> NotificationDispatcher:
    return make_dispatcher()


@pytest.fixture
async def client(dispatcher, test_settings, school_data) -> AsyncGenerator[AsyncClient, None]:
    """Create test client"""
    from main import create_app

    app = create_app(dispatcher=dispatcher, settings=test_settings, configure_logging=False)
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
