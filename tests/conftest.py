import os

# must be set before spabook.core.config is imported
os.environ["SQL_DSN"] = "sqlite+aiosqlite://"
os.environ["DEBUG"] = "true"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_JSON"] = "false"
os.environ["SPA_TIMEZONE"] = "America/Bogota"
os.environ["STORAGE_PUBLIC_URL"] = "https://cdn.bondusy.co/storage"

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from spabook.core.config import settings
from spabook.core.exceptions import NotificationError
from spabook.core.security import hash_password
from spabook.db.sql import AsyncSessionLocal, engine, init_db
from spabook.main import app
from spabook.modules.chat.service import get_chat_client
from spabook.modules.notifications.email import get_email_sender
from spabook.modules.procedures.models import Procedure
from spabook.modules.realtime.hub import RealtimeHub, get_hub
from spabook.modules.users.models import User, UserRole
from spabook.modules.users.service import issue_tokens

# Fixed clock for service-level tests: bookings on BOOK_DAY are in the future
BOOK_DAY = date(2025, 3, 10)
NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

PASSWORD = "Secreto#2025"


class FakeEmailSender:
    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to, subject, html, from_name=None):
        if self.fail:
            raise NotificationError("email_failed")
        self.sent.append({"to": to, "subject": subject, "html": html, "from_name": from_name})
        return {"id": f"email_{len(self.sent)}"}


class FakeChatClient:
    def __init__(self):
        self.messages: list[str] = []
        self.fail = False

    async def reply(self, message: str) -> str:
        if self.fail:
            raise NotificationError("chat_failed")
        self.messages.append(message)
        return "Te recomiendo el Masaje Relajante."


@pytest.fixture(autouse=True)
async def database():
    await init_db(drop=True)
    yield
    # the in-memory database lives on the pooled connection; a fresh one per test
    await engine.dispose()


@pytest.fixture
async def session():
    async with AsyncSessionLocal() as s:
        yield s


async def _make_user(email: str, full_name: str, role: UserRole) -> User:
    async with AsyncSessionLocal() as s:
        user = User(
            email=email,
            password_hash=hash_password(PASSWORD),
            full_name=full_name,
            role=role.value,
        )
        s.add(user)
        await s.commit()
        await s.refresh(user)
        return user


@pytest.fixture
async def patient() -> User:
    return await _make_user("ana@bondusy.co", "Ana Gómez", UserRole.PATIENT)


@pytest.fixture
async def other_patient() -> User:
    return await _make_user("luis@bondusy.co", "Luis Pérez", UserRole.PATIENT)


@pytest.fixture
async def admin() -> User:
    return await _make_user("admin@bondusy.co", "Recepción", UserRole.ADMIN)


async def _make_procedure(**values) -> Procedure:
    async with AsyncSessionLocal() as s:
        proc = Procedure(**values)
        s.add(proc)
        await s.commit()
        await s.refresh(proc)
        return proc


@pytest.fixture
async def procedure() -> Procedure:
    return await _make_procedure(
        name="Masaje Relajante",
        description="Masaje corporal completo",
        duration_minutes=60,
        price=Decimal("80.00"),
        image_url="masaje.jpg",
    )


@pytest.fixture
async def facial() -> Procedure:
    return await _make_procedure(name="Facial Hidratante", duration_minutes=45, price=Decimal("65.00"))


@pytest.fixture
def hub() -> RealtimeHub:
    return RealtimeHub(queue_size=10)


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
async def client(hub, email_sender, chat_client):
    app.dependency_overrides[get_hub] = lambda: hub
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_chat_client] = lambda: chat_client
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_tokens(user).access_token}"}


def future_day(days: int = 7) -> date:
    """A spa-local day safely in the future for HTTP tests (real clock)."""
    return datetime.now(settings.tz).date() + timedelta(days=days)


def api(path: str) -> str:
    return f"{settings.API_PREFIX}{path}"
