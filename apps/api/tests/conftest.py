"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database with seeded reference data (fresh per test)
- Customer / CXC agent / specialist parties and their actors
- Bearer token minting for authenticated API tests
- HTTPX AsyncClient bound to the app
- Recorders that replace outbound email and push delivery
"""
import os

# Settings are read at import time; configure before importing bcare
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["TESTING"] = "1"
os.environ["RESEND_API_KEY"] = ""
os.environ["FCM_SERVER_KEY"] = ""

from dataclasses import dataclass, field
from typing import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bcare.core.deps import get_db
from bcare.core.security import create_access_token
from bcare.db.base import Base
from bcare.db.models import ComplaintPolicy, Customer, Employee
from bcare.db.seed import seed_reference_data
from bcare.main import app
from bcare.schemas.auth import Actor, ActorKind
from bcare.services import notification_transport

CXC_DIVISION = 1
OPR_DIVISION = 3
TBS_DIVISION = 4
AGENT_CXC_ROLE = 1
ASST_DGO_ROLE = 2


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh in-memory database per test.

    StaticPool keeps one connection so the schema survives across the
    threads FastAPI runs sync endpoints on.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    seed_reference_data(session)

    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def customer(db: Session) -> Customer:
    row = Customer(
        full_name="Siti Rahma",
        email="siti@example.com",
        phone_number="081200000001",
        cif="CIF0001",
        fcm_token="customer-device-token",
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture(scope="function")
def other_customer(db: Session) -> Customer:
    row = Customer(full_name="Budi Santoso", email="budi@example.com", cif="CIF0002")
    db.add(row)
    db.commit()
    return row


@pytest.fixture(scope="function")
def cxc_employee(db: Session) -> Employee:
    row = Employee(
        npp="CXC001",
        full_name="Agent Dewi",
        email="dewi.cxc@example.com",
        role_id=AGENT_CXC_ROLE,
        division_id=CXC_DIVISION,
        fcm_token="agent-device-token",
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture(scope="function")
def specialist_employee(db: Session) -> Employee:
    row = Employee(
        npp="OPR001",
        full_name="Specialist Andi",
        email="andi.opr@example.com",
        role_id=ASST_DGO_ROLE,
        division_id=OPR_DIVISION,
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture(scope="function")
def outsider_employee(db: Session) -> Employee:
    """Specialist in a division no test policy escalates to."""
    row = Employee(
        npp="TBS001",
        full_name="Specialist Rina",
        email="rina.tbs@example.com",
        role_id=ASST_DGO_ROLE,
        division_id=TBS_DIVISION,
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture(scope="function")
def policy(db: Session) -> ComplaintPolicy:
    """2-day SLA for (complaint 1, channel 2), escalating to OPR."""
    row = ComplaintPolicy(
        service="COMPLAINT",
        complaint_id=1,
        channel_id=2,
        sla=2,
        uic_id=OPR_DIVISION,
        description="2nd chargeback via Tapcash",
    )
    db.add(row)
    db.commit()
    return row


# =============================================================================
# Actor Fixtures
# =============================================================================

def customer_actor_for(row: Customer) -> Actor:
    return Actor(id=row.id, kind=ActorKind.CUSTOMER)


def employee_actor_for(row: Employee) -> Actor:
    return Actor(
        id=row.id,
        kind=ActorKind.EMPLOYEE,
        role_id=row.role_id,
        division_id=row.division_id,
    )


@pytest.fixture
def customer_actor(customer: Customer) -> Actor:
    return customer_actor_for(customer)


@pytest.fixture
def cxc_actor(cxc_employee: Employee) -> Actor:
    return employee_actor_for(cxc_employee)


@pytest.fixture
def specialist_actor(specialist_employee: Employee) -> Actor:
    return employee_actor_for(specialist_employee)


@pytest.fixture
def outsider_actor(outsider_employee: Employee) -> Actor:
    return employee_actor_for(outsider_employee)


def auth_headers(actor: Actor) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(actor)}"}


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient with get_db bound to the test session; pass auth per request."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# Notification Recorders
# =============================================================================

@dataclass
class SentNotifications:
    emails: list[dict] = field(default_factory=list)
    pushes: list[dict] = field(default_factory=list)
    failing_recipients: set[str] = field(default_factory=set)


@pytest.fixture
def outbox(monkeypatch: pytest.MonkeyPatch) -> SentNotifications:
    """Capture email/push sends instead of calling Resend or FCM."""
    sent = SentNotifications()

    async def fake_send_email(recipient: str, subject: str, html: str) -> str:
        if recipient in sent.failing_recipients:
            raise notification_transport.NotificationDeliveryError(
                "Resend API error 500", provider="Resend", status_code=500
            )
        sent.emails.append({"to": recipient, "subject": subject, "html": html})
        return f"msg-{len(sent.emails)}"

    async def fake_send_push(token: str, title: str, body: str, data: dict | None = None) -> None:
        if token in sent.failing_recipients:
            raise notification_transport.NotificationDeliveryError(
                "FCM API error 500", provider="FCM", status_code=500
            )
        sent.pushes.append({"token": token, "title": title, "body": body, "data": data or {}})

    monkeypatch.setattr(notification_transport, "send_email", fake_send_email)
    monkeypatch.setattr(notification_transport, "send_push", fake_send_push)
    return sent
