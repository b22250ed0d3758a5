from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

from bayanihan.api.deps import get_actor, get_admin_actor, get_job_service, get_payment_service
from bayanihan.core.database import Base, get_db
from bayanihan.core.rate_limit import limiter
from bayanihan import models  # noqa: F401  registers every table on Base.metadata
from bayanihan.main import app
from bayanihan.models.enums import UserRole
from bayanihan.models.job import Job
from bayanihan.services.lifecycle import Actor

# Route tests never reach Redis
limiter.enabled = False


@compiles(JSONB, "sqlite")
def _jsonb_as_json(type_, compiler, **kw):
    return "JSON"


@pytest.fixture
def employer() -> Actor:
    return Actor(id=uuid4(), role=UserRole.EMPLOYER, verified=True, name="Aling Nena")


@pytest.fixture
def worker() -> Actor:
    return Actor(id=uuid4(), role=UserRole.EMPLOYEE, name="Mang Jose")


@pytest.fixture
def other_worker() -> Actor:
    return Actor(id=uuid4(), role=UserRole.BOTH, name="Liza")


@pytest.fixture
def admin() -> Actor:
    return Actor(id=uuid4(), role=UserRole.ADMIN, verified=True, name="Admin")


@pytest.fixture
def make_job(employer):
    def _make(**overrides) -> Job:
        fields = dict(
            title="Fix leaking sink",
            description="Kitchen pipe",
            skills_required=["Plumbing"],
            barangay="San Isidro",
            price=Decimal("1000.00"),
            posted_by=employer.id,
        )
        fields.update(overrides)
        job = Job(**fields)
        job.created_at = job.date_posted
        job.updated_at = job.date_posted
        return job

    return _make


@pytest.fixture
def db():
    session = AsyncMock()
    session.add = MagicMock()
    return session


def _async_service(names):
    # A list spec makes every listed attribute a synchronous MagicMock; the
    # services are async, so wire each listed method as an AsyncMock.
    service = MagicMock(spec_set=names)
    for name in names:
        setattr(service, name, AsyncMock())
    return service


@pytest.fixture
def job_service():
    return _async_service([
        "post_job", "list_jobs", "search", "popular", "find_matches", "my_jobs",
        "my_applications", "applications_received", "my_invitations", "get_job",
        "edit_job", "delete_job", "apply", "cancel_application", "invite",
        "accept_invitation", "decline_invitation", "assign_worker", "reject_application",
        "update_applicant_status", "close_job", "complete_job", "proof_link",
        "list_deleted", "restore_job", "purge_job",
    ])


@pytest.fixture
def payment_service():
    return _async_service([
        "initiate", "handle_webhook", "get_status", "job_payments", "my_payments", "cancel",
    ])


def _client_for(actor, job_service, payment_service):
    def _db_override():
        yield AsyncMock()

    app.dependency_overrides[get_db] = _db_override
    app.dependency_overrides[get_actor] = lambda: actor
    app.dependency_overrides[get_job_service] = lambda: job_service
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    return TestClient(app)


@pytest.fixture
def client(employer, job_service, payment_service):
    yield _client_for(employer, job_service, payment_service)
    app.dependency_overrides.clear()


@pytest.fixture
def worker_client(worker, job_service, payment_service):
    yield _client_for(worker, job_service, payment_service)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(admin, job_service, payment_service):
    test_client = _client_for(admin, job_service, payment_service)
    app.dependency_overrides[get_admin_actor] = lambda: admin
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
async def session():
    """A real AsyncSession on in-memory SQLite, for repository and rollback behaviour."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, expire_on_commit=False)
    async with maker() as db:
        yield db
    await engine.dispose()
