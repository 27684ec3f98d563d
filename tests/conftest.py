"""
Pytest configuration and fixtures.
Provides an in-memory database, a seeded school event and an API client.
"""
import os
import tempfile

# Settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="schoolshare-logs-"))
os.environ.setdefault("PUBLIC_BASE_URL", "https://photos.example.com")
os.environ.setdefault("JWT_SECRET_KEY", "test_secret_key_for_testing_purposes_only_very_long")

from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import schoolshare.models  # noqa: F401
from schoolshare.database import Base, configure_sqlite, get_db
from schoolshare.models import Event, Folder, Photo, PhotoSubject, Subject
from schoolshare.schemas.user import AdminCreate
from schoolshare.services.auth import AuthService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_EMAIL = "staff@school.example.com"
ADMIN_PASSWORD = "StaffPassword123!"


@pytest.fixture
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    configure_sqlite(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def school(db_session: AsyncSession) -> SimpleNamespace:
    """
    Two events.

    Spring Festival:
        Class A (f1)            p1, p5 (not approved)
            Rehearsal (f2)      p2
        Class B (f3)            p3
        (unfiled)               p4
        subjects: Alice (tagged on p1, p2), Bob
    Sports Day:
        Track (g1)              q1
    """
    spring = Event(name="Spring Festival", school_name="Maple Elementary")
    sports = Event(name="Sports Day", school_name="Maple Elementary")
    db_session.add_all([spring, sports])
    await db_session.flush()

    f1 = Folder(event_id=spring.id, name="Class A")
    f3 = Folder(event_id=spring.id, name="Class B")
    g1 = Folder(event_id=sports.id, name="Track")
    db_session.add_all([f1, f3, g1])
    await db_session.flush()
    f2 = Folder(event_id=spring.id, parent_id=f1.id, name="Rehearsal")
    db_session.add(f2)
    await db_session.flush()

    def photo(event, folder, name, approved=True):
        return Photo(
            event_id=event.id,
            folder_id=folder.id if folder is not None else None,
            filename=name,
            storage_path=f"events/{event.id}/{name}",
            file_size=1024,
            width=800,
            height=600,
            approved=approved,
            photo_metadata={"camera": "X100"},
        )

    p1 = photo(spring, f1, "class_a_001.jpg")
    p2 = photo(spring, f2, "rehearsal_001.jpg")
    p3 = photo(spring, f3, "class_b_001.jpg")
    p4 = photo(spring, None, "unfiled_001.jpg")
    p5 = photo(spring, f1, "class_a_002.jpg", approved=False)
    q1 = photo(sports, g1, "track_001.jpg")
    for p in (p1, p2, p3, p4, p5, q1):
        db_session.add(p)
        await db_session.flush()

    alice = Subject(event_id=spring.id, name="Alice")
    bob = Subject(event_id=spring.id, name="Bob")
    carol = Subject(event_id=sports.id, name="Carol")
    db_session.add_all([alice, bob, carol])
    await db_session.flush()
    db_session.add_all([
        PhotoSubject(photo_id=p1.id, subject_id=alice.id),
        PhotoSubject(photo_id=p2.id, subject_id=alice.id),
    ])
    await db_session.commit()

    return SimpleNamespace(
        spring=spring, sports=sports,
        f1=f1, f2=f2, f3=f3, g1=g1,
        p1=p1, p2=p2, p3=p3, p4=p4, p5=p5, q1=q1,
        alice=alice, bob=bob, carol=carol,
    )


@pytest.fixture
async def admin_user(db_session: AsyncSession):
    user = await AuthService(db_session).create_admin(AdminCreate(
        email=ADMIN_EMAIL,
        username="staff",
        password=ADMIN_PASSWORD,
    ))
    await db_session.commit()
    return user


@pytest.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """API client; every request gets its own session on the test database."""
    from schoolshare.main import app

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def admin_headers(client: AsyncClient, admin_user) -> dict:
    response = await client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def count_rows(session: AsyncSession, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()
