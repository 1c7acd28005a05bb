"""Pytest configuration and fixtures for service and API tests."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["INITIAL_ADMIN_PASSWORD"] = "testpass123"
os.environ["INITIAL_ADMIN_USERNAME"] = "admin"
os.environ["REALTIME_URL"] = ""

import pytest
from httpx import ASGITransport, AsyncClient

from festival.models import AssignedProgram, Jury, Program, ProgramRegistration, Student, Team
from festival.models.base import async_session_factory, drop_db, new_id
from festival.services import realtime
from festival.services.bootstrap import bootstrap
from web.api.main import app
from web.auth import hash_password


class RecordingPublisher(realtime.Publisher):
    """Keeps published events in memory."""

    def __init__(self):
        self.events = []

    async def _send(self, channel, event, data):
        self.events.append((channel, event, data))

    def names(self):
        return [(channel, event) for channel, event, _ in self.events]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
async def _init_db():
    """Fresh schema per test (ASGI lifespan doesn't run with httpx)."""
    await drop_db()
    await bootstrap(hash_password)


@pytest.fixture(autouse=True)
def publisher():
    """Record realtime events instead of posting them."""
    recorder = RecordingPublisher()
    previous = realtime.set_publisher(recorder)
    yield recorder
    realtime.set_publisher(previous)


@pytest.fixture
async def session():
    async with async_session_factory() as s:
        yield s


@pytest.fixture
async def client():
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def auth_headers(client):
    """Login as admin and return Authorization headers for protected endpoints."""
    r = await client.post(
        "/api/auth/login",
        json={"username": "admin", "password": "testpass123"},
    )
    assert r.status_code == 200, f"Login failed: {r.text}"
    token = r.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


# --- Seed helpers ---


async def add_team(session, name, password=None):
    team = Team(id=new_id(), name=name, total_points=0)
    if password:
        team.portal_password_hash = hash_password(password)
    session.add(team)
    await session.commit()
    return team


async def add_student(session, team, name, chest_no):
    student = Student(id=new_id(), name=name, team_id=team.id, chest_no=chest_no, total_points=0)
    session.add(student)
    await session.commit()
    return student


async def add_program(session, name, section="single", category="A", stage=True, candidate_limit=1):
    program = Program(
        id=new_id(),
        name=name,
        section=section,
        category=category,
        stage=stage,
        candidate_limit=candidate_limit,
    )
    session.add(program)
    await session.commit()
    return program


async def add_jury(session, name="Judge", password="jurypass"):
    jury = Jury(id=new_id("jury"), name=name, password_hash=hash_password(password), avatar="/img/jury.webp")
    session.add(jury)
    await session.commit()
    return jury


async def assign(session, program, jury, status="pending"):
    session.add(AssignedProgram(program_id=program.id, jury_id=jury.id, status=status))
    await session.commit()


async def register(session, program, *students):
    for student in students:
        session.add(ProgramRegistration(
            id=new_id(),
            program_id=program.id,
            student_id=student.id,
            team_id=student.team_id,
        ))
    await session.commit()


async def team_points(team_id):
    async with async_session_factory() as s:
        return (await s.get(Team, team_id)).total_points


async def student_points(student_id):
    async with async_session_factory() as s:
        return (await s.get(Student, student_id)).total_points


@pytest.fixture
async def festival():
    """Three teams, four students, a single program and a group program, one jury assigned to both.

    Seeded in a separate session so the rows stay usable after a service call rolls back.
    """
    async with async_session_factory() as session:
        return await _seed(session)


async def _seed(session):
    t1 = await add_team(session, "Alpha", password="alphapass")
    t2 = await add_team(session, "Bravo")
    t3 = await add_team(session, "Charlie")
    s1 = await add_student(session, t1, "Anna", "AL001")
    s2 = await add_student(session, t2, "Ben", "BR001")
    s3 = await add_student(session, t3, "Cara", "CH001")
    s4 = await add_student(session, t1, "Arun", "AL002")
    single = await add_program(session, "Elocution", section="single", category="A")
    group = await add_program(session, "Group Song", section="group", category="none", candidate_limit=5)
    jury = await add_jury(session)
    await assign(session, single, jury)
    await assign(session, group, jury)
    await register(session, single, s1, s2, s3)
    return {
        "teams": (t1, t2, t3),
        "students": (s1, s2, s3, s4),
        "single": single,
        "group": group,
        "jury": jury,
    }
