'''
Pytest configuration for the ledger backend.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE (in-memory SQLite) before any code is imported.
2. Providing a fresh database, created from the ORM metadata, for each test.
3. Providing an httpx client bound to the FastAPI app for endpoint testing.
4. Providing instances of all service classes, pre-injected with the test db session.
5. Providing seeded teachers and students built with factory_boy.
'''

import os

# Must happen before the settings object is created on first import.
os.environ["TEST_MODE"] = "True"
os.environ["DATABASE_URL_TEST"] = "sqlite+aiosqlite://"

import pytest
import httpx
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession

# --- Application Imports ---
from src.tutor_ledger_backend.main import app
from src.tutor_ledger_backend.common.config import settings
from src.tutor_ledger_backend.database import engine as db_engine
from src.tutor_ledger_backend.database.engine import get_db_session
from src.tutor_ledger_backend.database import models as db_models
from src.tutor_ledger_backend.services.entry_store import AccountingEntryStore
from src.tutor_ledger_backend.services.fee_settings_store import FeeSettingsStore
from src.tutor_ledger_backend.services.teacher_directory import TeacherDirectoryService
from src.tutor_ledger_backend.services.accounting_service import (
    AccountingChargeService,
    SettlementService,
    FeeInitializationService,
    AccountingReportService
)

from tests.database import factories


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio'.
    2. Promotes the scope to 'session'.
    """
    return "asyncio"


# --- 1. Database Fixtures ---

@pytest.fixture(scope="function")
async def db_engine_ready() -> AsyncGenerator[None, None]:
    """
    Creates the app's engine against a private in-memory database and builds
    the schema. Disposed after every test, so each test starts empty.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your environment."
    db_engine.create_db_engine_and_session_factory()
    await db_engine.create_all_tables()
    yield
    await db_engine.dispose_db_engine()


@pytest.fixture(scope="function")
async def db_session(db_engine_ready) -> AsyncGenerator[AsyncSession, None]:
    """
    Provides a single session for service-level tests. Factories add to it.
    """
    session = db_engine.AsyncSessionLocal()
    factories.test_db_session = session
    try:
        yield session
    finally:
        factories.test_db_session = None
        await session.rollback()
        await session.close()


@pytest.fixture(scope="function")
async def api_client(db_session: AsyncSession) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    An httpx client talking to the app in-process. Every request shares the
    test's session, so seeded rows are visible and results can be inspected.
    """
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# --- 2. SERVICE FIXTURES ---

@pytest.fixture(scope="function")
def entry_store(db_session: AsyncSession) -> AccountingEntryStore:
    return AccountingEntryStore(db=db_session)

@pytest.fixture(scope="function")
def fee_store(db_session: AsyncSession) -> FeeSettingsStore:
    return FeeSettingsStore(db=db_session)

@pytest.fixture(scope="function")
def teacher_directory(
    db_session: AsyncSession,
    entry_store: AccountingEntryStore,
    fee_store: FeeSettingsStore
) -> TeacherDirectoryService:
    return TeacherDirectoryService(db=db_session, entry_store=entry_store, fee_store=fee_store)

@pytest.fixture(scope="function")
def charge_service(
    entry_store: AccountingEntryStore,
    fee_store: FeeSettingsStore,
    teacher_directory: TeacherDirectoryService
) -> AccountingChargeService:
    return AccountingChargeService(entry_store=entry_store, fee_store=fee_store, directory=teacher_directory)

@pytest.fixture(scope="function")
def settlement_service(
    entry_store: AccountingEntryStore,
    charge_service: AccountingChargeService
) -> SettlementService:
    return SettlementService(entry_store=entry_store, charge_service=charge_service)

@pytest.fixture(scope="function")
def fee_init_service(
    entry_store: AccountingEntryStore,
    fee_store: FeeSettingsStore,
    teacher_directory: TeacherDirectoryService,
    charge_service: AccountingChargeService
) -> FeeInitializationService:
    return FeeInitializationService(
        entry_store=entry_store,
        fee_store=fee_store,
        directory=teacher_directory,
        charge_service=charge_service
    )

@pytest.fixture(scope="function")
def report_service(
    entry_store: AccountingEntryStore,
    fee_store: FeeSettingsStore,
    teacher_directory: TeacherDirectoryService
) -> AccountingReportService:
    return AccountingReportService(entry_store=entry_store, fee_store=fee_store, directory=teacher_directory)


# --- 3. DATA FIXTURES ---

@pytest.fixture(scope="function")
async def test_teacher(db_session: AsyncSession) -> db_models.Users:
    """The main test teacher, with no students yet."""
    teacher = factories.TeacherFactory.create(name="Alice Teacher")
    await db_session.flush()
    return teacher

@pytest.fixture(scope="function")
async def test_students(db_session: AsyncSession, test_teacher: db_models.Users) -> list[db_models.Students]:
    """Three students of the main test teacher, in name order."""
    students = [
        factories.StudentFactory.create(name=name, teacher_id=test_teacher.id)
        for name in ("Student A", "Student B", "Student C")
    ]
    await db_session.flush()
    return students

@pytest.fixture(scope="function")
async def other_teacher(db_session: AsyncSession) -> db_models.Users:
    """A second teacher with one student, used to check isolation between teachers."""
    teacher = factories.TeacherFactory.create(name="Bob Teacher")
    await db_session.flush()
    factories.StudentFactory.create(name="Other Student", teacher_id=teacher.id)
    await db_session.flush()
    return teacher
