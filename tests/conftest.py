"""
Pytest configuration and shared fixtures.
Settings are read at import time, so the environment is prepared first.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ENABLE_METRICS", "false")
os.environ.setdefault("LOG_FORMAT", "plain")
os.environ.setdefault("CATALOG_BACKEND", "memory")

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from training_service.catalog.catalog_client import InMemoryContentCatalog
from training_service.core.config import settings
from training_service.core.database import Base, init_db
from training_service.progress.ledger import SqlProgressLedger
from training_service.progress.progress_service import TrainingProgressService


def question(question_id, correct=0, points=1, options=("A", "B", "C"), **extra):
    return {
        "id": question_id,
        "options": list(options),
        "correct_option_index": correct,
        "points": points,
        **extra,
    }


def topic(topic_id, *questions, **extra):
    return {"id": topic_id, "questions": list(questions), **extra}


def module(module_id, *topics, **extra):
    return {"id": module_id, "topics": list(topics), **extra}


def course(course_id, *modules, **extra):
    return {"id": course_id, "modules": list(modules), **extra}


SCENARIO_COURSE = course(
    "C",
    module(
        "M1",
        topic("T1"),
        topic("T2", question("q1", correct=0), question("q2", correct=1, explanation="B is right")),
    ),
    pass_threshold=70,
    sequential_progression=False,
    certificate_enabled=True,
)

SEQUENTIAL_COURSE = course(
    "SEQ",
    module("M1", topic("T1"), topic("T2")),
    module("M2", topic("T3", question("q3", correct=2))),
    sequential_progression=True,
)

GRID_COURSE = course(
    "GRID",
    module("M1", topic("A1"), topic("A2")),
    module("M2", topic("B1"), topic("B2")),
)


@pytest.fixture(autouse=True)
def fast_ledger_retries(monkeypatch):
    monkeypatch.setattr(settings, "LEDGER_RETRY_BACKOFF", 0)


@pytest.fixture
def catalog():
    return InMemoryContentCatalog.from_payloads([SCENARIO_COURSE, SEQUENTIAL_COURSE, GRID_COURSE])


@pytest.fixture
async def db_engine():
    """In-memory SQLite engine shared by all sessions of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def progress_service(db_session, catalog):
    return TrainingProgressService(db_session, catalog, SqlProgressLedger(db_session))
