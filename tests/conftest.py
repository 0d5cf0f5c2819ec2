"""
Pytest configuration: make sure `import offshore` works regardless of
where pytest is invoked, and provide an isolated in-memory database per test.

It prepends the project root (one directory above *tests/*) to
``sys.path`` **before** any tests are collected.
"""

import sys
from pathlib import Path

# /path/to/project/tests -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from offshore.db import create_all
from offshore.mailer import Mailer
from offshore.models import Identity


class ExplodingMailer(Mailer):
    """Transport that always raises, to exercise failure tolerance."""

    def __init__(self):
        super().__init__(api_key="test-key")
        self.calls = 0

    async def send(self, msg):
        self.calls += 1
        raise RuntimeError("smtp on fire")


class RecordingMailer(Mailer):
    """Simulating mailer that remembers what it was asked to send."""

    def __init__(self):
        super().__init__(api_key="")
        self.sent = []

    async def send(self, msg):
        self.sent.append(msg)
        return await super().send(msg)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all(eng)
    yield eng
    SQLModel.metadata.drop_all(eng)


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def alice():
    return Identity(user_id="user-alice", email="alice@example.com")


@pytest.fixture
def bob():
    return Identity(user_id="user-bob", email="bob@example.com")


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def exploding_mailer():
    return ExplodingMailer()
