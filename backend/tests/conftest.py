"""
Shared fixtures: every test gets its own SQLite store on disk.
"""

import pytest

from case_store import CaseStore
from database import create_engine_from_url, create_session_factory, init_schema
from intake import IncidentIntake
from registry import OperatorRegistry
from repository import Repository

ADMIN = "principal-alice"
ANALYST = "principal-bob"


@pytest.fixture
async def engine(tmp_path):
    engine = create_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'desk.db'}")
    await init_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def repo(engine):
    return Repository(create_session_factory(engine))


@pytest.fixture
def registry(repo):
    return OperatorRegistry(repo)


@pytest.fixture
def cases(repo):
    return CaseStore(repo)


@pytest.fixture
def intake(repo, cases):
    return IncidentIntake(repo, cases)


@pytest.fixture
async def operators(registry):
    """Alice registers first (admin), Bob second (analyst)"""
    await registry.register_self(ADMIN, "Alice")
    await registry.register_self(ANALYST, "Bob")
    return ADMIN, ANALYST
