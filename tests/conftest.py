"""Pytest fixtures for Salon Conversation Insights tests.

This module provides shared fixtures for test settings, an in-memory
database, an in-memory Environment, and seeded prompts and API keys.
"""

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.config import Settings
from src.models import ApiKey, Base, PromptType, SystemPrompt
from src.services.environment import Environment, InMemoryStorage

OWNER_ID = "stylist@example.com"

SERVICE_EVALUATION_PROMPT = "Evaluate the stylist's service quality."
CUSTOMER_INSIGHT_PROMPT = "Describe what the customer cares about."


@pytest.fixture(autouse=True)
def test_settings() -> Generator[Settings, None, None]:
    """Create Settings from test environment variables.

    Runs for every test so that no test reads a developer's .env or shell
    environment, and so cached settings and environments never leak
    between tests.

    Yields:
        Settings: A Settings instance for the in-memory environment.
    """
    from src.config import get_settings
    from src.services.environment import get_environment

    with patch.dict(
        "os.environ",
        {
            "APP_ENVIRONMENT": "memory",
            "DEMO_USER_ID": "demo-user",
            "VOLUME_PATH": "/Volumes/test/default/audio-uploads",
            "OPENAI_BASE_URL": "https://openai.test/v1",
            "GEMINI_BASE_URL": "https://gemini.test/v1beta",
            "GROQ_BASE_URL": "https://groq.test/openai/v1",
            "PROVIDER_TIMEOUT_SECONDS": "5",
            "DEBUG": "true",
        },
    ):
        # Clear the lru_caches to ensure fresh settings are created
        get_settings.cache_clear()
        get_environment.cache_clear()
        settings = get_settings()
        yield settings
        get_settings.cache_clear()
        get_environment.cache_clear()


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key support for SQLite connections.

    SQLite does not enforce foreign keys by default. This event listener
    enables foreign key constraints for all SQLite connections.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="function")
def db_engine() -> Generator[Engine, None, None]:
    """Create a single-connection in-memory SQLite engine with all tables."""
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
    """Create a session on the in-memory test database.

    Yields:
        Session: A SQLAlchemy session connected to the test engine.
    """
    TestSessionLocal = sessionmaker(bind=db_engine, autoflush=False, autocommit=False)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def environment(db_engine: Engine, memory_storage: InMemoryStorage) -> Environment:
    """Create an in-memory Environment sharing the test database.

    Sessions from environment.session_factory see the same data as
    db_session, so tests can seed and inspect rows around a pipeline run.
    """
    return Environment(
        name="memory",
        storage=memory_storage,
        session_factory=sessionmaker(bind=db_engine),
        default_user_id="demo-user",
    )


@pytest.fixture
def seeded_prompts(db_session: Session) -> dict[PromptType, str]:
    """Persist both analysis prompts."""
    prompts = {
        PromptType.SERVICE_EVALUATION: SERVICE_EVALUATION_PROMPT,
        PromptType.CUSTOMER_INSIGHT: CUSTOMER_INSIGHT_PROMPT,
    }
    for prompt_type, text in prompts.items():
        db_session.add(SystemPrompt(prompt_type=prompt_type.value, prompt_text=text))
    db_session.commit()
    return prompts


@pytest.fixture
def openai_key(db_session: Session) -> ApiKey:
    """Persist an OpenAI key for the test owner."""
    api_key = ApiKey(created_by=OWNER_ID, provider="openai", key_hash="sk-test-openai")
    db_session.add(api_key)
    db_session.commit()
    return api_key


@pytest.fixture
def owner_id() -> str:
    return OWNER_ID


@pytest.fixture
def make_response():
    """Return a factory for mock requests.Response objects carrying a JSON body."""

    def _make_response(body: dict, status_code: int = 200) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        response.json.return_value = body
        return response

    return _make_response
