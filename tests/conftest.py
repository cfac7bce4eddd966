"""Shared fixtures for the wine pipeline tests."""

import json
import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from wine_pipeline.core.config import reset_default_config
from wine_pipeline.core.schema import RawCharacteristics
from wine_pipeline.db.models import Base
from wine_pipeline.enrichment.budget import reset_default_budget
from wine_pipeline.enrichment.research import ResearchProvider
from wine_pipeline.services.ai.client import AIClient, AIProvider, GenerationResult

# Research answer that passes the default quality gate
COMPLETE_CHARACTERISTICS = {
    "wine_type": "Red",
    "tasting_notes": (
        "Deep ruby with a nose of cassis and cedar; the palate is structured "
        "and long with ripe, firm tannins."
    ),
    "flavor_notes": "blackcurrant, cedar, graphite, tobacco",
    "aroma_notes": "cassis, violet, pencil shavings",
    "body_description": "full-bodied and structured",
    "food_pairing": "grilled ribeye, lamb chops",
    "serving_temp": "16-18C",
    "aging_potential": "Drink now through 2035",
    "acidity": 3.8,
    "tannin": 4.2,
    "intensity": 4.5,
    "sweetness": 1.2,
    "rating": 4.4,
}


@pytest.fixture(autouse=True)
def _reset_globals():
    """Keep module-level defaults from leaking between tests."""
    reset_default_config()
    reset_default_budget()
    yield
    reset_default_config()
    reset_default_budget()


@pytest.fixture
def temp_db_path():
    """Create a temporary database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def db_engine(temp_db_path):
    """Create a test database engine."""
    url = f"sqlite:///{temp_db_path}"
    engine = create_engine(url, echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Create a session factory for testing."""
    return sessionmaker(bind=db_engine)


@pytest.fixture
def session(session_factory) -> Session:
    """Create a database session for testing."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def complete_characteristics() -> dict:
    """A research payload that passes the default quality gate."""
    return dict(COMPLETE_CHARACTERISTICS)


class ScriptedProvider(ResearchProvider):
    """Research provider that replays canned answers; an Exception entry is raised."""

    def __init__(self, responses, source: str = "scripted"):
        self.responses = list(responses)
        self.source = source
        self.queries: list[str] = []

    def lookup(self, query: str) -> RawCharacteristics:
        self.queries.append(query)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return RawCharacteristics.model_validate(response)


class FakeAIClient(AIClient):
    """AIClient returning queued JSON objects (or failures) without any network."""

    provider = AIProvider.ANTHROPIC
    model = "fake-model"

    def __init__(self, responses):
        self.responses = list(responses)
        self.prompts: list[str] = []

    def generate_json(self, prompt: str, system_prompt: str | None = None) -> GenerationResult:
        self.prompts.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, GenerationResult):
            return response
        return GenerationResult(success=True, raw_response=json.dumps(response), parsed_json=response)

    def repair_json(self, invalid_json: str, error_message: str) -> str:
        return invalid_json


@pytest.fixture
def make_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider


@pytest.fixture
def make_ai_client():
    """Factory for FakeAIClient instances."""
    return FakeAIClient


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested through the no_sleep fixture."""
    return []


@pytest.fixture
def no_sleep(sleeps):
    """Awaitable sleep that records the delay and returns immediately."""

    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep
