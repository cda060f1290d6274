"""
Pytest configuration for tests.

Points the data directory at a throwaway location and the store at an
in-memory SQLite database BEFORE any memory_palace config is loaded.
"""
import json
import os
import tempfile

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

# Must be set before memory_palace.config caches anything
os.environ["MEMORY_PALACE_DATA_DIR"] = tempfile.mkdtemp(prefix="memory-palace-tests-")
os.environ["MEMORY_PALACE_DATABASE_URL"] = "sqlite:///:memory:"


@pytest.fixture(autouse=True)
def fresh_config():
    """Reload config for every test so env patches take effect."""
    from memory_palace.config import clear_config_cache
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def engine():
    """In-memory SQLite engine with StaticPool so all connections share state."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    from memory_palace.database import KeyValueStore
    return KeyValueStore(engine)


class FakeCompletion:
    """
    Stand-in for the completion service.

    Extraction prompts get `insights` back as a JSON array; pair prompts are
    answered from `verdicts`, keyed by (source title, target title).
    Every call is recorded.
    """

    def __init__(self, insights=None, verdicts=None, extraction_response=None):
        self.insights = insights or []
        self.verdicts = verdicts or {}
        self.extraction_response = extraction_response
        self.calls = []

    def __call__(self, messages, system=None, temperature=0.7):
        prompt = messages[0]["text"]
        self.calls.append({"prompt": prompt, "system": system, "temperature": temperature})

        if prompt.startswith("Analyze this conversation"):
            if self.extraction_response is not None:
                return self.extraction_response
            return "```json\n" + json.dumps(self.insights) + "\n```"

        for (source, target), verdict in self.verdicts.items():
            if f'Node 1: "{source}"' in prompt and f'Node 2: "{target}"' in prompt:
                return verdict if isinstance(verdict, str) else json.dumps(verdict)
        return json.dumps({"connected": False})

    @property
    def pair_calls(self):
        return [c for c in self.calls if c["prompt"].startswith("Analyze these two")]


@pytest.fixture
def fake_completion():
    return FakeCompletion
