import os
import sys
import random
import tempfile
import pytest
from unittest.mock import MagicMock
from pathlib import Path

from dotenv import load_dotenv

# load test env first
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')
# keep rotating log files out of the working tree
os.environ['LOG_FILE_PATH'] = tempfile.mkdtemp(prefix='tabledrill-logs-')
os.environ.setdefault('SELECTION_MEMORY_BACKEND', 'memory')


@pytest.fixture(autouse=True)
def silence_logger(monkeypatch):
    # modules bind LOG at import time, so patch those as well as the factory
    import tabledrill.utils.logger as logger_mod
    monkeypatch.setattr(logger_mod, 'get_logger', lambda *a, **k: MagicMock())
    for name, mod in list(sys.modules.items()):
        if (name == 'main' or name.startswith('tabledrill')) and hasattr(mod, 'LOG'):
            monkeypatch.setattr(mod, 'LOG', MagicMock())
    yield


@pytest.fixture(autouse=True)
def reset_singletons():
    from tabledrill.quiz import DrillEngine
    from tabledrill.memory import SelectionMemory
    DrillEngine._instance = None
    SelectionMemory._instance = None
    yield
    DrillEngine._instance = None
    SelectionMemory._instance = None


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def verb_dataset():
    from tests.fixtures.sample_data import irregular_verbs
    from tabledrill.quiz import Dataset
    return Dataset(**irregular_verbs())


@pytest.fixture
def grammar_dataset():
    from tests.fixtures.sample_data import be_verb_table
    from tabledrill.quiz import Dataset
    return Dataset(**be_verb_table())


@pytest.fixture
def memory_store():
    from tabledrill.memory import InMemoryStore
    return InMemoryStore()


@pytest.fixture
def selection_memory(memory_store):
    from tabledrill.memory import SelectionMemory
    return SelectionMemory(memory_store)


@pytest.fixture
def engine(selection_memory, rng):
    from tabledrill.quiz import DrillEngine
    eng = DrillEngine(memory=selection_memory, rng=rng)
    DrillEngine._instance = eng
    return eng


@pytest.fixture
def mock_redis_client(monkeypatch):
    from tests.fixtures.mock_redis import MockRedisClient
    client = MockRedisClient()
    monkeypatch.setattr('redis.Redis', lambda *a, **k: client)
    monkeypatch.setattr('redis.from_url', lambda *a, **k: client)
    return client
