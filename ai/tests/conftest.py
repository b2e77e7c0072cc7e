import os
import pytest
from pathlib import Path

from dotenv import load_dotenv

# load test env first
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')
# keep test runs from writing rotating log files
os.environ['LOG_TO_FILE'] = 'false'
os.environ.setdefault('LOG_LEVEL', 'WARNING')


@pytest.fixture
def anyio_backend():
    # Force anyio to use asyncio
    return 'asyncio'


@pytest.fixture(autouse=True)
def reset_generator_singleton():
    from studygen.generation.generator import StudyGenerator
    StudyGenerator._instance = None
    yield
    StudyGenerator._instance = None


@pytest.fixture
def recording_sleep():
    from tests.fixtures.mock_gemini import RecordingSleep
    return RecordingSleep()


@pytest.fixture
def fake_gemini():
    from tests.fixtures.mock_gemini import FakeGeminiClient
    return FakeGeminiClient


@pytest.fixture
def make_generator(recording_sleep):
    from studygen.generation import KeyPool, StudyGenerator

    def _make(client, keys=('key-a', 'key-b'), max_attempts=5, base_delay_ms=2000, max_chars=100000):
        return StudyGenerator(
            key_pool=KeyPool(keys),
            client=client,
            max_attempts=max_attempts,
            base_delay_ms=base_delay_ms,
            max_chars=max_chars,
            sleep=recording_sleep,
        )

    return _make


@pytest.fixture
def sample_material():
    from tests.fixtures.sample_data import sample_study_material
    return sample_study_material
