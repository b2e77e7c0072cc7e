import pytest
from fastapi.testclient import TestClient
import main as ai_main
from tests.fixtures.mock_gemini import FakeGeminiClient


@pytest.mark.integration
def test_health_endpoint():
    client = TestClient(ai_main.app)
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json().get('status') == 'ok'
    assert r.headers.get('X-Request-ID')


@pytest.mark.integration
def test_request_id_is_echoed():
    client = TestClient(ai_main.app)
    r = client.get('/health', headers={'X-Request-ID': 'trace-123'})
    assert r.headers.get('X-Request-ID') == 'trace-123'


@pytest.mark.integration
def test_ready_with_keys(monkeypatch, make_generator):
    generator = make_generator(FakeGeminiClient(), keys=('k1', 'k2'))
    monkeypatch.setattr(ai_main, 'get_generator', lambda: generator)
    r = TestClient(ai_main.app).get('/ready')
    assert r.status_code == 200
    assert r.json()['key_count'] == 2


@pytest.mark.integration
def test_not_ready_without_keys(monkeypatch, make_generator):
    generator = make_generator(FakeGeminiClient(), keys=())
    monkeypatch.setattr(ai_main, 'get_generator', lambda: generator)
    r = TestClient(ai_main.app).get('/ready')
    assert r.status_code == 503
    assert r.json()['status'] == 'not ready'


@pytest.mark.integration
def test_startup_and_shutdown_hooks_run_cleanly(monkeypatch, make_generator):
    generator = make_generator(FakeGeminiClient(), keys=())
    monkeypatch.setattr(ai_main, 'get_generator', lambda: generator)
    # entering the context runs startup, leaving it runs shutdown
    with TestClient(ai_main.app) as client:
        assert client.get('/health').status_code == 200


@pytest.mark.integration
def test_settings_only_carry_used_fields():
    assert set(ai_main.Settings.model_fields) == {'HOST', 'PORT', 'ENVIRONMENT', 'LOG_LEVEL', 'CORS_ORIGIN'}
