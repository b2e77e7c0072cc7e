import base64

import pytest
from fastapi.testclient import TestClient
import main as ai_main
from studygen.generation.errors import GenerationAPIError
from studygen.generation.fallbacks import FALLBACK_STUDY_MATERIAL
from tests.fixtures.mock_gemini import FakeGeminiClient, as_json, rate_limited
from tests.fixtures.sample_data import flashcard, quiz_question, sample_study_material


@pytest.fixture
def use_generator(monkeypatch, make_generator):
    def _use(*responses, **kwargs):
        fake = FakeGeminiClient(list(responses))
        generator = make_generator(fake, **kwargs)
        monkeypatch.setattr(ai_main, 'get_generator', lambda: generator)
        return fake
    return _use


@pytest.mark.integration
def test_synthesize_text_and_image(use_generator):
    fake = use_generator(as_json(sample_study_material()))
    client = TestClient(ai_main.app)
    body = {
        'parts': [
            {'type': 'text', 'text': 'Heart failure lecture notes from week 3', 'filename': 'week3.txt'},
            {'type': 'image', 'data': base64.b64encode(b'\x89PNG fake').decode(), 'mime_type': 'image/png'},
        ],
        'domain': 'PA',
    }
    r = client.post('/study/synthesize', json=body)
    assert r.status_code == 200
    j = r.json()
    assert j['success'] is True
    assert j['fallback'] is False
    assert j['material'] == sample_study_material()
    assert fake.calls[0]['payload'].contents[1].inline_data.data == b'\x89PNG fake'


@pytest.mark.integration
def test_synthesize_fallback_is_flagged(use_generator):
    use_generator(GenerationAPIError('bad', status=400))
    r = TestClient(ai_main.app).post('/study/synthesize', json={'parts': [{'type': 'text', 'text': 'Enough text to pass the minimum check'}]})
    assert r.status_code == 200
    assert r.json()['fallback'] is True
    assert r.json()['material'] == FALLBACK_STUDY_MATERIAL


@pytest.mark.integration
def test_synthesize_rejects_too_little_content(use_generator):
    fake = use_generator()
    r = TestClient(ai_main.app).post('/study/synthesize', json={'parts': [{'type': 'text', 'text': 'too short'}]})
    assert r.status_code == 400
    assert r.json()['success'] is False
    assert fake.calls == []


@pytest.mark.integration
def test_synthesize_rejects_bad_base64(use_generator):
    use_generator()
    body = {'parts': [{'type': 'image', 'data': 'not base64!!'}]}
    r = TestClient(ai_main.app).post('/study/synthesize', json=body)
    assert r.status_code == 400
    assert 'base64' in r.json()['error']['details']


@pytest.mark.integration
def test_invalid_domain_is_a_bad_request(use_generator):
    use_generator()
    body = {'parts': [{'type': 'text', 'text': 'Enough text to pass the minimum check'}], 'domain': 'Dentistry'}
    r = TestClient(ai_main.app).post('/study/synthesize', json=body)
    assert r.status_code == 400
    assert r.json()['error']['message'] == 'Invalid request'


@pytest.mark.integration
def test_continue_without_leftover_extends_quiz(use_generator):
    use_generator(as_json([quiz_question(7)]))
    r = TestClient(ai_main.app).post('/study/continue', json={'material': sample_study_material()})
    assert r.status_code == 200
    assert len(r.json()['material']['quiz']) == 3


@pytest.mark.integration
def test_continue_rejects_invalid_material(use_generator):
    use_generator()
    r = TestClient(ai_main.app).post('/study/continue', json={'material': {'title': ''}})
    assert r.status_code == 400


@pytest.mark.integration
def test_quiz_extend_after_rate_limit(use_generator, recording_sleep):
    use_generator(rate_limited(), as_json([quiz_question(1), quiz_question(2)]), max_attempts=3, base_delay_ms=1000)
    r = TestClient(ai_main.app).post('/quiz/extend', json={'topic': 'Cardiology'})
    assert r.status_code == 200
    questions = r.json()['questions']
    assert len(questions) == 2
    assert 'correctAnswer' in questions[0]
    assert len(recording_sleep.delays) == 1


@pytest.mark.integration
def test_quiz_remediate(use_generator):
    use_generator(as_json([quiz_question(1), quiz_question(2)]))
    r = TestClient(ai_main.app).post('/quiz/remediate', json={'failed_concept': 'Loop diuretics', 'domain': 'Nursing'})
    assert r.status_code == 200
    assert len(r.json()['questions']) == 2


@pytest.mark.integration
def test_quiz_remediate_requires_concept(use_generator):
    use_generator()
    r = TestClient(ai_main.app).post('/quiz/remediate', json={'failed_concept': ''})
    assert r.status_code == 400


@pytest.mark.integration
def test_flashcards_extend(use_generator):
    use_generator(as_json([flashcard(1), flashcard(2)]))
    r = TestClient(ai_main.app).post('/flashcards/extend', json={'topic': 'Photosynthesis'})
    assert r.status_code == 200
    assert r.json()['flashcards'] == [flashcard(1), flashcard(2)]
