import pytest
from google.genai import errors as genai_errors

from studygen.generation.backoff import BackoffController, is_retryable
from studygen.generation.errors import GenerationAPIError, GenerationTransportError, MalformedResponseError, MalformedResponseKind
from studygen.generation.key_pool import KeyPool
from tests.fixtures.mock_gemini import RecordingSleep, rate_limited, overloaded


def _flaky(failures, result='ok'):
    calls = []

    async def operation(api_key):
        calls.append(api_key)
        if failures:
            raise failures.pop(0)
        return result

    return operation, calls


@pytest.mark.unit
@pytest.mark.parametrize('error, expected', [
    (GenerationAPIError('quota', status=429), True),
    (GenerationAPIError('unavailable', status=503), True),
    (GenerationAPIError('The model is overloaded.'), True),
    (GenerationAPIError('503 UNAVAILABLE. try later'), True),
    (GenerationTransportError('fetch failed: connection reset'), True),
    (GenerationAPIError('bad request', status=400), False),
    (GenerationAPIError('forbidden', status=403), False),
    (MalformedResponseError('Response is not valid JSON', MalformedResponseKind.UNPARSEABLE), False),
    (MalformedResponseError('title: Fluid overloaded states', MalformedResponseKind.INVALID_SHAPE), False),
    (MalformedResponseError('UNAVAILABLE fetch failed', MalformedResponseKind.UNPARSEABLE), False),
    (ValueError('something else'), False),
])
def test_is_retryable(error, expected):
    assert is_retryable(error) is expected


@pytest.mark.unit
def test_google_api_errors_are_classified_by_code():
    quota = genai_errors.APIError(429, {'error': {'code': 429, 'message': 'Quota exceeded', 'status': 'RESOURCE_EXHAUSTED'}})
    invalid = genai_errors.APIError(400, {'error': {'code': 400, 'message': 'Invalid argument', 'status': 'INVALID_ARGUMENT'}})
    assert is_retryable(quota)
    assert not is_retryable(invalid)


@pytest.mark.anyio
async def test_retries_with_exponential_delays_and_rotates_keys():
    sleep = RecordingSleep()
    controller = BackoffController(KeyPool(['a', 'b']), sleep=sleep)
    operation, calls = _flaky([rate_limited(), overloaded()])

    result = await controller.execute(operation, max_attempts=5, base_delay_ms=2000)

    assert result == 'ok'
    assert calls == ['a', 'b', 'a']
    assert len(sleep.delays) == 2
    assert 2.0 <= sleep.delays[0] < 3.0
    assert 4.0 <= sleep.delays[1] < 5.0


@pytest.mark.anyio
async def test_non_retryable_error_is_raised_without_waiting():
    sleep = RecordingSleep()
    controller = BackoffController(KeyPool(['a']), sleep=sleep)
    operation, calls = _flaky([GenerationAPIError('bad request', status=400)])

    with pytest.raises(GenerationAPIError) as exc:
        await controller.execute(operation, max_attempts=5)

    assert exc.value.status == 400
    assert len(calls) == 1
    assert sleep.delays == []


@pytest.mark.anyio
async def test_last_error_is_raised_after_final_attempt():
    sleep = RecordingSleep()
    controller = BackoffController(KeyPool(['a']), sleep=sleep)
    operation, calls = _flaky([rate_limited(), rate_limited(), GenerationAPIError('still down', status=503)])

    with pytest.raises(GenerationAPIError) as exc:
        await controller.execute(operation, max_attempts=3, base_delay_ms=100)

    assert str(exc.value) == 'still down'
    assert len(calls) == 3
    assert len(sleep.delays) == 2


@pytest.mark.anyio
async def test_single_attempt_never_sleeps():
    sleep = RecordingSleep()
    controller = BackoffController(KeyPool(['a']), sleep=sleep)
    operation, calls = _flaky([rate_limited()])

    with pytest.raises(GenerationAPIError):
        await controller.execute(operation, max_attempts=1)
    assert sleep.delays == []


@pytest.mark.anyio
async def test_empty_pool_passes_empty_credential():
    controller = BackoffController(KeyPool([]), sleep=RecordingSleep())
    operation, calls = _flaky([])
    assert await controller.execute(operation) == 'ok'
    assert calls == ['']


@pytest.mark.anyio
async def test_invalid_attempt_count():
    controller = BackoffController(KeyPool(['a']), sleep=RecordingSleep())
    operation, _ = _flaky([])
    with pytest.raises(ValueError):
        await controller.execute(operation, max_attempts=0)
