import json

from studygen.generation.errors import GenerationAPIError
from studygen.generation.gemini_client import GenerationResult


class FakeGeminiClient:
    """Stands in for GeminiClient: replays scripted responses and records calls.

    Each scripted item is either response text or an exception to raise.
    """
    model = 'fake-gemini'

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    async def generate(self, payload, api_key, request_id=None, key_slot=None):
        self.calls.append({'payload': payload, 'api_key': api_key, 'key_slot': key_slot, 'request_id': request_id})
        if not self.responses:
            raise GenerationAPIError('no scripted response left', status=500)
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return GenerationResult(text=item, usage={'prompt_tokens': 10, 'completion_tokens': 10})


class RecordingSleep:

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def rate_limited():
    return GenerationAPIError('429 RESOURCE_EXHAUSTED. Quota exceeded', status=429)


def overloaded():
    return GenerationAPIError('The model is overloaded. Please try again later.')


def as_json(value):
    return json.dumps(value)
