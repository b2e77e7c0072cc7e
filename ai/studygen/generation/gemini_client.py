"""Thin async wrapper around the google-genai SDK.

One ``generate`` call is one remote request; retries happen around it, never
inside it. SDK and transport failures are re-raised as ``GenerationAPIError``
with the HTTP code and the SDK message preserved for retry classification.
"""
from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Dict, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from studygen.utils import get_logger, log_llm_call
from .errors import GenerationAPIError, GenerationTransportError
from .request_builder import RequestPayload

LOG = get_logger()

# google-genai runs its async calls over aiohttp when that package is installed
try:
    import aiohttp
except ImportError:
    aiohttp = None

TRANSPORT_ERRORS = (httpx.TransportError,) + ((aiohttp.ClientConnectionError,) if aiohttp else ())

GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-3-flash-preview')
GEMINI_TIMEOUT_MS = int(os.getenv('GEMINI_TIMEOUT_MS', '120000'))
GEMINI_THINKING_BUDGET = int(os.getenv('GEMINI_THINKING_BUDGET', '0'))
GEMINI_TEMPERATURE = os.getenv('GEMINI_TEMPERATURE')


@dataclass
class GenerationResult:
    text: str
    usage: Optional[Dict[str, int]] = None


class GeminiClient:

    def __init__(self, model: str = GEMINI_MODEL, timeout_ms: int = GEMINI_TIMEOUT_MS, thinking_budget: Optional[int] = GEMINI_THINKING_BUDGET, temperature: Optional[float] = None):
        self.model = model
        self.timeout_ms = timeout_ms
        self.thinking_budget = thinking_budget
        if temperature is None and GEMINI_TEMPERATURE:
            temperature = float(GEMINI_TEMPERATURE)
        self.temperature = temperature
        self._clients: Dict[str, genai.Client] = {}

    def _client_for(self, api_key: str) -> genai.Client:
        client = self._clients.get(api_key)
        if client is None:
            client = genai.Client(api_key=api_key, http_options=types.HttpOptions(timeout=self.timeout_ms))
            self._clients[api_key] = client
        return client

    def _config(self, payload: RequestPayload) -> types.GenerateContentConfig:
        config = {
            'system_instruction': payload.system_instruction,
            'response_mime_type': 'application/json',
            'response_schema': payload.response_schema,
            'max_output_tokens': payload.max_output_tokens,
        }
        if self.thinking_budget is not None:
            config['thinking_config'] = types.ThinkingConfig(thinking_budget=self.thinking_budget)
        if self.temperature is not None:
            config['temperature'] = self.temperature
        return types.GenerateContentConfig(**config)

    async def generate(self, payload: RequestPayload, api_key: str, request_id: Optional[str] = None, key_slot: Optional[str] = None) -> GenerationResult:
        if not api_key:
            # the SDK would silently fall back to GEMINI_API_KEY from the environment
            raise GenerationAPIError('No API key configured for Gemini request', status=401)

        start = time.time()
        try:
            response = await self._client_for(api_key).aio.models.generate_content(
                model=self.model,
                contents=[types.Content(role='user', parts=payload.contents)],
                config=self._config(payload),
            )
        except genai_errors.APIError as e:
            LOG.warning('gemini_api_error', extra={'task': payload.task.value, 'code': e.code, 'status': e.status})
            raise GenerationAPIError(str(e), status=e.code) from e
        except TRANSPORT_ERRORS as e:
            LOG.warning('gemini_transport_error', extra={'task': payload.task.value, 'error': str(e)})
            raise GenerationTransportError(f'fetch failed: {e}') from e

        duration_ms = int((time.time() - start) * 1000)
        usage = None
        if response.usage_metadata:
            usage = {
                'prompt_tokens': response.usage_metadata.prompt_token_count or 0,
                'completion_tokens': response.usage_metadata.candidates_token_count or 0,
            }
        log_llm_call(request_id, self.model, (usage or {}).get('prompt_tokens', 0), (usage or {}).get('completion_tokens', 0), duration_ms, key_slot=key_slot)
        return GenerationResult(text=response.text or '', usage=usage)
