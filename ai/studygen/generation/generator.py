"""Public study generation operations.

Every operation runs build -> backoff(remote call -> parse) and never raises:
on any failure the error is logged and a fixed fallback value is returned so
callers always have renderable content.
"""
from __future__ import annotations

import asyncio
import os
import time
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from studygen.utils import get_logger, log_generation
from .backoff import BackoffController
from .coverage import STUDY_MAX_CHAR_COUNT, merge_continuation, split_for_coverage
from .fallbacks import fallback_flashcards, fallback_quiz, fallback_study_material, is_fallback_material
from .gemini_client import GeminiClient
from .key_pool import KeyPool
from .models import ContentPart, Flashcard, QuizQuestion, StudyDomain, StudyMaterial, TextPart
from .request_builder import RequestPayload, TaskKind, build_request
from .response_parser import parse_response

LOG = get_logger()

GENERATION_RETRY_ATTEMPTS = int(os.getenv('GENERATION_RETRY_ATTEMPTS', '5'))
GENERATION_RETRY_BASE_DELAY_MS = int(os.getenv('GENERATION_RETRY_BASE_DELAY_MS', '2000'))

Domain = Union[StudyDomain, str, None]


class StudyGenerator:
    _instance = None

    def __init__(
        self,
        key_pool: Optional[KeyPool] = None,
        client: Optional[GeminiClient] = None,
        max_attempts: int = GENERATION_RETRY_ATTEMPTS,
        base_delay_ms: int = GENERATION_RETRY_BASE_DELAY_MS,
        max_chars: int = STUDY_MAX_CHAR_COUNT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.key_pool = key_pool if key_pool is not None else KeyPool.from_env()
        self.client = client or GeminiClient()
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.max_chars = max_chars
        self.backoff = BackoffController(self.key_pool, sleep=sleep)
        LOG.info('StudyGenerator initialized', extra={'model': getattr(self.client, 'model', None), 'key_count': len(self.key_pool)})

    @classmethod
    def get_instance(cls) -> 'StudyGenerator':
        if cls._instance is None:
            cls._instance = StudyGenerator()
        return cls._instance

    async def _run(self, payload: RequestPayload, request_id: Optional[str] = None) -> Any:
        async def attempt(api_key: str):
            result = await self.client.generate(payload, api_key, request_id=request_id, key_slot=self.key_pool.slot_of(api_key))
            return parse_response(result.text, payload.result_type)

        return await self.backoff.execute(attempt, max_attempts=self.max_attempts, base_delay_ms=self.base_delay_ms, task=payload.task.value)

    async def _generate(self, task: TaskKind, domain: Domain, parts: Sequence[ContentPart], fallback: Callable[[], Any], request_id: Optional[str] = None, **fields: str) -> Any:
        start = time.time()
        try:
            payload = build_request(task, domain, parts, **fields)
            result = await self._run(payload, request_id=request_id)
        except Exception as e:
            LOG.exception('study_generation_failed', extra={'task': task.value, 'error': str(e), 'error_type': type(e).__name__})
            result = fallback()
            log_generation(request_id, task.value, _item_count(result), int((time.time() - start) * 1000), fallback=True, domain=_domain_label(domain))
            return result
        log_generation(request_id, task.value, _item_count(result), int((time.time() - start) * 1000), domain=_domain_label(domain))
        return result

    async def synthesize(self, content_parts: Sequence[ContentPart], domain: Domain = None, request_id: Optional[str] = None) -> StudyMaterial:
        kept, leftover, coverage = split_for_coverage(content_parts, self.max_chars)
        if leftover:
            LOG.info('content_truncated', extra={'coverage_percent': coverage, 'leftover_chars': len(leftover)})
        material = await self._generate(TaskKind.SYNTHESIS, domain, kept, fallback_study_material, request_id=request_id)
        if leftover and not is_fallback_material(material):
            material = material.model_copy(update={'unprocessed_content': leftover, 'content_coverage_percent': coverage})
        return material

    async def extend_quiz(self, content_parts: Sequence[ContentPart], domain: Domain = None, topic: Optional[str] = None, request_id: Optional[str] = None) -> List[QuizQuestion]:
        return await self._generate(TaskKind.QUIZ_EXTENSION, domain, content_parts, fallback_quiz, request_id=request_id, topic=topic)

    async def remediate(self, content_parts: Sequence[ContentPart], failed_concept: str, domain: Domain = None, request_id: Optional[str] = None) -> List[QuizQuestion]:
        return await self._generate(TaskKind.REMEDIATION, domain, content_parts, lambda: fallback_quiz(limit=2), request_id=request_id, concept=failed_concept)

    async def extend_flashcards(self, topic: str, domain: Domain = None, request_id: Optional[str] = None) -> List[Flashcard]:
        return await self._generate(TaskKind.FLASHCARD_EXTENSION, domain, [], fallback_flashcards, request_id=request_id, topic=topic)

    async def keep_going(self, material: StudyMaterial, domain: Domain = None, request_id: Optional[str] = None) -> StudyMaterial:
        """Continue a study set: cover leftover notes first, else add quiz questions."""
        if material.unprocessed_content:
            extra = await self.synthesize([TextPart(text=material.unprocessed_content)], domain, request_id=request_id)
            if is_fallback_material(extra):
                LOG.warning('continuation_fell_back', extra={'leftover_chars': len(material.unprocessed_content)})
                return material
            return merge_continuation(material, extra)
        questions = await self.extend_quiz([], domain, topic=material.title, request_id=request_id)
        return material.model_copy(update={'quiz': material.quiz + questions})


def _item_count(result: Any) -> int:
    if isinstance(result, StudyMaterial):
        return len(result.quiz) + len(result.flashcards)
    return len(result)


def _domain_label(domain: Domain) -> Optional[str]:
    if isinstance(domain, StudyDomain):
        return domain.value
    return domain


# convenience
async def synthesize(content_parts: Sequence[ContentPart], domain: Domain = None, request_id: Optional[str] = None) -> StudyMaterial:
    return await StudyGenerator.get_instance().synthesize(content_parts, domain, request_id=request_id)


async def extend_quiz(content_parts: Sequence[ContentPart], domain: Domain = None, topic: Optional[str] = None, request_id: Optional[str] = None) -> List[QuizQuestion]:
    return await StudyGenerator.get_instance().extend_quiz(content_parts, domain, topic=topic, request_id=request_id)


async def remediate(content_parts: Sequence[ContentPart], failed_concept: str, domain: Domain = None, request_id: Optional[str] = None) -> List[QuizQuestion]:
    return await StudyGenerator.get_instance().remediate(content_parts, failed_concept, domain, request_id=request_id)


async def extend_flashcards(topic: str, domain: Domain = None, request_id: Optional[str] = None) -> List[Flashcard]:
    return await StudyGenerator.get_instance().extend_flashcards(topic, domain, request_id=request_id)


async def keep_going(material: StudyMaterial, domain: Domain = None, request_id: Optional[str] = None) -> StudyMaterial:
    return await StudyGenerator.get_instance().keep_going(material, domain, request_id=request_id)
