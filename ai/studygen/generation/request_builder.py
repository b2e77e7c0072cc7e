"""Assemble Gemini requests from the task descriptor table."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from google.genai import types

from studygen.utils import get_logger
from . import prompts
from .models import ContentPart, Flashcard, ImagePart, QuizQuestion, StudyDomain, StudyMaterial, TextPart

LOG = get_logger()

SYNTHESIS_MAX_OUTPUT_TOKENS = int(os.getenv('SYNTHESIS_MAX_OUTPUT_TOKENS', '16384'))
QUIZ_EXTENSION_MAX_OUTPUT_TOKENS = int(os.getenv('QUIZ_EXTENSION_MAX_OUTPUT_TOKENS', '4096'))
REMEDIATION_MAX_OUTPUT_TOKENS = int(os.getenv('REMEDIATION_MAX_OUTPUT_TOKENS', '2048'))
FLASHCARD_EXTENSION_MAX_OUTPUT_TOKENS = int(os.getenv('FLASHCARD_EXTENSION_MAX_OUTPUT_TOKENS', '4096'))


class TaskKind(str, Enum):
    SYNTHESIS = 'synthesis'
    QUIZ_EXTENSION = 'quiz_extension'
    REMEDIATION = 'remediation'
    FLASHCARD_EXTENSION = 'flashcard_extension'


@dataclass(frozen=True)
class TaskDescriptor:
    prompt_template: str
    response_schema: Dict[str, Any]
    result_type: Any
    max_output_tokens: int
    system_instruction_key: StudyDomain
    # template fields filled when the caller leaves them out
    defaults: Dict[str, str] = field(default_factory=dict)


TASKS: Dict[TaskKind, TaskDescriptor] = {
    TaskKind.SYNTHESIS: TaskDescriptor(
        prompt_template=prompts.SYNTHESIS_PROMPT,
        response_schema=prompts.STUDY_MATERIAL_SCHEMA,
        result_type=StudyMaterial,
        max_output_tokens=SYNTHESIS_MAX_OUTPUT_TOKENS,
        system_instruction_key=prompts.DEFAULT_DOMAIN,
    ),
    TaskKind.QUIZ_EXTENSION: TaskDescriptor(
        prompt_template=prompts.QUIZ_EXTENSION_PROMPT,
        response_schema=prompts.QUIZ_LIST_SCHEMA,
        result_type=List[QuizQuestion],
        max_output_tokens=QUIZ_EXTENSION_MAX_OUTPUT_TOKENS,
        system_instruction_key=prompts.DEFAULT_DOMAIN,
        defaults={'topic': 'the attached material'},
    ),
    TaskKind.REMEDIATION: TaskDescriptor(
        prompt_template=prompts.REMEDIATION_PROMPT,
        response_schema=prompts.QUIZ_LIST_SCHEMA,
        result_type=List[QuizQuestion],
        max_output_tokens=REMEDIATION_MAX_OUTPUT_TOKENS,
        system_instruction_key=prompts.DEFAULT_DOMAIN,
        defaults={'concept': 'the attached material'},
    ),
    TaskKind.FLASHCARD_EXTENSION: TaskDescriptor(
        prompt_template=prompts.FLASHCARD_EXTENSION_PROMPT,
        response_schema=prompts.FLASHCARD_LIST_SCHEMA,
        result_type=List[Flashcard],
        max_output_tokens=FLASHCARD_EXTENSION_MAX_OUTPUT_TOKENS,
        system_instruction_key=StudyDomain.GENED,
        defaults={'topic': 'the current topic'},
    ),
}


@dataclass(frozen=True)
class RequestPayload:
    task: TaskKind
    system_instruction: str
    contents: List[types.Part]
    response_schema: Dict[str, Any]
    max_output_tokens: int
    result_type: Any


def resolve_domain(domain: Union[StudyDomain, str, None], fallback: StudyDomain = prompts.DEFAULT_DOMAIN) -> StudyDomain:
    if domain is None:
        return fallback
    if isinstance(domain, StudyDomain):
        return domain
    try:
        return StudyDomain(domain)
    except ValueError:
        LOG.warning('unknown_study_domain', extra={'domain': domain, 'fallback': fallback.value})
        return fallback


def serialize_part(part: ContentPart) -> types.Part:
    if isinstance(part, ImagePart):
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
    if isinstance(part, TextPart):
        if part.filename:
            return types.Part.from_text(text=f'--- {part.filename} ---\n{part.text}')
        return types.Part.from_text(text=part.text)
    raise TypeError(f'Unsupported content part: {type(part).__name__}')


def build_request(task: TaskKind, domain: Union[StudyDomain, str, None] = None, content_parts: Optional[Sequence[ContentPart]] = None, **fields: str) -> RequestPayload:
    descriptor = TASKS[task]
    resolved = resolve_domain(domain, fallback=descriptor.system_instruction_key)
    parts = list(content_parts or [])

    values = {'source_count': str(len(parts))}
    values.update(descriptor.defaults)
    values.update({k: v for k, v in fields.items() if v})
    prompt = descriptor.prompt_template.format(**values)

    # source material first, instructions last
    contents = [serialize_part(p) for p in parts]
    contents.append(types.Part.from_text(text=prompt))

    return RequestPayload(
        task=task,
        system_instruction=prompts.DOMAIN_INSTRUCTIONS[resolved],
        contents=contents,
        response_schema=descriptor.response_schema,
        max_output_tokens=descriptor.max_output_tokens,
        result_type=descriptor.result_type,
    )
