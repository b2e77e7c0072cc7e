"""Parse model output against the expected result shape.

The only repair attempted is appending one missing closing ``}`` or ``]`` to
output that was cut off right before its final delimiter. Anything else
(a truncated string, a missing value, several unclosed containers) is
reported as malformed; this is not a general JSON repairer.
"""
from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from studygen.utils import get_logger
from .errors import MalformedResponseError, MalformedResponseKind

LOG = get_logger()

_CLOSERS = {'{': '}', '[': ']'}


@lru_cache(maxsize=None)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


def _empty_literal(shape: Any) -> str:
    return '[]' if getattr(shape, '__origin__', None) is list else '{}'


def repair_truncated(text: str) -> Optional[str]:
    stripped = text.strip()
    if not stripped:
        return None
    closer = _CLOSERS.get(stripped[0])
    if closer is None or stripped.endswith(closer):
        return None
    return stripped + closer


def load_json(raw_text: Optional[str], empty: str = '{}') -> Any:
    text = raw_text if raw_text and raw_text.strip() else empty
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        repaired = repair_truncated(text)
        if repaired is None:
            raise MalformedResponseError(f'Response is not valid JSON: {e}', MalformedResponseKind.UNPARSEABLE, raw_text) from e
        try:
            value = json.loads(repaired)
        except json.JSONDecodeError as e2:
            raise MalformedResponseError(f'Response is not valid JSON after repair: {e2}', MalformedResponseKind.UNPARSEABLE, raw_text) from e2
        LOG.info('response_repaired', extra={'appended': repaired[-1]})
        return value


def _describe(error: ValidationError) -> str:
    # locations and messages only, never the model's own text
    problems = []
    for err in error.errors(include_url=False, include_input=False):
        loc = '.'.join(str(p) for p in err['loc']) or '<root>'
        problems.append(f"{loc}: {err['msg']}")
    return '; '.join(problems)


def parse_response(raw_text: Optional[str], shape: Any) -> Any:
    """Parse ``raw_text`` and validate it as ``shape`` (a model or ``List[model]``)."""
    data = load_json(raw_text, empty=_empty_literal(shape))
    try:
        return _adapter(shape).validate_python(data)
    except ValidationError as e:
        raise MalformedResponseError(f'Response does not match expected shape: {_describe(e)}', MalformedResponseKind.INVALID_SHAPE, raw_text) from e
