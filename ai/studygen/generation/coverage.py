"""Character budget for source text and continuation of partially covered notes."""
from __future__ import annotations

import os
from typing import List, Sequence, Tuple

from .models import ContentPart, StudyMaterial, TextPart

STUDY_MAX_CHAR_COUNT = int(os.getenv('STUDY_MAX_CHAR_COUNT', '100000'))
CONTINUATION_MARKER = '\n\n[Continued from remaining content]\n'


def split_for_coverage(parts: Sequence[ContentPart], max_chars: int = STUDY_MAX_CHAR_COUNT) -> Tuple[List[ContentPart], str, int]:
    """Keep text parts up to ``max_chars`` characters in total.

    Returns ``(kept_parts, leftover_text, coverage_percent)``. The text part that
    crosses the limit is cut; later text parts go entirely to the leftover.
    Image parts are always kept.
    """
    kept: List[ContentPart] = []
    leftover: List[str] = []
    used = 0
    for part in parts:
        if not isinstance(part, TextPart):
            kept.append(part)
            continue
        room = max_chars - used
        if room <= 0:
            leftover.append(part.text)
            continue
        if len(part.text) > room:
            kept.append(TextPart(text=part.text[:room], filename=part.filename))
            leftover.append(part.text[room:])
            used = max_chars
            continue
        kept.append(part)
        used += len(part.text)

    leftover_chars = sum(len(t) for t in leftover)
    if not leftover_chars:
        return kept, '', 100
    return kept, '\n\n'.join(leftover), round(used / (used + leftover_chars) * 100)


def merge_continuation(material: StudyMaterial, extra: StudyMaterial) -> StudyMaterial:
    """Append material generated from ``material.unprocessed_content``.

    ``extra`` may itself carry leftover text when the remainder was still over
    the character budget; coverage is then recomputed against the whole source.
    """
    remaining = extra.unprocessed_content or ''
    coverage = 100
    previous = material.content_coverage_percent
    if remaining and previous is not None and previous < 100:
        total = len(material.unprocessed_content or '') / (1 - previous / 100.0)
        coverage = round((total - len(remaining)) / total * 100)
    elif remaining:
        coverage = extra.content_coverage_percent
    return material.model_copy(update={
        'summary': material.summary + CONTINUATION_MARKER + extra.summary,
        'flashcards': material.flashcards + extra.flashcards,
        'quiz': material.quiz + extra.quiz,
        'unprocessed_content': remaining,
        'content_coverage_percent': coverage,
    })
