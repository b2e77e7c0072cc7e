"""Pydantic models for generated study material and request content parts.

Wire names follow the browser client (camelCase); attributes are snake_case.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StudyDomain(str, Enum):
    PA = 'PA'
    NURSING = 'Nursing'
    MEDICAL = 'Medical'
    GENED = 'GenEd'


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = 'multiple_choice'
    DIAGRAM_LABEL = 'diagram_label'
    MATCHING = 'matching'


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Flashcard(_WireModel):
    question: str
    answer: str


class DiagramLabel(_WireModel):
    label: str
    description: Optional[str] = None


class MatchPair(_WireModel):
    left: str
    right: str


class QuizQuestion(_WireModel):
    question: str
    options: List[str]
    correct_answer: int = Field(..., alias='correctAnswer')
    explanation: str
    subtopic: Optional[str] = None
    type: Optional[QuestionType] = None
    diagram_labels: Optional[List[DiagramLabel]] = Field(None, alias='diagramLabels')
    match_pairs: Optional[List[MatchPair]] = Field(None, alias='matchPairs')


class StudyMaterial(_WireModel):
    title: str
    summary: str
    flashcards: List[Flashcard] = Field(default_factory=list)
    quiz: List[QuizQuestion] = Field(default_factory=list)
    unprocessed_content: Optional[str] = Field(None, alias='unprocessedContent')
    content_coverage_percent: Optional[int] = Field(None, alias='contentCoveragePercent')

    @field_validator('title', 'summary')
    @classmethod
    def require_text(cls, v):
        if not v or not v.strip():
            raise ValueError('must be a non-empty string')
        return v

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode='json')


class TextPart(BaseModel):
    text: str
    filename: Optional[str] = None


class ImagePart(BaseModel):
    data: bytes
    mime_type: str = 'image/png'
    filename: Optional[str] = None


ContentPart = Union[TextPart, ImagePart]
