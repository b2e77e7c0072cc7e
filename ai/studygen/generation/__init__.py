"""
Generation pipeline: key rotation, retry with backoff, request assembly,
response parsing and fallback content.
"""
from .errors import StudyGenError, GenerationAPIError, GenerationTransportError, MalformedResponseError, MalformedResponseKind
from .models import StudyDomain, QuestionType, Flashcard, DiagramLabel, MatchPair, QuizQuestion, StudyMaterial, TextPart, ImagePart, ContentPart
from .key_pool import KeyPool
from .backoff import BackoffController, is_retryable
from .request_builder import TaskKind, RequestPayload, build_request
from .response_parser import parse_response
from .gemini_client import GeminiClient, GenerationResult
from .coverage import split_for_coverage, merge_continuation
from .fallbacks import fallback_study_material, fallback_quiz, fallback_flashcards, is_fallback_material
from .generator import StudyGenerator, synthesize, extend_quiz, remediate, extend_flashcards, keep_going

__all__ = [
	'StudyGenError', 'GenerationAPIError', 'GenerationTransportError', 'MalformedResponseError', 'MalformedResponseKind',
	'StudyDomain', 'QuestionType', 'Flashcard', 'DiagramLabel', 'MatchPair', 'QuizQuestion', 'StudyMaterial', 'TextPart', 'ImagePart', 'ContentPart',
	'KeyPool', 'BackoffController', 'is_retryable',
	'TaskKind', 'RequestPayload', 'build_request', 'parse_response',
	'GeminiClient', 'GenerationResult',
	'split_for_coverage', 'merge_continuation',
	'fallback_study_material', 'fallback_quiz', 'fallback_flashcards', 'is_fallback_material',
	'StudyGenerator', 'synthesize', 'extend_quiz', 'remediate', 'extend_flashcards', 'keep_going',
]
