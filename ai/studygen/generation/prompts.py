"""Prompt text and response schemas for the study generation tasks."""
import os

from studygen.utils import get_logger
from .models import StudyDomain

LOG = get_logger()


def default_domain_from_env(value=None) -> StudyDomain:
    value = value if value is not None else os.getenv('STUDY_DEFAULT_DOMAIN', 'PA')
    try:
        return StudyDomain(value)
    except ValueError:
        LOG.warning('unknown_default_domain', extra={'domain': value, 'fallback': StudyDomain.PA.value})
        return StudyDomain.PA


DEFAULT_DOMAIN = default_domain_from_env()

DOMAIN_INSTRUCTIONS = {
    StudyDomain.PA: (
        "You generate study materials for PA students preparing for PANCE. "
        "Focus on board-style clinical reasoning, differential diagnosis, and high-yield concepts."
    ),
    StudyDomain.NURSING: (
        "You generate study materials for nursing students preparing for NCLEX. "
        "Focus on patient safety, nursing judgment, assessment findings, and clinical interventions."
    ),
    StudyDomain.MEDICAL: (
        "You generate study materials for medical students preparing for USMLE. "
        "Focus on pathophysiology mechanisms, diagnostic reasoning, and evidence-based management."
    ),
    StudyDomain.GENED: (
        "You generate comprehensive study materials for any subject. "
        "Focus on clear explanations, concept connections, and practical applications."
    ),
}

SYNTHESIS_PROMPT = """Create a study guide from the {source_count} attached source(s). Treat all of them as one body of notes.

The summary must contain these sections:

Big Picture Question: [What is the key concept?]

Key Concepts & Definitions:
- Term: Definition
- Term: Definition

Comparison Table:
| Item | Aspect A | Aspect B |
| --- | --- | --- |
| Feature | Detail | Detail |

Test Yourself:
- Question 1?
- Question 2?

Common Misconception: [Misconception] vs [Correct Understanding]

Then generate 15-20 exam questions and 15-20 flashcard pairs.

Quiz rules:
- Mix interaction types: mostly "multiple_choice", plus a few "diagram_label" (fill diagramLabels) and "matching" (fill matchPairs) questions when the material supports them.
- Every question has exactly 4 options, a correctAnswer index, an explanation and a short subtopic.
- Spread correctAnswer roughly evenly across 0, 1, 2 and 3. Do not favour any position.

Return only the JSON object."""

QUIZ_EXTENSION_PROMPT = """SPACED REPETITION MODE: Student is reviewing "{topic}" to strengthen long-term memory.

GENERATE 5 NEW questions that:
1. Test DIFFERENT ASPECTS than previous questions (avoid repeating question styles already seen)
2. Use VARIED SCENARIOS: different patient ages, presentations, complications
3. Mix DIFFICULTY LEVELS: easier recall, intermediate, and advanced application
4. INTERLEAVE related concepts: require distinguishing between similar ideas
5. TARGET MISCONCEPTIONS: include edge cases and common board exam errors

Each question must have:
- A realistic clinical vignette
- Clear correct answer with strong reasoning
- Plausible distractors that test misconceptions
- Explanation that reinforces learning

Spread correctAnswer roughly evenly across 0, 1, 2 and 3.

Return only the JSON array of questions."""

REMEDIATION_PROMPT = """REMEDIATION MODE: Student got a question wrong about "{concept}". Generate targeted learning questions.

GENERATE 2 STRATEGIC questions that:
1. TARGET THE MISCONCEPTION: Help student understand what went wrong
2. DEEPEN UNDERSTANDING: Explain WHY the correct answer is right
3. VARY THE SCENARIO: Different patient presentations of the same concept
4. TEST APPLICATION: Apply concept in new contexts
5. COMPARE & CONTRAST: Link to similar concepts to prevent future confusion

Each question must:
- Directly address the struggling concept
- Approach from a different angle than the original
- Have detailed explanations that clarify misconceptions
- Include clinical reasoning for long-term retention

Return only the JSON array with 2 questions."""

FLASHCARD_EXTENSION_PROMPT = """Create 15 NEW flashcard pairs about "{topic}".

Rules:
- Skip common knowledge a student at this level already knows; prefer high-yield, testable facts.
- One idea per card. Questions are atomic; answers are 1-3 sentences.
- Vary the card style: definitions, mechanisms, comparisons, and clinical applications.

Return only the JSON array of flashcards."""

FLASHCARD_SCHEMA = {
    'type': 'OBJECT',
    'properties': {
        'question': {'type': 'STRING'},
        'answer': {'type': 'STRING'},
    },
    'required': ['question', 'answer'],
}

QUIZ_QUESTION_SCHEMA = {
    'type': 'OBJECT',
    'properties': {
        'question': {'type': 'STRING'},
        'options': {'type': 'ARRAY', 'items': {'type': 'STRING'}},
        'correctAnswer': {'type': 'INTEGER'},
        'explanation': {'type': 'STRING'},
        'subtopic': {'type': 'STRING'},
        'type': {'type': 'STRING', 'enum': ['multiple_choice', 'diagram_label', 'matching']},
        'diagramLabels': {
            'type': 'ARRAY',
            'items': {
                'type': 'OBJECT',
                'properties': {
                    'label': {'type': 'STRING'},
                    'description': {'type': 'STRING'},
                },
                'required': ['label'],
            },
        },
        'matchPairs': {
            'type': 'ARRAY',
            'items': {
                'type': 'OBJECT',
                'properties': {
                    'left': {'type': 'STRING'},
                    'right': {'type': 'STRING'},
                },
                'required': ['left', 'right'],
            },
        },
    },
    'required': ['question', 'options', 'correctAnswer', 'explanation', 'subtopic'],
}

STUDY_MATERIAL_SCHEMA = {
    'type': 'OBJECT',
    'properties': {
        'title': {'type': 'STRING', 'description': 'A concise title'},
        'summary': {'type': 'STRING', 'description': 'Pedagogical summary of high-yield concepts'},
        'flashcards': {'type': 'ARRAY', 'items': FLASHCARD_SCHEMA},
        'quiz': {'type': 'ARRAY', 'items': QUIZ_QUESTION_SCHEMA},
    },
    'required': ['title', 'summary', 'flashcards', 'quiz'],
}

QUIZ_LIST_SCHEMA = {'type': 'ARRAY', 'items': QUIZ_QUESTION_SCHEMA}

FLASHCARD_LIST_SCHEMA = {'type': 'ARRAY', 'items': FLASHCARD_SCHEMA}
