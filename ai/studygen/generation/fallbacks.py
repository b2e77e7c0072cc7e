"""Fixed content returned when generation cannot produce a usable result.

Each accessor builds fresh objects so callers can extend the lists safely.
"""
from typing import List

from .models import Flashcard, QuizQuestion, StudyMaterial

FALLBACK_STUDY_MATERIAL = {
    'title': 'Study Material',
    'summary': 'Unable to generate AI content. Please try again or adjust your input.',
    'flashcards': [
        {'question': 'What key concepts did you learn?', 'answer': 'Review your notes for important topics.'},
    ],
    'quiz': [
        {
            'question': 'Which area do you need to study more?',
            'options': ['Pathophysiology', 'Pharmacology', 'Diagnosis', 'Management'],
            'correctAnswer': 0,
            'explanation': 'Focus on weak areas first.',
        },
    ],
}

FALLBACK_QUIZ = [
    {
        'question': "Review mode: What's the main topic you're studying?",
        'options': ['Cardiology', 'Pulmonology', 'Gastroenterology', 'Nephrology'],
        'correctAnswer': 0,
        'explanation': 'Choose your focus area to generate new questions.',
    },
]

FALLBACK_FLASHCARDS = [
    {
        'question': 'Review mode: Which topic should these cards cover?',
        'answer': 'Choose your focus area to generate new flashcards.',
    },
]


def fallback_study_material() -> StudyMaterial:
    return StudyMaterial.model_validate(FALLBACK_STUDY_MATERIAL)


def fallback_quiz(limit: int = None) -> List[QuizQuestion]:
    return [QuizQuestion.model_validate(q) for q in FALLBACK_QUIZ[:limit]]


def fallback_flashcards() -> List[Flashcard]:
    return [Flashcard.model_validate(c) for c in FALLBACK_FLASHCARDS]


def is_fallback_material(material: StudyMaterial) -> bool:
    return material.to_wire() == FALLBACK_STUDY_MATERIAL
