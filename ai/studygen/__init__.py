"""
Study material generation service.
Turns uploaded notes and images into summaries, flashcards and quizzes via Gemini.
"""
