"""Reading session: navigation, per-section state and quizzes."""

from .session import AppState, QuizState, ReadingSession, SessionState

__all__ = [
    "AppState",
    "QuizState",
    "ReadingSession",
    "SessionState",
]
