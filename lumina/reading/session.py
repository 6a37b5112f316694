"""Reading session state machine.

The whole session is one frozen ``SessionState`` value. ``ReadingSession``
owns the current value and replaces it on every transition, so views only
ever read a consistent snapshot::

    WELCOME --start--> GENERATING_STRUCTURE --ok--> READING
                                            --fail--> WELCOME (with error)

Results of model calls are applied with the visit token they were issued
under. Selecting a section bumps the token, so a reply for a section the
reader has already left is dropped.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..config import ConfigurationError, SELECTION_MAX_LENGTH
from ..content.curriculum import (
    build_structure,
    get_first_section,
    get_next_section,
    get_previous_section,
)
from ..content.generator import ContentGenerator, GenerationError
from ..content.models import Chapter, QuizQuestion, Section, TextbookStructure

logger = logging.getLogger("lumina.reading")

STRUCTURE_ERROR = "Failed to create curriculum. Please try again with a simpler topic."
CONTENT_ERROR = "Failed to generate content. Please try again."
QUIZ_ERROR = "Failed to generate quiz. Please try again."
EXPLANATION_ERROR = "Failed to explain."


class AppState(str, Enum):
    WELCOME = "WELCOME"
    GENERATING_STRUCTURE = "GENERATING_STRUCTURE"
    READING = "READING"


class QuizState(BaseModel):
    """Progress through one quiz. Every method returns a new value."""

    model_config = ConfigDict(frozen=True)

    questions: list[QuizQuestion]
    current_index: int = 0
    selected_option: Optional[int] = None
    submitted: bool = False
    score: int = 0
    finished: bool = False

    @property
    def current_question(self) -> QuizQuestion:
        return self.questions[self.current_index]

    @property
    def is_correct(self) -> Optional[bool]:
        """Whether the submitted answer was right; None before submission."""
        if not self.submitted:
            return None
        return self.selected_option == self.current_question.correct_index

    @property
    def is_last_question(self) -> bool:
        return self.current_index >= len(self.questions) - 1

    def select_option(self, index: int) -> "QuizState":
        if self.submitted or self.finished:
            return self
        if not 0 <= index < len(self.current_question.options):
            raise ValueError(f"Option {index} out of range")
        return self.model_copy(update={"selected_option": index})

    def submit(self) -> "QuizState":
        if self.selected_option is None or self.submitted or self.finished:
            return self
        correct = self.selected_option == self.current_question.correct_index
        return self.model_copy(update={
            "submitted": True,
            "score": self.score + 1 if correct else self.score,
        })

    def advance(self) -> "QuizState":
        if not self.submitted:
            return self
        if self.is_last_question:
            return self.model_copy(update={"finished": True})
        return self.model_copy(update={
            "current_index": self.current_index + 1,
            "selected_option": None,
            "submitted": False,
        })


class SessionState(BaseModel):
    """Everything the reading view shows, as one serializable value."""

    model_config = ConfigDict(frozen=True)

    app_state: AppState = AppState.WELCOME
    error: Optional[str] = None
    structure: Optional[TextbookStructure] = None
    chapter_id: Optional[str] = None
    section_id: Optional[str] = None
    visit: int = 0

    # Per-section state, cleared on every section change
    content: Optional[str] = None
    content_error: Optional[str] = None
    quiz: Optional[QuizState] = None
    quiz_error: Optional[str] = None
    selection: Optional[str] = None
    explanation: Optional[str] = None

    @property
    def current_chapter(self) -> Optional[Chapter]:
        if not self.structure or not self.chapter_id:
            return None
        return self.structure.get_chapter(self.chapter_id)

    @property
    def current_section(self) -> Optional[Section]:
        if not self.structure or not self.chapter_id or not self.section_id:
            return None
        return self.structure.get_section(self.chapter_id, self.section_id)


_SECTION_RESET = {
    "content": None,
    "content_error": None,
    "quiz": None,
    "quiz_error": None,
    "selection": None,
    "explanation": None,
}


class ReadingSession:
    """Drive one reader through a generated textbook."""

    def __init__(self, generator: Optional[ContentGenerator] = None):
        self.generator = generator or ContentGenerator()
        self._state = SessionState()

    @property
    def state(self) -> SessionState:
        return self._state

    def _update(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)

    def _is_live(self, visit: int) -> bool:
        if visit != self._state.visit:
            logger.debug("Dropping result for visit %d (now %d)", visit, self._state.visit)
            return False
        return True

    def reset(self) -> None:
        """Return to the welcome screen with nothing loaded."""
        self._state = SessionState()

    # --- Structure ---

    def start(self, topic: str, target_audience: str) -> bool:
        """Generate a structure and open its first section.

        Returns True when reading can begin. On failure the session is back at
        WELCOME with ``error`` set and no structure.
        """
        if not topic.strip():
            raise ValueError("Topic must not be empty")

        self._state = SessionState(app_state=AppState.GENERATING_STRUCTURE)
        try:
            structure = build_structure(topic, target_audience, generator=self.generator)
        except (GenerationError, ConfigurationError):
            logger.exception("Structure generation failed for %r", topic)
            self._state = SessionState(error=STRUCTURE_ERROR)
            return False

        first = get_first_section(structure)
        self._state = SessionState(
            app_state=AppState.READING,
            structure=structure,
            chapter_id=first[0].id if first else None,
            section_id=first[1].id if first else None,
            visit=1,
        )
        return True

    # --- Navigation ---

    def select_section(self, chapter_id: str, section_id: str) -> None:
        """Open a section, discarding everything shown for the previous one."""
        structure = self._state.structure
        if self._state.app_state != AppState.READING or structure is None:
            raise ValueError("No textbook is open")
        if structure.get_section(chapter_id, section_id) is None:
            raise ValueError(f"Unknown section {chapter_id}/{section_id}")

        self._update(
            chapter_id=chapter_id,
            section_id=section_id,
            visit=self._state.visit + 1,
            **_SECTION_RESET,
        )

    def next_section(self) -> bool:
        """Move to the following section. No-op at the very end."""
        state = self._state
        if state.structure is None or state.chapter_id is None or state.section_id is None:
            return False
        target = get_next_section(state.structure, state.chapter_id, state.section_id)
        if target is None:
            return False
        self.select_section(target[0].id, target[1].id)
        return True

    def previous_section(self) -> bool:
        """Move to the preceding section. No-op at the very start."""
        state = self._state
        if state.structure is None or state.chapter_id is None or state.section_id is None:
            return False
        target = get_previous_section(state.structure, state.chapter_id, state.section_id)
        if target is None:
            return False
        self.select_section(target[0].id, target[1].id)
        return True

    # --- Section content ---

    def load_content(self, previous_context: Optional[str] = None) -> None:
        """Fetch prose for the current section."""
        state = self._state
        chapter, section = state.current_chapter, state.current_section
        if chapter is None or section is None:
            return

        visit = state.visit
        try:
            text = self.generator.generate_section_content(
                state.structure.topic,
                chapter.title,
                section.title,
                state.structure.target_audience,
                previous_context=previous_context,
            )
        except (GenerationError, ConfigurationError):
            logger.exception("Content generation failed for %s", section.id)
            self.apply_content_error(visit, CONTENT_ERROR)
            return
        self.apply_content(visit, text)

    def apply_content(self, visit: int, text: str) -> bool:
        if not self._is_live(visit):
            return False
        self._update(content=text, content_error=None)
        return True

    def apply_content_error(self, visit: int, message: str) -> bool:
        if not self._is_live(visit):
            return False
        self._update(content=None, content_error=message)
        return True

    # --- Quiz ---

    def generate_quiz(self) -> None:
        """Build a quiz from the loaded content. Does nothing before content loads."""
        state = self._state
        if not state.content:
            return

        visit = state.visit
        try:
            questions = self.generator.generate_quiz(state.content)
        except (GenerationError, ConfigurationError):
            logger.exception("Quiz generation failed for %s", state.section_id)
            if self._is_live(visit):
                self._update(quiz=None, quiz_error=QUIZ_ERROR)
            return
        self.apply_quiz(visit, questions)

    def apply_quiz(self, visit: int, questions: list[QuizQuestion]) -> bool:
        if not self._is_live(visit):
            return False
        self._update(quiz=QuizState(questions=questions), quiz_error=None)
        return True

    def _update_quiz(self, quiz: Optional[QuizState]) -> None:
        if quiz is not self._state.quiz:
            self._update(quiz=quiz)

    def select_quiz_option(self, index: int) -> None:
        if self._state.quiz:
            self._update_quiz(self._state.quiz.select_option(index))

    def submit_quiz_answer(self) -> None:
        if self._state.quiz:
            self._update_quiz(self._state.quiz.submit())

    def next_quiz_question(self) -> None:
        if self._state.quiz:
            self._update_quiz(self._state.quiz.advance())

    def close_quiz(self) -> None:
        self._update(quiz=None, quiz_error=None)

    # --- Selection & explanation ---

    def select_text(self, span: str) -> bool:
        """Remember a phrase the reader picked out. Blank or over-long spans are ignored."""
        if not span.strip() or len(span) >= SELECTION_MAX_LENGTH:
            return False
        self._update(selection=span, explanation=None)
        return True

    def clear_selection(self) -> None:
        self._update(selection=None, explanation=None)

    def explain_selection(self) -> None:
        state = self._state
        if not state.selection or not state.content:
            return

        visit = state.visit
        try:
            explanation = self.generator.explain_concept(
                state.selection, state.content, state.structure.target_audience
            )
        except (GenerationError, ConfigurationError):
            logger.exception("Explanation failed for %r", state.selection)
            explanation = EXPLANATION_ERROR
        self.apply_explanation(visit, explanation)

    def apply_explanation(self, visit: int, explanation: str) -> bool:
        if not self._is_live(visit):
            return False
        self._update(explanation=explanation)
        return True
