"""Textbook data model and the response schemas the model is asked to fill."""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class Section(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: Optional[str] = None


class Chapter(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    sections: List[Section]


class TextbookStructure(BaseModel):
    """Generated outline for one topic. Built once per reading session."""

    model_config = ConfigDict(frozen=True)

    topic: str
    target_audience: str
    chapters: List[Chapter]

    def get_chapter(self, chapter_id: str) -> Optional[Chapter]:
        for chapter in self.chapters:
            if chapter.id == chapter_id:
                return chapter
        return None

    def get_section(self, chapter_id: str, section_id: str) -> Optional[Section]:
        chapter = self.get_chapter(chapter_id)
        if not chapter:
            return None
        for section in chapter.sections:
            if section.id == section_id:
                return section
        return None

    @property
    def section_count(self) -> int:
        return sum(len(ch.sections) for ch in self.chapters)


class QuizQuestion(BaseModel):
    """One multiple-choice question.

    The model replies with ``correctIndex``; both spellings are accepted.
    ``correct_index`` must point into ``options``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question: str
    options: List[str] = Field(min_length=2)
    correct_index: int = Field(alias="correctIndex", description="Zero-based index of the correct option")
    explanation: str

    @model_validator(mode="after")
    def check_correct_index(self):
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(
                f"correctIndex {self.correct_index} out of range for {len(self.options)} options"
            )
        return self


# --- Schemas for model replies (before IDs are assigned) ---

class OutlineSection(BaseModel):
    title: str
    description: str = Field(description="A brief one-sentence summary of what this section covers")


class OutlineChapter(BaseModel):
    title: str
    sections: List[OutlineSection]


class Outline(BaseModel):
    chapters: List[OutlineChapter]


class QuizSet(BaseModel):
    questions: List[QuizQuestion]
