"""Textbook structure, content generation and citations."""

from .models import Chapter, Section, TextbookStructure, QuizQuestion
from .generator import ContentGenerator, GenerationError, MalformedResponseError
from .curriculum import build_structure, get_first_section, get_next_section, get_previous_section
from .citation import CitationStyle, format_citation

__all__ = [
    "Chapter",
    "Section",
    "TextbookStructure",
    "QuizQuestion",
    "ContentGenerator",
    "GenerationError",
    "MalformedResponseError",
    "build_structure",
    "get_first_section",
    "get_next_section",
    "get_previous_section",
    "CitationStyle",
    "format_citation",
]
