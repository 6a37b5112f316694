"""Textbook structure building and helpers for moving between sections."""

import logging
from typing import Optional

from .generator import ContentGenerator, MalformedResponseError
from .models import Chapter, Outline, Section, TextbookStructure

logger = logging.getLogger("lumina.content")


def assign_ids(topic: str, target_audience: str, outline: Outline) -> TextbookStructure:
    """Turn a validated outline into a structure with positional IDs.

    Chapters become ``ch-<i>`` and sections ``sec-<i>-<j>``. IDs are fixed
    here and never renumbered.

    Raises:
        MalformedResponseError: the outline has no chapters, or a chapter has no sections.
    """
    if not outline.chapters:
        raise MalformedResponseError("Outline contained no chapters")

    chapters = []
    for ch_idx, outline_chapter in enumerate(outline.chapters):
        if not outline_chapter.sections:
            raise MalformedResponseError(f"Chapter {ch_idx} ({outline_chapter.title!r}) has no sections")
        chapters.append(Chapter(
            id=f"ch-{ch_idx}",
            title=outline_chapter.title,
            sections=[
                Section(
                    id=f"sec-{ch_idx}-{sec_idx}",
                    title=outline_section.title,
                    description=outline_section.description,
                )
                for sec_idx, outline_section in enumerate(outline_chapter.sections)
            ],
        ))

    return TextbookStructure(topic=topic, target_audience=target_audience, chapters=chapters)


def build_structure(
    topic: str,
    target_audience: str,
    generator: Optional[ContentGenerator] = None,
) -> TextbookStructure:
    """Generate a textbook structure for a topic.

    Raises:
        ValueError: topic is blank.
        GenerationError: the request failed or the reply was unusable.
    """
    topic = topic.strip()
    if not topic:
        raise ValueError("Topic must not be empty")

    generator = generator or ContentGenerator()
    outline = generator.generate_outline(topic, target_audience)
    structure = assign_ids(topic, target_audience, outline)

    logger.info(
        "Built structure for %r: %d chapters, %d sections",
        topic, len(structure.chapters), structure.section_count,
    )
    return structure


def get_first_section(structure: TextbookStructure) -> Optional[tuple[Chapter, Section]]:
    """Get the first section of the first chapter."""
    for chapter in structure.chapters:
        if chapter.sections:
            return chapter, chapter.sections[0]
    return None


def _locate(structure: TextbookStructure, chapter_id: str, section_id: str) -> Optional[tuple[int, int]]:
    for ch_idx, chapter in enumerate(structure.chapters):
        if chapter.id != chapter_id:
            continue
        for sec_idx, section in enumerate(chapter.sections):
            if section.id == section_id:
                return ch_idx, sec_idx
    return None


def get_next_section(
    structure: TextbookStructure, chapter_id: str, section_id: str
) -> Optional[tuple[Chapter, Section]]:
    """Get the next section in sequence (within chapter or next chapter).

    Returns None at the end of the last chapter.
    """
    position = _locate(structure, chapter_id, section_id)
    if position is None:
        return None
    ch_idx, sec_idx = position
    chapter = structure.chapters[ch_idx]

    # Try next section in same chapter
    if sec_idx < len(chapter.sections) - 1:
        return chapter, chapter.sections[sec_idx + 1]

    # Try first section in next chapter
    if ch_idx < len(structure.chapters) - 1:
        next_chapter = structure.chapters[ch_idx + 1]
        if next_chapter.sections:
            return next_chapter, next_chapter.sections[0]

    return None


def get_previous_section(
    structure: TextbookStructure, chapter_id: str, section_id: str
) -> Optional[tuple[Chapter, Section]]:
    """Get the previous section (within chapter or last of previous chapter)."""
    position = _locate(structure, chapter_id, section_id)
    if position is None:
        return None
    ch_idx, sec_idx = position
    chapter = structure.chapters[ch_idx]

    if sec_idx > 0:
        return chapter, chapter.sections[sec_idx - 1]

    if ch_idx > 0:
        prev_chapter = structure.chapters[ch_idx - 1]
        if prev_chapter.sections:
            return prev_chapter, prev_chapter.sections[-1]

    return None


def get_progress(structure: TextbookStructure, chapter_id: str, section_id: str) -> dict:
    """Get reading position as counts for a progress bar."""
    total = structure.section_count
    position = _locate(structure, chapter_id, section_id)
    if position is None or total == 0:
        return {"position": 0, "total": total, "percent_complete": 0.0}

    ch_idx, sec_idx = position
    before = sum(len(ch.sections) for ch in structure.chapters[:ch_idx])
    current = before + sec_idx + 1
    return {
        "position": current,
        "total": total,
        "percent_complete": current / total * 100,
    }
