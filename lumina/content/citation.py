"""Citation strings for generated sections."""

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from ..config import APP_URL, BOOK_AUTHOR, BOOK_TITLE

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class CitationStyle(str, Enum):
    APA = "APA"
    MLA = "MLA"
    CHICAGO = "Chicago"
    HARVARD = "Harvard"


def _long_date(when: datetime) -> str:
    # e.g. "October 17, 2026"
    return f"{_MONTHS[when.month - 1]} {when.day}, {when.year}"


def _short_date(when: datetime) -> str:
    # e.g. "Oct 17, 2026"
    return f"{_MONTHS[when.month - 1][:3]} {when.day}, {when.year}"


def format_citation(
    style,
    topic: str,
    chapter_title: str,
    section_title: str,
    when: Optional[datetime] = None,
    url: str = APP_URL,
) -> str:
    """Format a citation for one section.

    Output depends only on the arguments (``when`` defaults to now). The
    chapter title is part of the signature but none of the styles print it.

    Raises:
        ValueError: unknown style.
    """
    style = CitationStyle(style)
    when = when or datetime.now()
    year = when.year

    if style == CitationStyle.APA:
        return (
            f"{BOOK_AUTHOR}. ({year}). {section_title}. In {BOOK_TITLE} ({topic}). "
            f"Retrieved {_long_date(when)}, from {url}"
        )
    if style == CitationStyle.MLA:
        return f"\"{section_title}.\" {BOOK_TITLE}, {BOOK_AUTHOR}, {year}, {url}."
    if style == CitationStyle.CHICAGO:
        return f"{BOOK_AUTHOR}. \"{section_title}.\" {BOOK_TITLE} ({topic}). {year}. {url}."
    return (
        f"{BOOK_AUTHOR} ({year}) '{section_title}', in {BOOK_TITLE} ({topic}). "
        f"Available at: {url} (Accessed: {_short_date(when)})."
    )


def citation_filename(section_title: str) -> str:
    """File name for a downloaded citation, e.g. ``citation-light-reactions.txt``."""
    slug = re.sub(r"\s+", "-", section_title[:20]).lower()
    return f"citation-{slug}.txt"
