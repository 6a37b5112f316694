from datetime import datetime

import pytest
from reportlab.platypus import Paragraph, Preformatted

from lumina.content.curriculum import assign_ids
from lumina.content.models import Outline, QuizQuestion
from lumina.pdf.generator import HandoutGenerator, option_label

from conftest import PHOTOSYNTHESIS_OUTLINE, QUIZ_PAYLOAD, SECTION_TEXT


@pytest.fixture
def structure():
    outline = Outline.model_validate(PHOTOSYNTHESIS_OUTLINE)
    return assign_ids("Photosynthesis", "High School Student", outline)


@pytest.fixture
def handouts():
    return HandoutGenerator()


def test_build_returns_pdf(handouts, structure):
    pdf = handouts.build(structure, "ch-1", "sec-1-0", SECTION_TEXT, when=datetime(2026, 10, 17))
    assert pdf.startswith(b"%PDF")


def test_build_with_quiz(handouts, structure):
    questions = [QuizQuestion.model_validate(q) for q in QUIZ_PAYLOAD["questions"]]

    pdf = handouts.build(structure, "ch-1", "sec-1-0", SECTION_TEXT, quiz=questions)

    assert pdf.startswith(b"%PDF")


def test_unknown_section(handouts, structure):
    with pytest.raises(ValueError):
        handouts.build(structure, "ch-0", "sec-1-0", SECTION_TEXT)


def test_save_writes_file(handouts, structure, tmp_path):
    path = handouts.save(structure, "ch-0", "sec-0-0", "Plants need **light**.", folder=tmp_path)

    assert path.parent == tmp_path
    assert path.name.startswith("handout_sec-0-0_")
    assert path.read_bytes().startswith(b"%PDF")


def test_markdown_conversion(handouts):
    flowables = handouts._markdown_to_flowables(SECTION_TEXT)

    paragraphs = [f for f in flowables if isinstance(f, Paragraph)]
    code = [f for f in flowables if isinstance(f, Preformatted)]
    assert paragraphs[0].style.name == "SectionHeading"
    assert len([p for p in paragraphs if p.style.name == "ListItem"]) == 2
    assert len(code) == 1


def test_inline_markup_escapes_html(handouts):
    assert handouts._inline_markup("a < b and **bold**") == "a &lt; b and <b>bold</b>"


@pytest.mark.parametrize("content", [
    "Multiply `a*b` by `c*d` to get the area.",
    "This is **very *important** indeed*.",
    "- a bullet with `x**2` and *half **open*",
])
def test_overlapping_emphasis_still_renders(handouts, structure, content):
    pdf = handouts.build(structure, "ch-0", "sec-0-0", content)
    assert pdf.startswith(b"%PDF")


def test_code_spans_keep_their_asterisks(handouts):
    assert handouts._inline_markup("Multiply `a*b` by `c*d`") == (
        'Multiply <font face="Courier">a*b</font> by <font face="Courier">c*d</font>'
    )


def test_emphasis_never_crosses_tags(handouts):
    assert handouts._inline_markup("This is **very *important** indeed*.") == (
        "This is <b>very *important</b> indeed*."
    )


def test_rejected_markup_falls_back_to_plain_text(handouts, monkeypatch):
    monkeypatch.setattr(handouts, "_inline_markup", lambda text: "<b>bro<i>ken</b></i>")

    paragraph = handouts._paragraph("**broken", "Normal")

    assert isinstance(paragraph, Paragraph)
    assert "broken" in paragraph.getPlainText()


def test_quiz_with_many_options(handouts, structure):
    question = QuizQuestion(
        question="Which letter?",
        options=[f"option {n}" for n in range(10)],
        correct_index=9,
        explanation="The last one.",
    )

    pdf = handouts.build(structure, "ch-0", "sec-0-0", SECTION_TEXT, quiz=[question])

    assert pdf.startswith(b"%PDF")


@pytest.mark.parametrize("index, label", [(0, "A"), (3, "D"), (25, "Z"), (26, "AA")])
def test_option_label(index, label):
    assert option_label(index) == label
