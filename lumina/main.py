"""Command-line entry point for Lumina."""

from pathlib import Path

import click

from lumina.config import (
    AUDIENCES,
    DEFAULT_AUDIENCE,
    EXPORT_FOLDER,
    SELECTION_MAX_LENGTH,
    ConfigurationError,
    get_api_key,
    validate_config,
)
from lumina.content.citation import CitationStyle, format_citation
from lumina.content.curriculum import build_structure
from lumina.content.generator import ContentGenerator, GenerationError
from lumina.content.models import TextbookStructure

audience_option = click.option(
    "--audience", "-a",
    type=click.Choice(list(AUDIENCES.values())),
    default=DEFAULT_AUDIENCE,
    show_default=True,
    help="Who the textbook is written for",
)


def _load_structure(generator: ContentGenerator, topic: str, audience: str, outline_path) -> TextbookStructure:
    """Read a saved outline, or generate a fresh one for the topic."""
    if outline_path:
        return TextbookStructure.model_validate_json(Path(outline_path).read_text())
    if not topic or not topic.strip():
        raise click.UsageError("Give a TOPIC or --outline FILE.")
    click.echo(f"Designing curriculum for {topic!r}...", err=True)
    return build_structure(topic, audience, generator=generator)


def _pick_section(structure: TextbookStructure, chapter: int, section: int):
    """Look up a chapter/section by 1-based position."""
    if not 1 <= chapter <= len(structure.chapters):
        raise click.BadParameter(f"chapter must be 1-{len(structure.chapters)}", param_hint="--chapter")
    chapter_obj = structure.chapters[chapter - 1]
    if not 1 <= section <= len(chapter_obj.sections):
        raise click.BadParameter(f"section must be 1-{len(chapter_obj.sections)}", param_hint="--section")
    return chapter_obj, chapter_obj.sections[section - 1]


@click.group()
@click.pass_context
def cli(ctx):
    """Lumina AI-native textbook CLI."""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("generator", None)


def _generator(ctx) -> ContentGenerator:
    if ctx.obj.get("generator") is None:
        ctx.obj["generator"] = ContentGenerator()
    return ctx.obj["generator"]


@cli.command()
def check():
    """Check configuration."""
    try:
        issues = validate_config(require_api_key=True)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    for issue in issues:
        click.echo(f"  Warning: {issue}", err=True)
    click.echo(f"API key configured: {'Yes' if get_api_key() else 'No'}")
    click.echo(f"Export folder: {EXPORT_FOLDER}")
    click.echo("Ready to start learning!")


@cli.command()
@click.argument("topic")
@audience_option
@click.option("--json", "as_json", is_flag=True, help="Print the outline as JSON (reusable with --outline)")
@click.pass_context
def outline(ctx, topic, audience, as_json):
    """Generate a table of contents for TOPIC."""
    if not topic.strip():
        raise click.BadParameter("must not be empty", param_hint="TOPIC")

    try:
        structure = build_structure(topic, audience, generator=_generator(ctx))
    except (GenerationError, ConfigurationError) as e:
        raise click.ClickException(f"Failed to create curriculum: {e}")

    if as_json:
        click.echo(structure.model_dump_json(indent=2))
        return

    click.echo(f"\n=== {structure.topic} ===")
    click.echo(f"For: {structure.target_audience}\n")
    for ch_num, chapter in enumerate(structure.chapters, 1):
        click.echo(f"{ch_num}. {chapter.title}")
        for sec_num, section in enumerate(chapter.sections, 1):
            click.echo(f"   {ch_num}.{sec_num} {section.title}")
            if section.description:
                click.echo(f"        {section.description}")


@cli.command()
@click.argument("topic", required=False)
@audience_option
@click.option("--outline", "outline_path", type=click.Path(exists=True, dir_okay=False), help="Outline JSON from 'outline --json'")
@click.option("--chapter", "-c", type=int, default=1, show_default=True, help="Chapter number")
@click.option("--section", "-s", type=int, default=1, show_default=True, help="Section number")
@click.pass_context
def read(ctx, topic, audience, outline_path, chapter, section):
    """Write the prose for one section."""
    generator = _generator(ctx)
    try:
        structure = _load_structure(generator, topic, audience, outline_path)
        chapter_obj, section_obj = _pick_section(structure, chapter, section)
        text = generator.generate_section_content(
            structure.topic, chapter_obj.title, section_obj.title, structure.target_audience
        )
    except (GenerationError, ConfigurationError) as e:
        raise click.ClickException(f"Failed to generate content: {e}")

    click.echo(f"# {chapter_obj.title} › {section_obj.title}\n")
    click.echo(text)


@cli.command()
@click.argument("content_file", type=click.File("r"))
@click.option("--interactive", "-i", is_flag=True, help="Answer the questions in the terminal")
@click.pass_context
def quiz(ctx, content_file, interactive):
    """Quiz yourself on the prose in CONTENT_FILE ('-' for stdin)."""
    from .reading.session import QuizState

    try:
        questions = _generator(ctx).generate_quiz(content_file.read())
    except (GenerationError, ConfigurationError) as e:
        raise click.ClickException(f"Failed to generate quiz: {e}")

    if not interactive:
        for number, question in enumerate(questions, 1):
            click.echo(f"\n{number}. {question.question}")
            for idx, option in enumerate(question.options):
                marker = "*" if idx == question.correct_index else " "
                click.echo(f"  {marker} {idx + 1}) {option}")
            click.echo(f"  Explanation: {question.explanation}")
        return

    state = QuizState(questions=questions)
    while not state.finished:
        question = state.current_question
        click.echo(f"\nQuestion {state.current_index + 1} of {len(questions)}: {question.question}")
        for idx, option in enumerate(question.options):
            click.echo(f"  {idx + 1}) {option}")
        answer = click.prompt("Your answer", type=click.IntRange(1, len(question.options)))
        state = state.select_option(answer - 1).submit()
        if state.is_correct:
            click.echo("Correct!")
        else:
            click.echo(f"Not quite. The answer is {question.correct_index + 1}) {question.options[question.correct_index]}")
        click.echo(f"Explanation: {question.explanation}")
        state = state.advance()

    click.echo(f"\nQuiz Complete! You scored {state.score} out of {len(questions)}")


@cli.command()
@click.argument("phrase")
@click.option("--context-file", type=click.File("r"), default=None, help="Text the phrase was taken from")
@audience_option
@click.pass_context
def explain(ctx, phrase, context_file, audience):
    """Explain PHRASE simply."""
    if not phrase.strip():
        raise click.BadParameter("must not be empty", param_hint="PHRASE")
    if len(phrase) >= SELECTION_MAX_LENGTH:
        raise click.BadParameter(f"must be shorter than {SELECTION_MAX_LENGTH} characters", param_hint="PHRASE")

    context = context_file.read() if context_file else ""
    try:
        click.echo(_generator(ctx).explain_concept(phrase, context, audience))
    except (GenerationError, ConfigurationError) as e:
        raise click.ClickException(f"Failed to explain: {e}")


@cli.command()
@click.option("--style", type=click.Choice([s.value for s in CitationStyle]), default=CitationStyle.APA.value, show_default=True)
@click.option("--topic", required=True)
@click.option("--chapter", "chapter_title", required=True, help="Chapter title")
@click.option("--section", "section_title", required=True, help="Section title")
def cite(style, topic, chapter_title, section_title):
    """Print a citation for a section."""
    click.echo(format_citation(style, topic, chapter_title, section_title))


@cli.command()
@click.argument("topic", required=False)
@audience_option
@click.option("--outline", "outline_path", type=click.Path(exists=True, dir_okay=False), help="Outline JSON from 'outline --json'")
@click.option("--chapter", "-c", type=int, default=1, show_default=True, help="Chapter number")
@click.option("--section", "-s", type=int, default=1, show_default=True, help="Section number")
@click.option("--with-quiz", is_flag=True, help="Append a quiz and answer key")
@click.option("--output-dir", type=click.Path(file_okay=False), default=None, help="Where to write the PDF")
@click.pass_context
def handout(ctx, topic, audience, outline_path, chapter, section, with_quiz, output_dir):
    """Write a printable PDF handout for one section."""
    from .pdf.generator import HandoutGenerator

    generator = _generator(ctx)
    try:
        structure = _load_structure(generator, topic, audience, outline_path)
        chapter_obj, section_obj = _pick_section(structure, chapter, section)
        click.echo(f"Writing {section_obj.title!r}...", err=True)
        text = generator.generate_section_content(
            structure.topic, chapter_obj.title, section_obj.title, structure.target_audience
        )
        questions = generator.generate_quiz(text) if with_quiz else None
    except (GenerationError, ConfigurationError) as e:
        raise click.ClickException(f"Failed to generate handout: {e}")

    pdf_path = HandoutGenerator().save(
        structure, chapter_obj.id, section_obj.id, text, quiz=questions, folder=output_dir
    )
    click.echo(f"PDF: {pdf_path}")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
