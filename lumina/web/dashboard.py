"""Streamlit reading view for Lumina."""

import streamlit as st
from pathlib import Path
import sys

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from lumina.config import AUDIENCES, DEFAULT_AUDIENCE, get_api_key
from lumina.content.citation import CitationStyle, citation_filename, format_citation
from lumina.content.curriculum import get_progress
from lumina.pdf.generator import HandoutGenerator
from lumina.reading.session import AppState, ReadingSession


def init_session_state():
    """Initialize session state variables."""
    if "reading" not in st.session_state:
        st.session_state.reading = ReadingSession()

    if "citation_style" not in st.session_state:
        st.session_state.citation_style = CitationStyle.APA.value


def get_session() -> ReadingSession:
    return st.session_state.reading


def main():
    """Main application."""
    st.set_page_config(
        page_title="Lumina",
        page_icon="📖",
        layout="wide"
    )

    init_session_state()
    state = get_session().state

    if state.app_state == AppState.READING and state.current_section:
        show_reader()
    else:
        show_welcome()


def show_welcome():
    """Topic and audience form."""
    session = get_session()
    state = session.state

    st.title("📖 Lumina")
    st.markdown("The AI-native textbook platform. Learn anything, tailored exactly to you.")

    if not get_api_key():
        st.warning("Anthropic API key is NOT configured. Set ANTHROPIC_API_KEY in .env")

    if state.error:
        st.error(state.error)

    labels = list(AUDIENCES.keys())
    default_index = list(AUDIENCES.values()).index(DEFAULT_AUDIENCE)

    with st.form("welcome_form"):
        topic = st.text_input(
            "What do you want to learn?",
            placeholder="e.g. Quantum Physics, Roman History, Gardening..."
        )
        audience_label = st.radio("Target Audience", labels, index=default_index, horizontal=True)
        submitted = st.form_submit_button("Generate Textbook", type="primary", use_container_width=True)

    if submitted:
        if not topic.strip():
            st.error("Please enter a topic.")
            return
        with st.spinner("Designing Curriculum..."):
            session.start(topic, AUDIENCES[audience_label])
        st.rerun()

    st.caption("Powered by Anthropic Claude")


def show_sidebar():
    """Table of contents with one button per section."""
    session = get_session()
    state = session.state
    structure = state.structure

    st.sidebar.title(structure.topic)
    st.sidebar.caption(f"For: {structure.target_audience}")

    progress = get_progress(structure, state.chapter_id, state.section_id)
    st.sidebar.progress(
        progress["percent_complete"] / 100,
        text=f"Section {progress['position']} of {progress['total']}"
    )

    for chapter_number, chapter in enumerate(structure.chapters, 1):
        with st.sidebar.expander(f"{chapter_number}. {chapter.title}", expanded=chapter.id == state.chapter_id):
            for section in chapter.sections:
                is_current = section.id == state.section_id
                if st.button(
                    section.title,
                    key=f"nav_{section.id}",
                    help=section.description,
                    type="primary" if is_current else "secondary",
                    use_container_width=True,
                    disabled=is_current,
                ):
                    session.select_section(chapter.id, section.id)
                    st.rerun()

    st.sidebar.divider()
    if st.sidebar.button("Start a New Textbook"):
        session.reset()
        st.rerun()


def show_reader():
    """Reading view for the current section."""
    session = get_session()
    show_sidebar()

    state = session.state
    chapter = state.current_chapter
    section = state.current_section

    st.caption(f"{chapter.title} › {section.title}")

    # Content is fetched on every visit; nothing is cached between visits
    if state.content is None and state.content_error is None:
        with st.spinner("Writing this section..."):
            session.load_content()
        state = session.state

    if state.content_error:
        st.error(state.content_error)
        if st.button("Retry"):
            session.select_section(chapter.id, section.id)
            st.rerun()
        return

    st.markdown(state.content)

    st.divider()
    show_explain_panel()
    show_quiz_panel()
    show_citation_panel()
    show_handout_download()

    st.divider()
    col1, col2 = st.columns(2)
    with col1:
        if st.button("← Previous Section", use_container_width=True):
            if session.previous_section():
                st.rerun()
    with col2:
        if st.button("Next Section →", type="primary", use_container_width=True):
            if session.next_section():
                st.rerun()
            else:
                st.info("You've reached the end of this textbook.")


def show_explain_panel():
    """Explain a phrase picked out of the section."""
    session = get_session()
    state = session.state

    with st.expander("✨ Explain this", expanded=bool(state.selection)):
        # Streamlit cannot read browser selections, so the phrase is pasted in
        with st.form(f"explain_form_{state.visit}"):
            phrase = st.text_input(
                "Paste a word or phrase from the section",
                value=state.selection or "",
                max_chars=199,
            )
            asked = st.form_submit_button("Explain")

        if asked:
            if session.select_text(phrase):
                with st.spinner("Thinking..."):
                    session.explain_selection()
                st.rerun()
            else:
                st.warning("Pick a phrase shorter than 200 characters.")

        if state.explanation:
            st.info(f"**{state.selection}**: {state.explanation}")
            if st.button("Dismiss", key="dismiss_explanation"):
                session.clear_selection()
                st.rerun()


def show_quiz_panel():
    """Quiz generation and one-question-at-a-time answering."""
    session = get_session()
    state = session.state
    quiz = state.quiz

    if quiz is None:
        if state.quiz_error:
            st.error(state.quiz_error)
        if st.button("🧠 Quiz me on this section"):
            with st.spinner("Writing quiz..."):
                session.generate_quiz()
            st.rerun()
        return

    if quiz.finished:
        st.subheader("Quiz Complete!")
        st.markdown(f"You scored **{quiz.score}** out of **{len(quiz.questions)}**")
        if st.button("Close Quiz"):
            session.close_quiz()
            st.rerun()
        return

    question = quiz.current_question
    st.markdown(f"**Question {quiz.current_index + 1} of {len(quiz.questions)}**")
    st.markdown(question.question)

    choice = st.radio(
        "Options",
        range(len(question.options)),
        format_func=lambda i: question.options[i],
        index=quiz.selected_option,
        key=f"quiz_{state.visit}_{quiz.current_index}",
        disabled=quiz.submitted,
        label_visibility="collapsed",
    )
    if choice is not None and choice != quiz.selected_option and not quiz.submitted:
        session.select_quiz_option(choice)

    if not quiz.submitted:
        if st.button("Submit Answer", disabled=choice is None):
            session.submit_quiz_answer()
            st.rerun()
        return

    if quiz.is_correct:
        st.success(f"Correct! {question.options[question.correct_index]}")
    else:
        st.error(f"Not quite. The answer is: {question.options[question.correct_index]}")
    st.info(f"**Explanation:** {question.explanation}")

    label = "See Results" if quiz.is_last_question else "Next Question"
    if st.button(label):
        session.next_quiz_question()
        st.rerun()


def show_citation_panel():
    """Citation text in the chosen style, with copy-friendly display and download."""
    state = get_session().state
    structure = state.structure

    with st.expander("❝ Cite this Section"):
        st.caption("Cite this AI-generated content in your research or notes using the formats below.")
        styles = [s.value for s in CitationStyle]
        style = st.radio(
            "Style",
            styles,
            index=styles.index(st.session_state.citation_style),
            horizontal=True,
            key="citation_style_selector",
        )
        st.session_state.citation_style = style

        citation = format_citation(
            style,
            structure.topic,
            state.current_chapter.title,
            state.current_section.title,
        )
        st.code(citation, language=None)
        st.download_button(
            "Export Text",
            data=citation,
            file_name=citation_filename(state.current_section.title),
            mime="text/plain",
        )


def show_handout_download():
    """Printable PDF of the section, including the quiz once generated."""
    state = get_session().state

    quiz = state.quiz.questions if state.quiz else None
    try:
        pdf_bytes = HandoutGenerator().build(
            state.structure,
            state.chapter_id,
            state.section_id,
            state.content,
            quiz=quiz,
        )
    except ValueError as e:
        st.warning(f"PDF handout unavailable: {e}")
        return
    st.download_button(
        "📄 Download PDF Handout",
        data=pdf_bytes,
        file_name=f"handout_{state.section_id}.pdf",
        mime="application/pdf",
    )


if __name__ == "__main__":
    main()
