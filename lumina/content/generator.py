"""Claude-powered generation of textbook outlines, prose, quizzes and explanations."""

import logging
import time
from typing import Optional, Type
from anthropic import (
    Anthropic,
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    RateLimitError,
)
from pydantic import BaseModel, ValidationError

from ..config import (
    API_MAX_RETRIES,
    API_RETRY_DELAY,
    CLAUDE_MODEL,
    EXPLAIN_CONTEXT_LIMIT,
    EXPLANATION_MAX_TOKENS,
    MAX_CHAPTERS,
    MAX_SECTIONS,
    MAX_TOKENS,
    MIN_CHAPTERS,
    MIN_SECTIONS,
    PREVIOUS_CONTEXT_LIMIT,
    QUIZ_CONTENT_LIMIT,
    QUIZ_OPTION_COUNT,
    QUIZ_QUESTION_COUNT,
    SELECTION_MAX_LENGTH,
    ConfigurationError,
    get_api_key,
)
from .models import Outline, QuizQuestion, QuizSet

logger = logging.getLogger("lumina.content")

CONTENT_FALLBACK = "Failed to generate content."
EXPLANATION_FALLBACK = "Could not explain this concept."


class GenerationError(Exception):
    """Raised when a generation request fails or its reply is unusable."""
    pass


class MalformedResponseError(GenerationError):
    """Raised when the model's reply is missing or does not match the requested schema."""
    pass


class ContentGenerator:
    """Generate textbook outlines, section prose, quizzes and explanations using Claude."""

    def __init__(self, client: Optional[Anthropic] = None, model: str = CLAUDE_MODEL):
        self._client = client
        self.model = model

    @property
    def client(self) -> Anthropic:
        """Anthropic client, built on first use so the key is read at call time."""
        if self._client is None:
            api_key = get_api_key()
            if not api_key:
                raise ConfigurationError("ANTHROPIC_API_KEY not set in environment")
            self._client = Anthropic(api_key=api_key)
        return self._client

    def _api_call_with_retry(self, **kwargs) -> object:
        """Make an Anthropic API call with retry logic for transient errors."""
        last_error = None
        for attempt in range(1, API_MAX_RETRIES + 1):
            try:
                return self.client.messages.create(**kwargs)
            except RateLimitError as e:
                last_error = e
                wait = API_RETRY_DELAY * attempt
                logger.warning("Rate limited (attempt %d/%d), retrying in %ds", attempt, API_MAX_RETRIES, wait)
                time.sleep(wait)
            except (APITimeoutError, APIConnectionError) as e:
                last_error = e
                logger.warning("API connection problem (attempt %d/%d): %s", attempt, API_MAX_RETRIES, e)
                time.sleep(API_RETRY_DELAY)
            except APIStatusError as e:
                if e.status_code >= 500:
                    last_error = e
                    logger.warning("API server error %s (attempt %d/%d)", e.status_code, attempt, API_MAX_RETRIES)
                    time.sleep(API_RETRY_DELAY)
                else:
                    raise GenerationError(f"Model request rejected ({e.status_code}): {e.message}") from e
            except APIError as e:
                raise GenerationError(f"Model request failed: {e.message}") from e
        raise GenerationError(f"Model request failed after {API_MAX_RETRIES} attempts") from last_error

    def _request_text(self, system: str, prompt: str, max_tokens: int = MAX_TOKENS) -> str:
        """Send a plain-text request and return the joined text of the reply."""
        response = self._api_call_with_retry(
            model=self.model,
            max_tokens=max_tokens,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
        # Only text blocks carry prose; anything else is ignored
        return "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        ).strip()

    def _request_structured(
        self,
        system: str,
        prompt: str,
        schema: Type[BaseModel],
        tool_name: str,
        tool_description: str,
    ) -> BaseModel:
        """Force a tool call whose input must match ``schema`` and validate the reply.

        Raises:
            MalformedResponseError: no tool input in the reply, or it fails validation.
        """
        response = self._api_call_with_retry(
            model=self.model,
            max_tokens=MAX_TOKENS,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            tools=[{
                "name": tool_name,
                "description": tool_description,
                "input_schema": schema.model_json_schema(),
            }],
            tool_choice={"type": "tool", "name": tool_name},
        )

        payload = None
        for block in response.content:
            if getattr(block, "type", None) == "tool_use" and block.name == tool_name:
                payload = block.input
                break

        if payload is None:
            raise MalformedResponseError(f"Reply did not include a {tool_name} call")

        try:
            return schema.model_validate(payload)
        except ValidationError as e:
            logger.error("Reply to %s failed validation: %s", tool_name, e)
            raise MalformedResponseError(f"Reply to {tool_name} does not match the expected schema") from e

    def generate_outline(self, topic: str, target_audience: str) -> Outline:
        """Request a chapter/section outline for a topic.

        The reply is validated but not yet given IDs; see
        ``curriculum.build_structure``.
        """
        system = """You are an expert curriculum designer and textbook author.
Your task is to create a detailed table of contents for a textbook on the given topic, tailored specifically for the target audience.
Ensure the progression is logical, starting from basics to advanced concepts."""

        prompt = f"""Create a textbook structure for the topic: "{topic}".
Target Audience: "{target_audience}".
Return a list of {MIN_CHAPTERS}-{MAX_CHAPTERS} chapters, each with {MIN_SECTIONS}-{MAX_SECTIONS} sections.
Give every section a title and a one-sentence description."""

        logger.info("Requesting outline for %r (%s)", topic, target_audience)
        return self._request_structured(
            system,
            prompt,
            Outline,
            tool_name="record_outline",
            tool_description="Record the textbook's table of contents.",
        )

    def generate_section_content(
        self,
        topic: str,
        chapter_title: str,
        section_title: str,
        target_audience: str,
        previous_context: Optional[str] = None,
    ) -> str:
        """Generate Markdown prose for one section.

        Identical calls are re-issued every time; nothing is cached.
        """
        system = f"""You are an expert textbook author known for clear, engaging, and accurate writing.
Write in a valid Markdown format. Use headers (##, ###), bolding, lists, and code blocks where appropriate.
Do not use H1 (#). Start with H2 or normal text.
Explain concepts clearly for the target audience: {target_audience}.
Use analogies and examples."""

        prompt = f"""Write the full content for the section: "{section_title}"
in the chapter: "{chapter_title}"
for the textbook topic: "{topic}".

Make it comprehensive but digestible.
If the topic involves code, math, or history, provide specific examples."""

        if previous_context:
            prompt += f"""

For continuity, the previous section ended with:
"{previous_context[-PREVIOUS_CONTEXT_LIMIT:]}"
Do not repeat it."""

        logger.info("Requesting content for %r / %r", chapter_title, section_title)
        text = self._request_text(system, prompt)
        return text or CONTENT_FALLBACK

    def generate_quiz(self, content: str) -> list[QuizQuestion]:
        """Generate multiple-choice questions that test the given prose.

        Only the first QUIZ_CONTENT_LIMIT characters are sent.
        """
        excerpt = content[:QUIZ_CONTENT_LIMIT]
        if len(content) > QUIZ_CONTENT_LIMIT:
            excerpt += "... (truncated for brevity)"

        system = "You write short, fair comprehension quizzes for textbook sections."

        prompt = f"""Based on the following text, generate {QUIZ_QUESTION_COUNT} multiple-choice quiz questions to test understanding.
Each question has exactly {QUIZ_OPTION_COUNT} options, a zero-based correctIndex, and a short explanation of the answer.

Text:
{excerpt}"""

        logger.debug("Requesting quiz from %d characters of content", len(excerpt))
        quiz = self._request_structured(
            system,
            prompt,
            QuizSet,
            tool_name="record_quiz",
            tool_description="Record the quiz questions.",
        )

        if not quiz.questions:
            raise MalformedResponseError("Quiz reply contained no questions")
        if len(quiz.questions) != QUIZ_QUESTION_COUNT:
            logger.warning("Asked for %d quiz questions, got %d", QUIZ_QUESTION_COUNT, len(quiz.questions))

        return quiz.questions[:QUIZ_QUESTION_COUNT]

    def explain_concept(self, concept: str, context: str, target_audience: str) -> str:
        """Explain a selected phrase in the context it was taken from."""
        concept = concept.strip()
        if not concept:
            raise ValueError("Nothing selected to explain")
        if len(concept) >= SELECTION_MAX_LENGTH:
            raise ValueError(f"Selection must be shorter than {SELECTION_MAX_LENGTH} characters")

        system = "You are a patient tutor who explains ideas in plain language."

        prompt = f"""A student selected the text "{concept}" from the following context:
"{context[:EXPLAIN_CONTEXT_LIMIT]}..."

Explain "{concept}" simply and clearly for a {target_audience}. Keep it under 100 words."""

        text = self._request_text(system, prompt, max_tokens=EXPLANATION_MAX_TOKENS)
        return text or EXPLANATION_FALLBACK
