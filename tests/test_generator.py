import httpx
import pytest
from anthropic import APIConnectionError, APIResponseValidationError, BadRequestError, InternalServerError, RateLimitError

from lumina.config import ConfigurationError, QUIZ_CONTENT_LIMIT
from lumina.content.generator import (
    CONTENT_FALLBACK,
    EXPLANATION_FALLBACK,
    ContentGenerator,
    GenerationError,
    MalformedResponseError,
)

from conftest import PHOTOSYNTHESIS_OUTLINE, QUIZ_PAYLOAD, text_reply, tool_reply

REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(cls, status):
    return cls(f"status {status}", response=httpx.Response(status, request=REQUEST), body=None)


class TestOutline:
    def test_requests_schema_constrained_outline(self, generator, fake_client):
        fake_client.queue(tool_reply("record_outline", PHOTOSYNTHESIS_OUTLINE))

        outline = generator.generate_outline("Photosynthesis", "High School Student")

        assert [ch.title for ch in outline.chapters] == ["What Plants Need", "Inside the Chloroplast"]
        call = fake_client.calls[0]
        assert call["model"] == "test-model"
        assert call["tool_choice"] == {"type": "tool", "name": "record_outline"}
        schema = call["tools"][0]["input_schema"]
        assert "chapters" in schema["properties"]
        prompt = call["messages"][0]["content"]
        assert '"Photosynthesis"' in prompt
        assert '"High School Student"' in prompt
        assert "5-8 chapters" in prompt
        assert "3-5 sections" in prompt

    def test_missing_tool_call_is_malformed(self, generator, fake_client):
        fake_client.queue(text_reply("Here is your outline!"))

        with pytest.raises(MalformedResponseError):
            generator.generate_outline("Photosynthesis", "College Student")

    def test_wrong_shape_is_malformed(self, generator, fake_client):
        fake_client.queue(tool_reply("record_outline", {"chapters": [{"name": "no title"}]}))

        with pytest.raises(MalformedResponseError) as excinfo:
            generator.generate_outline("Photosynthesis", "College Student")
        assert excinfo.value.__cause__ is not None


class TestSectionContent:
    def test_returns_text_and_sends_audience(self, generator, fake_client):
        fake_client.queue(text_reply("## Light\n", "Plants need light."))

        text = generator.generate_section_content("Photosynthesis", "What Plants Need", "Light", "5-year-old child")

        assert text == "## Light\nPlants need light."
        call = fake_client.calls[0]
        assert "5-year-old child" in call["system"]
        assert "Do not use H1" in call["system"]
        assert '"Light"' in call["messages"][0]["content"]

    def test_empty_reply_uses_placeholder(self, generator, fake_client):
        fake_client.queue(text_reply("   "))

        assert generator.generate_section_content("T", "C", "S", "College Student") == CONTENT_FALLBACK

    def test_identical_calls_are_not_cached(self, generator, fake_client):
        fake_client.queue(text_reply("first"), text_reply("second"))

        first = generator.generate_section_content("T", "C", "S", "College Student")
        second = generator.generate_section_content("T", "C", "S", "College Student")

        assert (first, second) == ("first", "second")
        assert len(fake_client.calls) == 2

    def test_previous_context_is_included(self, generator, fake_client):
        fake_client.queue(text_reply("next part"))

        generator.generate_section_content("T", "C", "S", "College Student", previous_context="...and so water rises.")

        assert "and so water rises." in fake_client.calls[0]["messages"][0]["content"]


class TestQuiz:
    def test_parses_questions(self, generator, fake_client):
        fake_client.queue(tool_reply("record_quiz", QUIZ_PAYLOAD))

        questions = generator.generate_quiz("Some prose about plants.")

        assert len(questions) == 3
        assert questions[0].correct_index == 1
        assert questions[0].options[1] == "Thylakoid membranes"

    def test_content_is_truncated(self, generator, fake_client):
        fake_client.queue(tool_reply("record_quiz", QUIZ_PAYLOAD))
        content = "a" * (QUIZ_CONTENT_LIMIT + 500) + "TAIL_MARKER"

        generator.generate_quiz(content)

        prompt = fake_client.calls[0]["messages"][0]["content"]
        assert "a" * QUIZ_CONTENT_LIMIT in prompt
        assert "a" * (QUIZ_CONTENT_LIMIT + 1) not in prompt
        assert "TAIL_MARKER" not in prompt

    def test_out_of_range_correct_index_is_rejected(self, generator, fake_client):
        bad = {"questions": [dict(QUIZ_PAYLOAD["questions"][0], correctIndex=4)]}
        fake_client.queue(tool_reply("record_quiz", bad))

        with pytest.raises(MalformedResponseError):
            generator.generate_quiz("prose")

    def test_empty_quiz_is_rejected(self, generator, fake_client):
        fake_client.queue(tool_reply("record_quiz", {"questions": []}))

        with pytest.raises(MalformedResponseError):
            generator.generate_quiz("prose")

    def test_extra_questions_are_dropped(self, generator, fake_client):
        payload = {"questions": QUIZ_PAYLOAD["questions"] + QUIZ_PAYLOAD["questions"][:1]}
        fake_client.queue(tool_reply("record_quiz", payload))

        assert len(generator.generate_quiz("prose")) == 3


class TestExplain:
    def test_context_is_truncated(self, generator, fake_client):
        fake_client.queue(text_reply("Chlorophyll is a green pigment."))
        context = "x" * 1000 + "HIDDEN"

        result = generator.explain_concept("chlorophyll", context, "High School Student")

        assert result == "Chlorophyll is a green pigment."
        prompt = fake_client.calls[0]["messages"][0]["content"]
        assert "HIDDEN" not in prompt
        assert "under 100 words" in prompt
        assert "High School Student" in prompt

    def test_empty_reply_uses_placeholder(self, generator, fake_client):
        fake_client.queue(text_reply(""))

        assert generator.explain_concept("ATP", "context", "College Student") == EXPLANATION_FALLBACK

    @pytest.mark.parametrize("span", ["", "   ", "x" * 200])
    def test_rejects_bad_selection(self, generator, fake_client, span):
        with pytest.raises(ValueError):
            generator.explain_concept(span, "context", "College Student")
        assert fake_client.calls == []

    def test_accepts_selection_just_under_limit(self, generator, fake_client):
        fake_client.queue(text_reply("ok"))

        assert generator.explain_concept("x" * 199, "context", "College Student") == "ok"


class TestRetries:
    def test_rate_limit_is_retried(self, generator, fake_client):
        fake_client.queue(_status_error(RateLimitError, 429), text_reply("ok"))

        assert generator.generate_section_content("T", "C", "S", "College Student") == "ok"
        assert len(fake_client.calls) == 2

    def test_server_errors_exhaust_retries(self, generator, fake_client):
        fake_client.queue(*[_status_error(InternalServerError, 500) for _ in range(3)])

        with pytest.raises(GenerationError) as excinfo:
            generator.generate_section_content("T", "C", "S", "College Student")
        assert isinstance(excinfo.value.__cause__, InternalServerError)
        assert len(fake_client.calls) == 3

    def test_connection_error_is_retried(self, generator, fake_client):
        fake_client.queue(APIConnectionError(request=REQUEST), text_reply("ok"))

        assert generator.explain_concept("ATP", "context", "College Student") == "ok"

    def test_client_errors_are_not_retried(self, generator, fake_client):
        fake_client.queue(_status_error(BadRequestError, 400), text_reply("never used"))

        with pytest.raises(GenerationError):
            generator.generate_section_content("T", "C", "S", "College Student")
        assert len(fake_client.calls) == 1

    def test_other_sdk_errors_become_generation_errors(self, generator, fake_client):
        fake_client.queue(APIResponseValidationError(httpx.Response(200, request=REQUEST), body=None))

        with pytest.raises(GenerationError) as excinfo:
            generator.generate_outline("Photosynthesis", "College Student")
        assert isinstance(excinfo.value.__cause__, APIResponseValidationError)
        assert len(fake_client.calls) == 1


def test_missing_api_key_raises_configuration_error(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    with pytest.raises(ConfigurationError):
        ContentGenerator().client
