"""Shared fixtures: a stand-in Anthropic client that replays canned replies."""

from types import SimpleNamespace

import pytest

from lumina.content.generator import ContentGenerator


def tool_reply(name: str, payload) -> SimpleNamespace:
    """A Messages API reply containing one tool call."""
    return SimpleNamespace(content=[SimpleNamespace(type="tool_use", name=name, input=payload)])


def text_reply(*texts: str) -> SimpleNamespace:
    """A Messages API reply containing text blocks."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=t) for t in texts])


class FakeMessages:
    def __init__(self):
        self.replies = []
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if not self.replies:
            raise AssertionError("Unexpected model request")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeClient:
    def __init__(self):
        self.messages = FakeMessages()

    def queue(self, *replies):
        self.messages.replies.extend(replies)
        return self

    @property
    def calls(self):
        return self.messages.calls


PHOTOSYNTHESIS_OUTLINE = {
    "chapters": [
        {
            "title": "What Plants Need",
            "sections": [
                {"title": "Light", "description": "How sunlight reaches the leaf."},
                {"title": "Water", "description": "How roots move water upward."},
                {"title": "Carbon Dioxide", "description": "How gases enter through stomata."},
            ],
        },
        {
            "title": "Inside the Chloroplast",
            "sections": [
                {"title": "Light Reactions", "description": "Turning light into chemical energy."},
                {"title": "The Calvin Cycle", "description": "Building sugar from carbon dioxide."},
                {"title": "Pigments", "description": "Why leaves are green."},
                {"title": "Limiting Factors", "description": "What slows photosynthesis down."},
            ],
        },
    ]
}

SECTION_TEXT = """## Light Reactions

The **light reactions** happen in the thylakoid membranes.

- Chlorophyll absorbs light
- Water is split, releasing oxygen

```
6CO2 + 6H2O -> C6H12O6 + 6O2
```
"""

QUIZ_PAYLOAD = {
    "questions": [
        {
            "question": "Where do the light reactions happen?",
            "options": ["Stroma", "Thylakoid membranes", "Cell wall", "Nucleus"],
            "correctIndex": 1,
            "explanation": "They take place in the thylakoid membranes.",
        },
        {
            "question": "Which gas is released?",
            "options": ["Oxygen", "Nitrogen", "Carbon dioxide", "Hydrogen"],
            "correctIndex": 0,
            "explanation": "Splitting water releases oxygen.",
        },
        {
            "question": "What absorbs light?",
            "options": ["Glucose", "ATP", "Chlorophyll", "Starch"],
            "correctIndex": 2,
            "explanation": "Chlorophyll is the main pigment.",
        },
    ]
}


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def generator(fake_client):
    return ContentGenerator(client=fake_client, model="test-model")


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("lumina.content.generator.time.sleep", lambda seconds: None)
