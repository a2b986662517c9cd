"""Pytest fixtures. Upstream collaborators are replaced by in-memory fakes."""

import json

import pytest
from fastapi.testclient import TestClient

from config import Settings
from errors import UpstreamError
from main import create_app
from oracle import TarotOracle


def chat_payload(content) -> dict:
    """Chat-completion style payload carrying `content` as the message content."""
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


def reading_payload(card_name="Маг", interpretation="Вы готовы действовать.", image_prompt="a magician at dawn") -> dict:
    return chat_payload(
        json.dumps(
            {"card_name": card_name, "interpretation": interpretation, "image_prompt": image_prompt},
            ensure_ascii=False,
        )
    )


class FakeInterpreter:
    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload if payload is not None else reading_payload()
        self.error = error
        self.calls = []

    def interpret(self, system_prompt, user_text):
        self.calls.append((system_prompt, user_text))
        if self.error is not None:
            raise self.error
        return self.payload


class FakeIllustrator:
    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload if payload is not None else {"data": [{"b64_json": "iVBORw0KGgo="}]}
        self.error = error
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def settings():
    return Settings(groq_api_key="gsk-test", openrouter_api_key="sk-or-test")


@pytest.fixture
def interpreter():
    return FakeInterpreter()


@pytest.fixture
def illustrator():
    return FakeIllustrator()


@pytest.fixture
def oracle(interpreter, illustrator):
    return TarotOracle(interpreter, illustrator)


@pytest.fixture
def client(settings, oracle):
    return TestClient(create_app(settings=settings, oracle=oracle))


@pytest.fixture
def upstream_error():
    return UpstreamError("Interpretation API error: HTTP 503")
