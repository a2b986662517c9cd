"""Tests for the interpretation -> illustration pipeline."""

import base64

import pytest

from config import Settings
from conftest import FakeIllustrator, FakeInterpreter, chat_payload, reading_payload
from errors import BadRequest, ConfigurationError, UpstreamError
from oracle import SYSTEM_PROMPT, WARNING_GENERATION_FAILED, WARNING_NO_IMAGE, TarotOracle
from schemas import DEFAULT_CARD_NAME, DEFAULT_IMAGE_PROMPT, DEFAULT_INTERPRETATION

pytestmark = [pytest.mark.fast]

SVG_PREFIX = "data:image/svg+xml;base64,"


def _placeholder_markup(image_url: str) -> str:
    assert image_url.startswith(SVG_PREFIX)
    return base64.b64decode(image_url[len(SVG_PREFIX):]).decode("utf-8")


def test_handle_echoes_interpretation_and_inline_image(oracle, interpreter, illustrator):
    result = oracle.handle("  Мне тревожно перед переездом  ")

    assert result.card_name == "Маг"
    assert result.interpretation == "Вы готовы действовать."
    assert result.image_url == "data:image/png;base64,iVBORw0KGgo="
    assert result.warning is None
    assert interpreter.calls == [(SYSTEM_PROMPT, "Мне тревожно перед переездом")]
    assert illustrator.prompts == ["a magician at dawn"]


def test_handle_passes_remote_url_through(interpreter):
    illustrator = FakeIllustrator(payload={"data": [{"url": "https://img.example.com/1.png"}]})
    result = TarotOracle(interpreter, illustrator).handle("hello")
    assert result.image_url == "https://img.example.com/1.png"
    assert result.warning is None


@pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
def test_handle_rejects_empty_input_without_calls(text, oracle, interpreter, illustrator):
    with pytest.raises(BadRequest) as exc_info:
        oracle.handle(text)
    assert exc_info.value.status_code == 400
    assert interpreter.calls == []
    assert illustrator.prompts == []


def test_handle_non_json_reading_uses_defaults(illustrator):
    interpreter = FakeInterpreter(payload=chat_payload("The cards are unclear today."))
    result = TarotOracle(interpreter, illustrator).handle("hi")
    assert result.card_name == DEFAULT_CARD_NAME
    assert result.interpretation == DEFAULT_INTERPRETATION
    assert illustrator.prompts == [DEFAULT_IMAGE_PROMPT]


def test_handle_fenced_reading():
    interpreter = FakeInterpreter(payload=chat_payload('```json\n{"card_name": "X", "interpretation": "Y"}\n```'))
    result = TarotOracle(interpreter, FakeIllustrator()).handle("hi")
    assert result.card_name == "X"
    assert result.interpretation == "Y"


def test_handle_interpretation_failure_aborts_before_image(illustrator, upstream_error):
    interpreter = FakeInterpreter(error=upstream_error)
    with pytest.raises(UpstreamError) as exc_info:
        TarotOracle(interpreter, illustrator).handle("hi")
    assert exc_info.value.status_code == 502
    assert illustrator.prompts == []


def test_handle_image_failure_degrades_to_placeholder(interpreter):
    illustrator = FakeIllustrator(error=UpstreamError("Image API error: HTTP 500"))
    result = TarotOracle(interpreter, illustrator).handle("hi")

    assert result.card_name == "Маг"
    assert result.warning == WARNING_GENERATION_FAILED
    assert "Маг" in _placeholder_markup(result.image_url)


@pytest.mark.parametrize(
    "payload",
    [
        {"data": []},
        {"data": [{"b64_json": "%%% not an image %%%"}]},
        {"error": {"message": "model overloaded"}},
    ],
)
def test_handle_unusable_image_degrades_to_placeholder(payload):
    interpreter = FakeInterpreter(payload=reading_payload(card_name="A&B"))
    result = TarotOracle(interpreter, FakeIllustrator(payload=payload)).handle("hi")

    assert result.warning == WARNING_NO_IMAGE
    markup = _placeholder_markup(result.image_url)
    assert "A&amp;B" in markup
    assert "A&B" not in markup


def test_from_settings_requires_both_keys():
    with pytest.raises(ConfigurationError) as exc_info:
        TarotOracle.from_settings(Settings(groq_api_key="gsk-test", openrouter_api_key="  "))
    assert exc_info.value.status_code == 500


def test_from_settings_builds_clients(settings):
    oracle = TarotOracle.from_settings(settings)
    assert oracle.interpreter.model == settings.interpretation_model
    assert oracle.illustrator.model == settings.image_model
    assert oracle.illustrator.width == 768
    assert oracle.illustrator.height == 1024
