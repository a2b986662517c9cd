import logging
from typing import Optional

from config import Settings
from errors import BadRequest, ConfigurationError, UpstreamError
from placeholder import synthesize
from response_parsing import extract_image, extract_text, parse_interpretation
from schemas import AnalyzeResponse
from upstream import ImageClient, InterpretationClient

logger = logging.getLogger(__name__)

# System Prompt
SYSTEM_PROMPT = (
    "You are a Jungian psychologist and tarot expert. Analyze the user's emotional state. "
    "Respond with ONLY valid JSON. No markdown. "
    'Fields: "card_name" (Russian), "interpretation" (Russian, max 3 sentences), '
    '"image_prompt" (English visual description for tarot card).'
)

EMPTY_INPUT_MESSAGE = "Введите текст запроса"
WARNING_GENERATION_FAILED = "image generation failed"
WARNING_NO_IMAGE = "image response contained no usable image"


class TarotOracle:
    """
    Turns a user's description of their state into a tarot card reading with a picture.

    Pipeline: interpretation call -> image call -> placeholder fallback.
    Errors are raised as AnalyzeError subclasses; image failures degrade to a
    locally drawn placeholder instead of failing the request.
    """

    def __init__(self, interpreter: InterpretationClient, illustrator: ImageClient):
        self.interpreter = interpreter
        self.illustrator = illustrator

    @classmethod
    def from_settings(cls, settings: Settings) -> "TarotOracle":
        missing = settings.missing_credentials()
        if missing:
            logger.error("Missing API keys in environment: %s", ", ".join(missing))
            raise ConfigurationError("Server configuration error")
        return cls(
            InterpretationClient.from_settings(settings),
            ImageClient.from_settings(settings),
        )

    def handle(self, user_text: Optional[str]) -> AnalyzeResponse:
        text = (user_text or "").strip()
        if not text:
            raise BadRequest(EMPTY_INPUT_MESSAGE)

        # Step 1: card reading. UpstreamError propagates and aborts.
        logger.info("[1] Requesting interpretation (%d chars)", len(text))
        payload = self.interpreter.interpret(SYSTEM_PROMPT, text)
        reading = parse_interpretation(extract_text(payload))
        logger.info("[2] Interpretation OK. Card: %s. Requesting illustration...", reading.card_name)

        # Step 2: illustration, degrading to the placeholder card
        warning = None
        asset = None
        try:
            asset = extract_image(self.illustrator.generate(reading.image_prompt))
            if asset is None:
                warning = WARNING_NO_IMAGE
        except UpstreamError as e:
            warning = WARNING_GENERATION_FAILED
            logger.warning("Image generation failed: %s", e.message)

        if asset is None:
            logger.warning("[3] Using placeholder image for %s (%s)", reading.card_name, warning)
            asset = synthesize(reading.card_name)
        else:
            logger.info("[3] Illustration OK (%s)", asset.kind)

        return AnalyzeResponse(
            card_name=reading.card_name,
            interpretation=reading.interpretation,
            image_url=asset.to_image_url(),
            warning=warning,
        )
