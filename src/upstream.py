import logging
from typing import Any

import openai
from openai import OpenAI

from config import Settings
from errors import UpstreamError

logger = logging.getLogger(__name__)


def _describe(error: openai.APIError) -> str:
    status = getattr(error, "status_code", None)
    if status is not None:
        return f"HTTP {status}"
    return type(error).__name__


class InterpretationClient:
    """Chat-completion collaborator that turns the user's text into a card reading."""

    def __init__(self, client: OpenAI, model: str, temperature: float = 0.7):
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Settings) -> "InterpretationClient":
        client = OpenAI(
            api_key=settings.groq_api_key,
            base_url=settings.interpretation_base_url,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
        )
        return cls(client, settings.interpretation_model, settings.interpretation_temperature)

    def interpret(self, system_prompt: str, user_text: str) -> Any:
        """
        Ask the model for a reading in JSON object mode.

        Returns the raw response payload as a dict. Raises UpstreamError on
        transport failures, timeouts and non-2xx responses.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_text},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
            )
        except openai.APIError as e:
            logger.error("Interpretation API error (%s): %s", _describe(e), e)
            raise UpstreamError(f"Interpretation API error: {_describe(e)}") from e
        except ValueError as e:
            logger.error("Interpretation API returned a malformed response: %s", e)
            raise UpstreamError("Interpretation API error: malformed response") from e
        if hasattr(response, "model_dump"):
            return response.model_dump()
        return response


class ImageClient:
    """Image-generation collaborator that illustrates the card."""

    def __init__(
        self,
        client: OpenAI,
        model: str,
        width: int = 768,
        height: int = 1024,
        response_format: str = "b64_json",
    ):
        self.client = client
        self.model = model
        self.width = width
        self.height = height
        self.response_format = response_format

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageClient":
        # OpenRouter attribution headers
        headers = {}
        if settings.app_url:
            headers["HTTP-Referer"] = settings.app_url
        if settings.app_title:
            headers["X-Title"] = settings.app_title
        client = OpenAI(
            api_key=settings.openrouter_api_key,
            base_url=settings.image_base_url,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            default_headers=headers or None,
        )
        return cls(
            client,
            settings.image_model,
            width=settings.image_width,
            height=settings.image_height,
            response_format=settings.image_response_format,
        )

    def generate(self, prompt: str) -> Any:
        """Request one image for the prompt. Returns the raw payload; raises UpstreamError."""
        try:
            response = self.client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                response_format=self.response_format,
                extra_body={"width": self.width, "height": self.height},
            )
        except openai.APIError as e:
            logger.error("Image API error (%s): %s", _describe(e), e)
            raise UpstreamError(f"Image API error: {_describe(e)}") from e
        except ValueError as e:
            # Non-JSON or unparsable 200 body
            logger.error("Image API returned a malformed response: %s", e)
            raise UpstreamError("Image API error: malformed response") from e
        if hasattr(response, "model_dump"):
            return response.model_dump()
        return response
