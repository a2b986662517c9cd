import json
import logging
import re
from typing import Any, Optional

from schemas import (
    EncodedBitmap,
    ImageAsset,
    InterpretationResult,
    RemoteUrl,
)

logger = logging.getLogger(__name__)

EMPTY_JSON = "{}"

_LEADING_FENCE = re.compile(r"\A\s*```[A-Za-z0-9_+-]*[ \t]*(?:\r?\n|\Z)")
_TRAILING_FENCE = re.compile(r"(?:\r?\n|\A)[ \t]*```\s*\Z")
_BASE64 = re.compile(r"[A-Za-z0-9+/]+={0,2}")
_WHITESPACE = re.compile(r"\s+")
_MIME_TYPE = re.compile(r"[\w.+-]+/[\w.+-]+")
_DATA_URI = re.compile(r"data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)", re.DOTALL)

SCALAR_IMAGE_KEYS = ("b64_json", "image_base64", "base64", "image")
IMAGE_PART_TYPES = ("image_url", "image")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang line and a trailing ``` line, if present."""
    text = _LEADING_FENCE.sub("", text, count=1)
    text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


def looks_like_base64(value: Any) -> bool:
    """Cheap structural check: base64 alphabet, sane length, padding only at the end."""
    if not isinstance(value, str):
        return False
    compact = _WHITESPACE.sub("", value)
    if not compact or not _BASE64.fullmatch(compact):
        return False
    return len(compact) % 4 == 0 or compact.endswith("=")


def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def _chat_message(payload: Any) -> dict:
    if not isinstance(payload, dict):
        return {}
    choice = _first(payload.get("choices"))
    if not isinstance(choice, dict):
        return {}
    message = choice.get("message")
    return message if isinstance(message, dict) else {}


def extract_text(payload: Any) -> str:
    """
    Pull the model's text out of a chat-completion style payload.

    Returns "{}" when no text can be found, which the caller reads as
    "use the default reading".
    """
    if isinstance(payload, str):
        return payload

    content = _chat_message(payload).get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
        ]
        if parts:
            return "".join(parts)

    if isinstance(payload, dict):
        choice = _first(payload.get("choices"))
        if isinstance(choice, dict) and isinstance(choice.get("text"), str):
            return choice["text"]
        if isinstance(payload.get("content"), str):
            return payload["content"]

    return EMPTY_JSON


def _field(data: dict, key: str, default: str) -> str:
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def parse_interpretation(text: str) -> InterpretationResult:
    """Parse the model's JSON reply. Anything missing or unparsable falls back to defaults."""
    defaults = InterpretationResult()
    try:
        data = json.loads(strip_code_fences(text))
    except (TypeError, ValueError):
        logger.warning("Interpretation JSON could not be parsed, using default reading")
        return defaults

    if not isinstance(data, dict):
        logger.warning("Interpretation JSON is not an object, using default reading")
        return defaults

    return InterpretationResult(
        card_name=_field(data, "card_name", defaults.card_name),
        interpretation=_field(data, "interpretation", defaults.interpretation),
        image_prompt=_field(data, "image_prompt", defaults.image_prompt),
    )


def _mime_type(value: Any) -> str:
    if isinstance(value, str) and _MIME_TYPE.fullmatch(value.strip()):
        return value.strip()
    return "image/png"


def _bitmap(value: Any, mime_type: str = "image/png") -> Optional[EncodedBitmap]:
    if not looks_like_base64(value):
        return None
    return EncodedBitmap(data=_WHITESPACE.sub("", value), mime_type=mime_type)


def _from_url(value: Any) -> Optional[ImageAsset]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    match = _DATA_URI.fullmatch(value)
    if match:
        return _bitmap(match.group("data"), match.group("mime"))
    if value.startswith(("http://", "https://")):
        return RemoteUrl(url=value)
    return None


def _from_result_list(payload: dict) -> Optional[ImageAsset]:
    for key in ("data", "images"):
        item = _first(payload.get(key))
        if not isinstance(item, dict):
            continue
        if item.get("b64_json"):
            # An inline field that is present but corrupt must not fall through to a URL.
            return _bitmap(item["b64_json"])
        if item.get("url"):
            return _from_url(item["url"])
    return None


def _from_scalar(payload: dict) -> Optional[ImageAsset]:
    for key in SCALAR_IMAGE_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return _from_url(value) or _bitmap(value)
    return None


def _from_image_part(part: Any) -> Optional[ImageAsset]:
    if not isinstance(part, dict) or part.get("type") not in IMAGE_PART_TYPES:
        return None
    image_url = part.get("image_url")
    if isinstance(image_url, dict):
        return _from_url(image_url.get("url"))
    if isinstance(image_url, str):
        return _from_url(image_url)
    if part.get("url"):
        return _from_url(part["url"])
    inline = part.get("b64_json") or part.get("data")
    if inline:
        return _bitmap(inline, _mime_type(part.get("mime_type")))
    return None


def _from_chat_message(payload: dict) -> Optional[ImageAsset]:
    message = _chat_message(payload)
    candidates = []
    if isinstance(message.get("images"), list):
        candidates.extend(message["images"])
    if isinstance(message.get("content"), list):
        candidates.extend(message["content"])
    for part in candidates:
        asset = _from_image_part(part)
        if asset is not None:
            return asset
    return None


def extract_image(payload: Any) -> Optional[ImageAsset]:
    """
    Find the generated image in an upstream payload.

    Accepted shapes:
    - {"data": [{"b64_json": ...}]} or {"data": [{"url": ...}]} (also under "images")
    - a top-level scalar base64 field such as {"b64_json": ...}
    - a chat message whose `images` or list-valued `content` holds an image part
    - any of the above as a JSON string, optionally fenced

    Returns None when nothing usable is found.
    """
    if isinstance(payload, str):
        try:
            payload = json.loads(strip_code_fences(payload))
        except ValueError:
            return None
        if isinstance(payload, str):
            return None
        return extract_image(payload)

    if not isinstance(payload, dict):
        return None

    for extractor in (_from_result_list, _from_scalar, _from_chat_message):
        asset = extractor(payload)
        if asset is not None:
            return asset
    return None
