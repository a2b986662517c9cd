import os
from pathlib import Path
from typing import Any, Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (parent directory of src/)
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

# Settings field -> environment variable
ENV_VARS = {
    "groq_api_key": "GROQ_API_KEY",
    "openrouter_api_key": "OPENROUTER_API_KEY",
    "interpretation_base_url": "TAROT_INTERPRETATION_BASE_URL",
    "interpretation_model": "TAROT_INTERPRETATION_MODEL",
    "interpretation_temperature": "TAROT_INTERPRETATION_TEMPERATURE",
    "image_base_url": "TAROT_IMAGE_BASE_URL",
    "image_model": "TAROT_IMAGE_MODEL",
    "image_response_format": "TAROT_IMAGE_RESPONSE_FORMAT",
    "image_width": "TAROT_IMAGE_WIDTH",
    "image_height": "TAROT_IMAGE_HEIGHT",
    "app_url": "TAROT_APP_URL",
    "app_title": "TAROT_APP_TITLE",
    "request_timeout": "TAROT_REQUEST_TIMEOUT",
    "max_retries": "TAROT_MAX_RETRIES",
    "cors_origins": "TAROT_CORS_ORIGINS",
    "log_level": "LOG_LEVEL",
}

CREDENTIAL_FIELDS = ("groq_api_key", "openrouter_api_key")


class Settings(BaseModel):
    """Runtime configuration. Upstream model names are settings, not constants."""

    model_config = {"extra": "ignore"}

    groq_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None

    interpretation_base_url: str = GROQ_BASE_URL
    interpretation_model: str = "llama-3.3-70b-versatile"
    interpretation_temperature: float = 0.7

    image_base_url: str = OPENROUTER_BASE_URL
    image_model: str = "black-forest-labs/flux-1-schnell"
    image_response_format: Literal["b64_json", "url"] = "b64_json"
    image_width: int = 768
    image_height: int = 1024

    app_url: Optional[str] = None
    app_title: Optional[str] = "PsyTarot"

    request_timeout: float = 30.0
    max_retries: int = 2
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    @field_validator("groq_api_key", "openrouter_api_key", "app_url", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    def missing_credentials(self) -> list[str]:
        """Environment variable names of the credentials that are not set."""
        return [ENV_VARS[name] for name in CREDENTIAL_FIELDS if not getattr(self, name)]


def load_config(env: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables (os.environ by default)."""
    env = os.environ if env is None else env
    data = {field: env[var] for field, var in ENV_VARS.items() if env.get(var) not in (None, "")}
    return Settings.model_validate(data)
