from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Literal, Optional, Union


DEFAULT_CARD_NAME = "Колесо Фортуны"
DEFAULT_INTERPRETATION = "Перемены неизбежны."
DEFAULT_IMAGE_PROMPT = "mystical tarot card wheel of fortune, detailed, 8k"


class AnalyzeRequest(BaseModel):
    """Request body for the /api/analyze endpoint. Older clients send `message`."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_input: Optional[str] = Field(default=None, alias="userInput")
    message: Optional[str] = None

    @property
    def text(self) -> str:
        if self.user_input is not None:
            return self.user_input
        return self.message or ""


class InterpretationResult(BaseModel):
    """Card reading parsed from the language model. Always fully populated."""
    card_name: str = DEFAULT_CARD_NAME
    interpretation: str = DEFAULT_INTERPRETATION
    image_prompt: str = DEFAULT_IMAGE_PROMPT


class EncodedBitmap(BaseModel):
    kind: Literal["bitmap"] = "bitmap"
    data: str
    mime_type: str = "image/png"

    def to_image_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class RemoteUrl(BaseModel):
    kind: Literal["url"] = "url"
    url: str

    def to_image_url(self) -> str:
        return self.url


class EncodedVector(BaseModel):
    kind: Literal["vector"] = "vector"
    data: str
    mime_type: Literal["image/svg+xml"] = "image/svg+xml"

    def to_image_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


ImageAsset = Annotated[
    Union[EncodedBitmap, RemoteUrl, EncodedVector],
    Field(discriminator="kind"),
]


class AnalyzeResponse(BaseModel):
    """Response model for the /api/analyze endpoint."""
    card_name: str
    interpretation: str
    image_url: str
    warning: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
