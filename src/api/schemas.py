"""Pydantic schemas for API request/response validation.

Request bodies keep the browser client's camelCase field names
(``sessionId``, ``imageDataUrl``) as aliases. A missing or empty session id
becomes ``"default"``, so handlers always receive a well-typed string.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SESSION_ID = "default"

# Upper bound on an uploaded data URL, roughly a 6 MB request body
MAX_IMAGE_DATA_URL_LENGTH = 6 * 1024 * 1024


class SessionRequest(BaseModel):
    """Base for request bodies scoped to a session."""

    session_id: str = Field(
        DEFAULT_SESSION_ID,
        alias="sessionId",
        description="Opaque client session identifier",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("session_id", mode="before")
    @classmethod
    def _default_session(cls, value: Any) -> Any:
        # Falsy scalars (None, "", 0, false) select the default session
        if value is None or (isinstance(value, (str, int, float)) and not value):
            return DEFAULT_SESSION_ID
        if isinstance(value, bool):
            return "true"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return value


class ProductUploadRequest(SessionRequest):
    """Schema for uploading the session's reference product image."""

    image_data_url: str = Field(
        "",
        alias="imageDataUrl",
        description="Image as a base64 data URL (data:image/png;base64,...)",
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "sessionId": "s1",
                "imageDataUrl": "data:image/png;base64,iVBORw0KGgo...",
            }
        },
    )


class UsageResponse(BaseModel):
    """Schema for a session's daily image quota."""

    used: int = Field(..., ge=0)
    remaining: int = Field(..., ge=0)
    limit: int = Field(..., gt=0)
    resets_at: str = Field(..., description="Next UTC midnight (ISO-8601)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "used": 1,
                "remaining": 1,
                "limit": 2,
                "resets_at": "2025-01-02T00:00:00+00:00",
            }
        }
    )


class ProductUploadResponse(BaseModel):
    """Schema for a successful product upload."""

    ok: bool = True
    usage: UsageResponse


class ChatRequest(SessionRequest):
    """Schema for sending a chat message."""

    message: str = Field("", max_length=10000)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {"sessionId": "s1", "message": "Give me three hooks for a launch post"}
        },
    )


class ChatReply(BaseModel):
    """Schema for the assistant's chat reply."""

    reply: str


class ImageEditBody(SessionRequest):
    """Schema for a product image edit request."""

    prompt: str = Field("", max_length=10000)
    aspect: str | None = Field(
        None,
        description='"9:16" for portrait; anything else renders "16:9"',
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "sessionId": "s1",
                "prompt": "On a marble counter in soft morning light",
                "aspect": "9:16",
            }
        },
    )


class ImageEditResponse(BaseModel):
    """Schema for an edited product image."""

    b64: str = Field(..., description="Base64-encoded PNG data")
    aspect: str
    size: str = Field(..., description="Output size as WIDTHxHEIGHT")
    usage: UsageResponse


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error: str = Field(..., description="Machine-readable error code")
    message: str | None = None
    usage: UsageResponse | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "DAILY_LIMIT_REACHED",
                "message": "Your daily limit of 2 photos has been reached. "
                "It resets daily at 00:00 UTC.",
                "usage": {
                    "used": 2,
                    "remaining": 0,
                    "limit": 2,
                    "resets_at": "2025-01-02T00:00:00+00:00",
                },
            }
        }
    )
