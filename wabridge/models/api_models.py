"""
Pydantic models for the HTTP command surface.

Request fields are optional at the schema level and non-string values are
coerced or dropped, so that missing, empty or mistyped values reach the
session adapter's own validation and come back as a
``400 {"error": ...}`` body instead of a framework validation error.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class SendMessageRequest(BaseModel):
    """Body of ``POST /send-message``.

    Example:
    {
      "phoneNumber": "5511999999999",
      "message": "Hello!"
    }
    """

    phoneNumber: Optional[str] = Field(
        None, description="Phone number or chat id (``@c.us`` / ``@g.us``)"
    )
    message: Optional[str] = Field(None, description="Text body to send")

    @field_validator("phoneNumber", "message", mode="before")
    @classmethod
    def coerce_text(cls, value):
        # Integers become their decimal text; other non-strings count as missing.
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str):
            return value
        return None


class StatusResponse(BaseModel):
    status: str
    hasQr: bool


class MessageResponse(BaseModel):
    message: str


class SendMessageResponse(BaseModel):
    success: bool = True
    message: str
    messageId: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
