"""Error models returned by the API."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"
    API_ERROR = "API_ERROR"


class AppError(BaseModel):
    """Structured error payload.

    ``message`` is meant for developers and logs, ``user_message`` can be
    shown as-is in a client.
    """

    code: ErrorCode
    message: str
    user_message: str
    details: Optional[dict] = Field(None, description="Extra context, e.g. required fields")
