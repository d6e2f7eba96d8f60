"""
Shared error handling for the live-reload server.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for live-reload services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class StreamingUnsupportedError(AccessLayerException):
    """The response channel cannot be flushed incrementally."""

    status_code = 500

    def __init__(self, message: str = "streaming unsupported", details: Optional[Dict[str, Any]] = None):
        super().__init__("STREAMING_UNSUPPORTED", message, details)


class ChannelClosedError(AccessLayerException):
    """Write attempted on a channel whose client has gone away."""

    status_code = 410

    def __init__(self, message: str = "Channel closed", details: Optional[Dict[str, Any]] = None):
        super().__init__("CHANNEL_CLOSED", message, details)
