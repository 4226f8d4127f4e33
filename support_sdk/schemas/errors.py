"""
Error Taxonomy

Standard error taxonomy for the HTTP client facade.
Defines both Pydantic models for errors that are recorded on a result
(network and HTTP status failures) and Python exceptions for errors
that are raised immediately (caller misuse, codec failure).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the SDK."""

    # Recorded on results
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    HTTP_ERROR = "HTTP_ERROR"

    # Raised
    TRANSPORT_UNAVAILABLE = "TRANSPORT_UNAVAILABLE"
    SERIALIZATION_ERROR = "SERIALIZATION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


# =============================================================================
# Pydantic Error Models (recorded, never raised)
# =============================================================================

class RequestError(BaseModel):
    """
    Base record for a failed execution.

    Execution-time failures are stored on the result for the caller to
    inspect after the call instead of being raised.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )

    kind: str = Field(
        ...,
        description="Stable machine-readable error kind",
        examples=[ErrorCodes.TRANSPORT_ERROR],
    )
    code: int = Field(
        ...,
        description="Transport error code or HTTP status code",
    )
    message: str = Field(
        default="",
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )


class TransportError(RequestError):
    """Low-level failure (DNS, connect, TLS handshake, timeout)."""

    kind: str = Field(default=ErrorCodes.TRANSPORT_ERROR)


class HttpError(RequestError):
    """Completed exchange whose status is in [400, 600)."""

    kind: str = Field(default=ErrorCodes.HTTP_ERROR)

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.code < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.code < 600


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class SupportSdkException(Exception):
    """
    Base exception for all errors raised by the SDK.

    Carries the same structured information as the error records so it
    can be logged or serialized uniformly.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPPORT_SDK_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class UnavailableError(SupportSdkException):
    """Raised when the transport library is not present in the runtime."""

    def __init__(
        self,
        message: str,
        transport: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if transport:
            full_details["transport"] = transport
        super().__init__(
            message=message,
            code=ErrorCodes.TRANSPORT_UNAVAILABLE,
            details=full_details,
        )


class SerializationError(SupportSdkException):
    """Raised when encoding a request body or decoding a response fails."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.SERIALIZATION_ERROR,
            details=details,
        )


class ValidationError(SupportSdkException):
    """Raised when caller-supplied input is malformed."""

    def __init__(
        self,
        message: str,
        field_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if field_path:
            full_details["field_path"] = field_path
        super().__init__(
            message=message,
            code=ErrorCodes.VALIDATION_ERROR,
            details=full_details,
        )
