"""
Shared error handling for the Janus gateway.

Every failure the gateway can report belongs to one of four kinds. Handlers
raise the rich exception types below; the single translation point in
``shared.base_service`` logs them and answers with ``{"code": 1}``.
"""

from enum import Enum
from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorKind(str, Enum):
    """Failure classes surfaced at the HTTP boundary."""

    AUTH = "auth"
    VALIDATION = "validation"
    NETWORK = "network"
    REMOTE_API = "remote_api"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.AUTH: 401,
    ErrorKind.VALIDATION: 400,
    ErrorKind.NETWORK: 500,
    ErrorKind.REMOTE_API: 500,
}


class ErrorResponse(BaseModel):
    """Opaque error response returned to every caller."""

    code: int = 1


class GatewayError(Exception):
    """Base exception for gateway failures."""

    kind: ErrorKind = ErrorKind.REMOTE_API

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class AuthError(GatewayError):
    """Missing, malformed or badly signed token."""

    kind = ErrorKind.AUTH

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ValidationError(GatewayError):
    """Malformed request payload or unsupported input."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class UnsupportedBucket(ValidationError):
    """Bucket name has no CDN URL template configured."""

    def __init__(self, bucket: str):
        super().__init__(f"Unsupported bucket: {bucket}", details={"bucket": bucket})
        self.bucket = bucket


class NetworkError(GatewayError):
    """Transport-level failure reaching a remote API."""

    kind = ErrorKind.NETWORK

    def __init__(self, service: str, message: str = "Network error", details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{service}: {message}", details)
        self.service = service


class RemoteApiError(GatewayError):
    """Remote API reachable but answered with a failure or an unparseable body."""

    kind = ErrorKind.REMOTE_API

    def __init__(self, service: str, message: str = "Remote API error", details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{service}: {message}", details)
        self.service = service
