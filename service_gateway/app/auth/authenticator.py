"""
Request authentication for gateway routes.

Two header sources feed the same verification: ``Authorization: Bearer``
for API callers and ``x-eventbridge-signature-token`` for the Aliyun
EventBridge webhook.
"""

from typing import Optional

from fastapi import Request

from shared.errors import AuthError
from shared.logging import get_logger, set_subject
from shared.metrics import MetricsCollector

from .tokens import Claims, load_key, verify_token

EVENTBRIDGE_TOKEN_HEADER = "x-eventbridge-signature-token"


class TokenAuthenticator:
    """Verifies gateway tokens against the configured public key."""

    def __init__(self, public_key_pem: str, metrics: Optional[MetricsCollector] = None):
        load_key(public_key_pem)
        self._public_key_pem = public_key_pem
        self.metrics = metrics
        self.logger = get_logger("gateway.auth")

    def verify(self, token: Optional[str], source: str) -> Claims:
        if not token:
            self._record(source, "missing")
            raise AuthError(f"Missing {source} token")
        try:
            claims = verify_token(token, self._public_key_pem)
        except AuthError as exc:
            self._record(source, "invalid")
            self.logger.warning("Token rejected", source=source, error=exc.message, details=exc.details)
            raise
        self._record(source, "ok")
        set_subject(claims.subject)
        return claims

    async def bearer(self, request: Request) -> Claims:
        """FastAPI dependency: ``Authorization: Bearer <token>``."""
        authorization = request.headers.get("Authorization")
        if not authorization:
            self._record("bearer", "missing")
            raise AuthError("Missing authorization header")
        if not authorization.startswith("Bearer "):
            self._record("bearer", "invalid")
            raise AuthError("Invalid authorization format, expected: Bearer <token>")
        return self.verify(authorization[7:].strip(), "bearer")

    async def eventbridge(self, request: Request) -> Claims:
        """FastAPI dependency: EventBridge webhook token header."""
        return self.verify(request.headers.get(EVENTBRIDGE_TOKEN_HEADER, "").strip(), "eventbridge")

    def _record(self, source: str, status: str) -> None:
        if self.metrics is not None:
            self.metrics.record_token_verification(source, status)
