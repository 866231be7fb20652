"""
ES256 token issuance and verification.

Tokens carry only ``sub`` and ``iat``. They do not expire unless an
``expires_in`` is passed at issuance; revoking tokens without ``exp``
requires rotating the key pair.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jose import jwk, jwt
from jose.exceptions import JOSEError

from shared.errors import AuthError

ALGORITHM = "ES256"


@dataclass(frozen=True)
class Claims:
    """Verified token claims."""

    subject: str
    issued_at: int
    expires_at: Optional[int] = None


def load_key(pem: str) -> None:
    """Fail fast on a PEM that is not a usable ES256 key."""
    try:
        jwk.construct(pem, ALGORITHM)
    except JOSEError as exc:
        raise ValueError(f"Invalid {ALGORITHM} key: {exc}") from exc


def issue_token(subject: str, private_key_pem: str, expires_in: Optional[int] = None,
                now: Optional[float] = None) -> str:
    """Sign ``{sub, iat}`` (plus ``exp`` when ``expires_in`` is set)."""
    issued_at = int(time.time() if now is None else now)
    claims: Dict[str, Any] = {"sub": subject, "iat": issued_at}
    if expires_in is not None:
        claims["exp"] = issued_at + expires_in
    try:
        return jwt.encode(claims, private_key_pem, algorithm=ALGORITHM)
    except JOSEError as exc:
        raise AuthError("Unable to sign token", details={"error": str(exc)}) from exc


def verify_token(token: str, public_key_pem: str) -> Claims:
    """Verify structure, algorithm and signature; return the claims.

    An ``exp`` claim is honoured when present but never required.
    """
    segments = token.split(".") if isinstance(token, str) else []
    if len(segments) != 3 or not all(segments):
        raise AuthError("Malformed token")

    try:
        header = jwt.get_unverified_header(token)
    except JOSEError as exc:
        raise AuthError("Malformed token header", details={"error": str(exc)}) from exc
    if header.get("alg") != ALGORITHM:
        raise AuthError("Unexpected token algorithm", details={"alg": header.get("alg")})

    try:
        payload = jwt.decode(
            token,
            public_key_pem,
            algorithms=[ALGORITHM],
            options={"verify_aud": False},
        )
    except JOSEError as exc:
        raise AuthError("Token verification failed", details={"error": str(exc)}) from exc

    subject = payload.get("sub")
    issued_at = payload.get("iat")
    expires_at = payload.get("exp")
    if not isinstance(subject, str) or not subject:
        raise AuthError("Token missing subject claim")
    if not isinstance(issued_at, int) or isinstance(issued_at, bool):
        raise AuthError("Token missing issued-at claim")
    if expires_at is not None and not isinstance(expires_at, int):
        raise AuthError("Token has a malformed expiry claim")

    return Claims(subject=subject, issued_at=issued_at, expires_at=expires_at)
