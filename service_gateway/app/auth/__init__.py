"""
Gateway authentication: ES256 tokens and the request authenticator.
"""

from .authenticator import EVENTBRIDGE_TOKEN_HEADER, TokenAuthenticator
from .tokens import ALGORITHM, Claims, issue_token, verify_token

__all__ = [
    "ALGORITHM",
    "Claims",
    "EVENTBRIDGE_TOKEN_HEADER",
    "TokenAuthenticator",
    "issue_token",
    "verify_token",
]
