"""
Aliyun OpenAPI V3 request signing (ACS3-HMAC-SHA256).

Reference: https://help.aliyun.com/zh/sdk/product-overview/v3-request-structure-and-signature

The module-level functions are pure and mirror the steps a verifier performs:
canonical request → string to sign → HMAC signature → Authorization header.
``AliyunSigner`` stamps the per-request headers (date, nonce, body hash) and
runs the pipeline.
"""

from __future__ import annotations

import hashlib
import hmac
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import quote

ALGORITHM = "ACS3-HMAC-SHA256"
EMPTY_BODY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# RFC 3986 unreserved characters besides alphanumerics.
_UNRESERVED = "-_.~"

Body = Union[bytes, str]


def percent_encode(value: str) -> str:
    """Percent-encode everything outside the RFC 3986 unreserved set."""
    return quote(value, safe=_UNRESERVED)


def sha256_hex(data: Body) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def canonical_uri(path: str) -> str:
    """Canonicalize a request path; RPC-style APIs simply use ``/``."""
    if not path or path == "/":
        return "/"
    trimmed = path.strip("/")
    out = "/"
    if trimmed:
        out += "/".join(percent_encode(segment) for segment in trimmed.split("/"))
    if path.endswith("/"):
        out += "/"
    return out


def canonical_query_string(query_params: Optional[Mapping[str, object]]) -> str:
    """Sort parameters by key and join encoded ``key=value`` pairs with ``&``."""
    if not query_params:
        return ""
    return "&".join(
        f"{percent_encode(str(key))}={percent_encode('' if value is None else str(value))}"
        for key, value in sorted(query_params.items(), key=lambda item: str(item[0]))
    )


def canonical_headers(headers: Mapping[str, str], signed_header_names: Iterable[str]) -> Tuple[str, str]:
    """Return ``(canonical_headers, signed_headers)`` for the named headers.

    Lookup is case-insensitive; every signed name must be present in
    ``headers``.
    """
    lowered = {name.strip().lower(): str(value) for name, value in headers.items()}
    names = sorted({name.strip().lower() for name in signed_header_names})
    lines = "".join(f"{name}:{lowered[name].strip()}\n" for name in names)
    return lines, ";".join(names)


@dataclass(frozen=True)
class CanonicalRequest:
    """Normalized request representation both signer and verifier hash."""

    method: str
    canonical_uri: str
    canonical_query: str
    canonical_headers: str
    signed_headers: str
    hashed_payload: str

    def __str__(self) -> str:
        return "\n".join((
            self.method,
            self.canonical_uri,
            self.canonical_query,
            self.canonical_headers,
            self.signed_headers,
            self.hashed_payload,
        ))

    @classmethod
    def build(
        cls,
        method: str,
        uri_path: str,
        query_params: Optional[Mapping[str, object]],
        headers: Mapping[str, str],
        signed_header_names: Iterable[str],
        body: Body = b"",
    ) -> "CanonicalRequest":
        header_lines, signed_headers = canonical_headers(headers, signed_header_names)
        return cls(
            method=method.upper(),
            canonical_uri=canonical_uri(uri_path),
            canonical_query=canonical_query_string(query_params),
            canonical_headers=header_lines,
            signed_headers=signed_headers,
            hashed_payload=sha256_hex(body),
        )


def build_canonical_request(
    method: str,
    uri_path: str,
    query_params: Optional[Mapping[str, object]],
    headers: Mapping[str, str],
    signed_header_names: Iterable[str],
    body: Body = b"",
) -> str:
    """Render the canonical request string."""
    return str(CanonicalRequest.build(method, uri_path, query_params, headers, signed_header_names, body))


def string_to_sign(canonical_request: str) -> str:
    return f"{ALGORITHM}\n{sha256_hex(canonical_request)}"


def signature(string_to_sign_value: str, secret: str) -> str:
    """Lowercase hex HMAC-SHA256 of the string to sign keyed by the secret."""
    return hmac.new(
        secret.encode("utf-8"),
        string_to_sign_value.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def authorization_header(access_key_id: str, signed_headers: str, signature_value: str) -> str:
    return f"{ALGORITHM} Credential={access_key_id},SignedHeaders={signed_headers},Signature={signature_value}"


def is_signed_header(name: str) -> bool:
    """Headers that take part in the signature when present."""
    name = name.strip().lower()
    return name in ("host", "content-type") or name.startswith("x-acs-")


@dataclass(frozen=True)
class SignedRequest:
    """A request stamped and signed for a single send."""

    canonical_request: CanonicalRequest
    authorization: str
    nonce: str
    timestamp: str
    query_string: str
    headers: Dict[str, str] = field(default_factory=dict)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _new_nonce() -> str:
    return str(uuid.uuid4())


class AliyunSigner:
    """Signs Aliyun OpenAPI V3 requests with one set of credentials."""

    def __init__(
        self,
        access_key_id: str,
        access_key_secret: str,
        *,
        clock: Callable[[], str] = _utc_timestamp,
        nonce_factory: Callable[[], str] = _new_nonce,
    ) -> None:
        self.access_key_id = access_key_id
        self._access_key_secret = access_key_secret
        self._clock = clock
        self._nonce_factory = nonce_factory

    def sign_request(
        self,
        method: str,
        host: str,
        action: str,
        version: str,
        *,
        uri_path: str = "/",
        query_params: Optional[Mapping[str, object]] = None,
        body: Body = b"",
        content_type: Optional[str] = None,
        extra_headers: Optional[Mapping[str, str]] = None,
    ) -> SignedRequest:
        """Stamp date, nonce and body hash onto the request and sign it."""
        timestamp = self._clock()
        nonce = self._nonce_factory()
        content_sha256 = sha256_hex(body)

        headers: Dict[str, str] = {}
        for name, value in (extra_headers or {}).items():
            if is_signed_header(name):
                headers[name.strip().lower()] = str(value).strip()

        headers.update({
            "host": host.strip(),
            "x-acs-action": action.strip(),
            "x-acs-version": version.strip(),
            "x-acs-date": timestamp,
            "x-acs-signature-nonce": nonce,
            "x-acs-content-sha256": content_sha256,
        })
        if content_type:
            headers["content-type"] = content_type.strip()

        canonical = CanonicalRequest.build(method, uri_path, query_params, headers, headers.keys(), body)
        signature_value = signature(string_to_sign(str(canonical)), self._access_key_secret)
        authorization = authorization_header(self.access_key_id, canonical.signed_headers, signature_value)

        outgoing = dict(headers)
        outgoing["authorization"] = authorization
        return SignedRequest(
            canonical_request=canonical,
            authorization=authorization,
            nonce=nonce,
            timestamp=timestamp,
            query_string=canonical.canonical_query,
            headers=outgoing,
        )
