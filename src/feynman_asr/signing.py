"""TC3-HMAC-SHA256 request signing.

The provider verifies every request by recomputing the signature from the same
canonical request, so each step here must match its reference byte-for-byte:

1. canonical request over method, URI, query, three signed headers and the
   SHA-256 of the JSON body;
2. string-to-sign over the algorithm, timestamp, credential scope and the
   SHA-256 of the canonical request;
3. a signing key derived by chaining HMAC-SHA256 over date, service and the
   request-type suffix;
4. the hex HMAC of the string-to-sign under that key.

All functions are pure; the caller supplies the timestamp.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Final

from .config import Credentials
from .errors import SigningError
from .models import SigningRequest

ALGORITHM: Final[str] = "TC3-HMAC-SHA256"
SECRET_PREFIX: Final[str] = "TC3"
REQUEST_TYPE: Final[str] = "tc3_request"
SIGNED_HEADERS: Final[str] = "content-type;host;x-tc-action"
CONTENT_TYPE: Final[str] = "application/json; charset=utf-8"


def _sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def serialize_payload(payload: Mapping[str, Any]) -> str:
    """Serialise *payload* to the exact JSON text that is both signed and sent."""
    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SigningError(f"Request payload is not JSON serialisable: {exc}") from exc


def utc_date(timestamp: int) -> str:
    """Return the ``YYYY-MM-DD`` UTC date for a Unix *timestamp*."""
    return datetime.fromtimestamp(timestamp, UTC).strftime("%Y-%m-%d")


def credential_scope(timestamp: int, service: str) -> str:
    """Return the ``date/service/tc3_request`` scope for a signing key."""
    return f"{utc_date(timestamp)}/{service}/{REQUEST_TYPE}"


def canonical_request(request: SigningRequest) -> str:
    """Build the canonical request string for *request*."""
    canonical_headers = (
        f"content-type:{request.content_type}\n"
        f"host:{request.host}\n"
        f"x-tc-action:{request.action.lower()}\n"
    )
    return "\n".join(
        (
            request.http_method.upper(),
            request.uri_path,
            request.query_string,
            canonical_headers,
            SIGNED_HEADERS,
            _sha256_hex(request.payload),
        )
    )


def string_to_sign(request: SigningRequest, service: str) -> str:
    """Build the string-to-sign from the canonical form of *request*."""
    return "\n".join(
        (
            ALGORITHM,
            str(request.timestamp),
            credential_scope(request.timestamp, service),
            _sha256_hex(canonical_request(request)),
        )
    )


def derive_signing_key(secret_key: str, date: str, service: str) -> bytes:
    """Derive the date- and service-scoped signing key."""
    date_key = _hmac_sha256(f"{SECRET_PREFIX}{secret_key}".encode(), date)
    service_key = _hmac_sha256(date_key, service)
    return _hmac_sha256(service_key, REQUEST_TYPE)


def sign(credentials: Credentials, request: SigningRequest) -> str:
    """Return the ``Authorization`` header value for *request*.

    Raises:
        SigningError: If the action name or payload are missing.

    """
    if not request.action.strip():
        raise SigningError("Action name must not be empty")
    if not request.payload:
        raise SigningError("Request payload must not be empty")
    if request.timestamp < 0:
        raise SigningError("Timestamp must be a non-negative Unix time")

    scope = credential_scope(request.timestamp, credentials.service)
    key = derive_signing_key(
        credentials.secret_key.get_secret_value(),
        utc_date(request.timestamp),
        credentials.service,
    )
    signature = hmac.new(
        key, string_to_sign(request, credentials.service).encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return (
        f"{ALGORITHM} Credential={credentials.secret_id}/{scope}, "
        f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
    )
