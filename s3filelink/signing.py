# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS SigV4 header signing for single-request S3 uploads.

Builds the ``Authorization`` header for an S3 request that signs exactly
two headers, ``host`` and ``x-amz-date``.  The pipeline follows the
published algorithm step by step:

1. canonical request (method, path, query, signed headers, payload hash)
2. string to sign (algorithm, timestamp, credential scope, request hash)
3. derived signing key (date -> region -> service -> ``aws4_request``)
4. hex HMAC of the string to sign

No boto3/botocore dependency — uses only stdlib.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime

from s3filelink.digest import hex_encode, hmac_sha256, sha256_hex


ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
SIGNED_HEADERS = "host;x-amz-date"

_TERMINATOR = "aws4_request"

# Characters left alone by the baseline component encoder
_COMPONENT_UNESCAPED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
    "-_.!~*'()"
)

# Reserved by RFC 3986 but skipped by the baseline encoder
_RFC3986_EXTRA_RE = re.compile(r"[!'()*]")

_AUTH_HEADER_RE = re.compile(
    r"(?P<algorithm>AWS4-HMAC-SHA256)\s+"
    r"Credential=(?P<access_key>[^/]+)/(?P<scope>[^,]+),\s*"
    r"SignedHeaders=(?P<signed_headers>[^,]+),\s*"
    r"Signature=(?P<signature>[0-9a-f]+)"
)


@dataclass(frozen=True)
class SigningRequest:
    """Minimal description of the request being signed.

    Attributes:
        method: HTTP method (case-insensitive).
        path: URL path, already percent-encoded.
        query: Query string without the leading ``?`` (empty if none).
        host: Virtual host, e.g. ``bucket.s3.example.com``.
        region: Signing region.
        payload_hash: Hex SHA-256 of the request body.
        access_key: Access key ID.
        secret_key: Secret access key.
    """

    method: str
    path: str
    query: str
    host: str
    region: str
    payload_hash: str
    access_key: str
    secret_key: str


@dataclass(frozen=True)
class ParsedAuth:
    """Fields of a parsed SigV4 ``Authorization`` header."""

    algorithm: str
    access_key: str
    scope: str
    signed_headers: str
    signature: str

    @property
    def date(self) -> str:
        """Date from credential scope (YYYYMMDD)."""
        return self.scope.split("/")[0]

    @property
    def region(self) -> str:
        """Region from credential scope."""
        return self.scope.split("/")[1]


# ---------------------------------------------------------------------------
# URI encoding
# ---------------------------------------------------------------------------


def uri_encode_component(text: str) -> str:
    """Percent-encode a URI component with the baseline rule set.

    Letters, digits and ``-_.!~*'()`` pass through; every other UTF-8
    byte becomes ``%XX`` with upper-case hex.
    """
    result: list[str] = []
    for ch in text:
        if ch in _COMPONENT_UNESCAPED:
            result.append(ch)
        else:
            result.extend(f"%{b:02X}" for b in ch.encode("utf-8"))
    return "".join(result)


def uri_encode_rfc3986(text: str) -> str:
    """Percent-encode a URI component strictly per RFC 3986.

    Applies the baseline encoder, then escapes ``!'()*`` as well so the
    result only leaves the RFC 3986 unreserved set unescaped.
    """
    return _RFC3986_EXTRA_RE.sub(
        lambda m: f"%{ord(m.group(0)):02X}", uri_encode_component(text)
    )


# ---------------------------------------------------------------------------
# Signing pipeline
# ---------------------------------------------------------------------------


def format_amz_date(now: datetime) -> str:
    """Format a timestamp as ``YYYYMMDDTHHMMSSZ``.

    Naive datetimes are taken to be UTC already.
    """
    if now.tzinfo is not None:
        now = now.astimezone(UTC)
    return now.strftime("%Y%m%dT%H%M%SZ")


def credential_scope(date_stamp: str, region: str) -> str:
    """Build the credential scope string for S3."""
    return f"{date_stamp}/{region}/{SERVICE}/{_TERMINATOR}"


def build_canonical_request(
    method: str,
    path: str,
    query: str,
    host: str,
    amz_date: str,
    payload_hash: str,
) -> str:
    """Build the canonical request signing ``host`` and ``x-amz-date``.

    Args:
        method: HTTP method.
        path: Percent-encoded request path.
        query: Query string (empty if none).
        host: Value of the ``Host`` header.
        amz_date: Timestamp in ``YYYYMMDDTHHMMSSZ`` form.
        payload_hash: Hex SHA-256 of the body.

    Returns:
        Canonical request string.
    """
    return "\n".join(
        [
            method.upper(),
            path,
            query,
            f"host:{host}",
            f"x-amz-date:{amz_date}",
            "",
            SIGNED_HEADERS,
            payload_hash,
        ]
    )


def build_string_to_sign(
    amz_date: str, scope: str, canonical_request: str
) -> str:
    """Build the SigV4 string to sign."""
    return "\n".join(
        [
            ALGORITHM,
            amz_date,
            scope,
            sha256_hex(canonical_request),
        ]
    )


def derive_signing_key(
    secret_key: str, date_stamp: str, region: str, service: str = SERVICE
) -> bytes:
    """Derive the SigV4 signing key.

    Each step keys the next HMAC with the previous raw digest; only the
    first key is text (``"AWS4" + secret_key``).

    Args:
        secret_key: Secret access key.
        date_stamp: Date string (YYYYMMDD).
        region: Signing region.
        service: Service name.

    Returns:
        Derived signing key bytes.
    """
    k_date = hmac_sha256("AWS4" + secret_key, date_stamp)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, _TERMINATOR)


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    """Return the hex signature of *string_to_sign*."""
    return hex_encode(hmac_sha256(signing_key, string_to_sign))


def sign(request: SigningRequest, now: datetime) -> str:
    """Compute the ``Authorization`` header value for *request*.

    The result is a pure function of *request* and *now*; the caller must
    send the same timestamp in ``X-Amz-Date``.

    Args:
        request: Request description.
        now: Signing timestamp.

    Returns:
        Full ``Authorization`` header value.
    """
    amz_date = format_amz_date(now)
    date_stamp = amz_date[:8]
    scope = credential_scope(date_stamp, request.region)

    canonical_request = build_canonical_request(
        request.method,
        request.path,
        request.query,
        request.host,
        amz_date,
        request.payload_hash,
    )
    string_to_sign = build_string_to_sign(amz_date, scope, canonical_request)
    signing_key = derive_signing_key(
        request.secret_key, date_stamp, request.region
    )
    signature = compute_signature(signing_key, string_to_sign)

    return (
        f"{ALGORITHM} Credential={request.access_key}/{scope}, "
        f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
    )


def parse_auth_header(value: str) -> ParsedAuth | None:
    """Parse a SigV4 ``Authorization`` header.

    Args:
        value: Full header value.

    Returns:
        ParsedAuth if the value is a SigV4 header, None otherwise.
    """
    m = _AUTH_HEADER_RE.match(value)
    if not m:
        return None
    return ParsedAuth(
        algorithm=m.group("algorithm"),
        access_key=m.group("access_key"),
        scope=m.group("scope"),
        signed_headers=m.group("signed_headers"),
        signature=m.group("signature"),
    )
