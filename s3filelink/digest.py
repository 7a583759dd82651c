# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""SHA-256 and HMAC-SHA256 primitives used by the request signer.

All functions are pure and hold no state, so they are safe to call from
any thread.  Text arguments are encoded as UTF-8 before hashing; this
matters for the SigV4 key chain, which mixes a textual secret with raw
intermediate digests.
"""

from __future__ import annotations

import hashlib
import hmac


def _to_bytes(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def sha256_hex(data: bytes | str) -> str:
    """Return the lower-case hex SHA-256 digest of *data*."""
    return hashlib.sha256(_to_bytes(data)).hexdigest()


def hmac_sha256(key: bytes | str, message: bytes | str) -> bytes:
    """Compute raw HMAC-SHA256 of *message* under *key*."""
    return hmac.new(_to_bytes(key), _to_bytes(message), hashlib.sha256).digest()


def hex_encode(data: bytes) -> str:
    """Encode bytes as two lower-case hex digits per byte, no separators."""
    return data.hex()
