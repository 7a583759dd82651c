# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Content-addressed object keys and public URLs for uploads.

Keys have the form ``<prefix>/<YYYYMMDD>-SHA256-<hash>/<name>``.  The
hash makes identical content land on the same key for a given day and
the date groups uploads chronologically.  Existing stored objects
depend on this layout, so it must not change.
"""

from __future__ import annotations

from datetime import datetime

from s3filelink.accounts import Account
from s3filelink.signing import format_amz_date, uri_encode_rfc3986


def normalize_prefix(prefix: str) -> str:
    """Strip one leading and one trailing slash from *prefix*."""
    if prefix.endswith("/"):
        prefix = prefix[:-1]
    if prefix.startswith("/"):
        prefix = prefix[1:]
    return prefix


def build_key(
    account: Account, file_name: str, content_hash: str, now: datetime
) -> str:
    """Build the object key for an upload.

    Args:
        account: Target account (supplies the prefix).
        file_name: Original file name; percent-encoded per RFC 3986.
        content_hash: Hex SHA-256 of the file content.
        now: Upload timestamp; must be the one used for signing.

    Returns:
        Object key without a leading slash.
    """
    date_stamp = format_amz_date(now)[:8]
    parts = [
        f"{date_stamp}-SHA256-{content_hash}",
        uri_encode_rfc3986(file_name),
    ]
    prefix = normalize_prefix(account.prefix)
    if prefix:
        parts.insert(0, prefix)
    return "/".join(parts)


def virtual_host(account: Account) -> str:
    """Return the virtual-hosted-style host for the account's bucket."""
    return f"{account.bucket}.{account.endpoint}"


def public_url(account: Account, key: str) -> str:
    """Return the HTTPS URL of *key* in the account's bucket."""
    return f"https://{virtual_host(account)}/{key}"
