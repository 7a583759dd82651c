# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Storage accounts and the thread-safe account store.

An account bundles the endpoint, bucket and credentials for one S3
compatible service.  The store is read by the upload service and
written by whatever owns account settings (configuration file, host
settings page).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from s3filelink.logging import SecretFilter


if TYPE_CHECKING:
    from s3filelink.config import FileLinkConfig


logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    "endpoint",
    "bucket",
    "region",
    "access_key",
    "secret_key",
)


class AccountNotFoundError(LookupError):
    """No usable account is stored under the requested id."""

    code = "ERR_ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id


class InvalidAccountError(ValueError):
    """Account settings are missing a required field."""


@dataclass(frozen=True)
class Account:
    """Credentials and location for one S3-compatible bucket.

    Attributes:
        endpoint: Storage service hostname (e.g. ``s3.example.com``).
        bucket: Bucket name, used as the virtual-host label.
        region: Signing region.
        prefix: Logical folder for uploads; surrounding slashes are
            stripped when keys are built.
        access_key: Access key ID.
        secret_key: Secret access key.
    """

    endpoint: str
    bucket: str
    region: str
    access_key: str
    secret_key: str
    prefix: str = ""

    def __repr__(self) -> str:
        return (
            f"Account(endpoint={self.endpoint!r}, bucket={self.bucket!r}, "
            f"region={self.region!r}, prefix={self.prefix!r}, "
            f"access_key={self.access_key!r})"
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Account:
        """Build an account from a settings mapping.

        Args:
            raw: Mapping with ``endpoint``, ``bucket``, ``region``,
                ``access_key``, ``secret_key`` and optional ``prefix``.

        Returns:
            Account instance.

        Raises:
            InvalidAccountError: If a required field is missing or empty.
        """
        missing = [name for name in _REQUIRED_FIELDS if not raw.get(name)]
        if missing:
            raise InvalidAccountError(
                f"Account settings missing: {', '.join(missing)}"
            )
        return cls(
            endpoint=str(raw["endpoint"]),
            bucket=str(raw["bucket"]),
            region=str(raw["region"]),
            access_key=str(raw["access_key"]),
            secret_key=str(raw["secret_key"]),
            prefix=str(raw.get("prefix") or ""),
        )

    def to_mapping(self) -> dict[str, str]:
        """Serialize with the settings field names."""
        return {
            "endpoint": self.endpoint,
            "region": self.region,
            "bucket": self.bucket,
            "prefix": self.prefix,
            "access_key": self.access_key,
            "secret_key": self.secret_key,
        }


class AccountStore:
    """Thread-safe mapping from account id to Account."""

    def __init__(self, accounts: Mapping[str, Account] | None = None) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[str, Account] = {}
        for account_id, account in (accounts or {}).items():
            self.set(account_id, account)

    @classmethod
    def from_config(cls, config: FileLinkConfig) -> AccountStore:
        """Build a store holding every account from configuration."""
        return cls(config.accounts)

    def get(self, account_id: str) -> Account:
        """Look up an account.

        Raises:
            AccountNotFoundError: If no account is stored under the id.
        """
        with self._lock:
            account = self._accounts.get(account_id)
        if account is None or not account.endpoint:
            raise AccountNotFoundError(account_id)
        return account

    def set(self, account_id: str, account: Account) -> None:
        """Store or replace an account."""
        SecretFilter.register_secret(account.secret_key)
        with self._lock:
            self._accounts[account_id] = account
        logger.debug("Stored account %s: %r", account_id, account)

    def remove(self, account_id: str) -> None:
        """Forget an account.  Unknown ids are ignored."""
        with self._lock:
            removed = self._accounts.pop(account_id, None)
        if removed is not None:
            logger.info("Removed account %s", account_id)

    def is_configured(self, account_id: str) -> bool:
        """Return True if a usable account is stored under the id."""
        with self._lock:
            account = self._accounts.get(account_id)
        return account is not None and bool(account.endpoint)

    def configured_status(self, account_ids: Iterable[str]) -> dict[str, bool]:
        """Report which of the host's account ids are configured."""
        return {
            account_id: self.is_configured(account_id)
            for account_id in account_ids
        }

    def ids(self) -> list[str]:
        """Return the stored account ids in insertion order."""
        with self._lock:
            return list(self._accounts)
