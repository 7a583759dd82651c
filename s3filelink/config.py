# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Configuration for the uploader.

Configuration is loaded from a YAML file (by default
``~/.config/s3filelink/s3filelink.yaml``) with support for ``!env`` tags
that resolve values from environment variables, so credentials can stay
out of the file::

    upload:
      timeout_seconds: 300
      max_concurrent: 4
    accounts:
      work:
        endpoint: s3.example.com
        bucket: my-bucket
        region: us-east-1
        prefix: /uploads/
        access_key: !env S3_ACCESS_KEY
        secret_key: !env S3_SECRET_KEY
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

import yaml
from platformdirs import user_config_path

from s3filelink.accounts import Account, InvalidAccountError
from s3filelink.dotenv_loader import load_dotenv_once
from s3filelink.uploader import (
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_TIMEOUT_SECONDS,
)


logger = logging.getLogger(__name__)

_APP_NAME = "s3filelink"
CONFIG_PATH_ENV = "S3FILELINK_CONFIG"


class ConfigError(Exception):
    """Invalid or missing configuration."""


def get_config_path() -> Path:
    """Return the config file path.

    ``$S3FILELINK_CONFIG`` wins; otherwise the XDG location
    ``$XDG_CONFIG_HOME/s3filelink/s3filelink.yaml``.
    """
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return user_config_path(_APP_NAME) / f"{_APP_NAME}.yaml"


def get_dotenv_path() -> Path:
    """Return the ``.env`` path inside the XDG config directory."""
    return user_config_path(_APP_NAME) / ".env"


# ---------------------------------------------------------------------------
# YAML ``!env`` tags
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)  # type: ignore[arg-type]
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


def _raw_resolve(value: object) -> str | None:
    """Resolve an ``_EnvVar`` or stringify a literal.

    Returns None if the value is None or the env var is unset/empty.
    """
    if isinstance(value, _EnvVar):
        return os.environ.get(value.var_name) or None
    if value is None:
        return None
    return str(value)


T = TypeVar("T", int, float)


def _resolve_number(
    value: object, coerce: type[T], *, name: str, default: T
) -> T:
    """Resolve a positive number, applying *default* when absent."""
    resolved = _raw_resolve(value)
    if resolved is None:
        return default
    try:
        number = coerce(resolved)
    except ValueError as e:
        raise ConfigError(
            f"Config '{name}' must be a number, got {resolved!r}"
        ) from e
    if number <= 0:
        raise ConfigError(f"Config '{name}' must be positive, got {number}")
    return number


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FileLinkConfig:
    """Complete uploader configuration.

    Attributes:
        timeout_seconds: Per-request HTTP timeout.
        max_concurrent: Number of transport worker threads.
        accounts: Accounts keyed by account id.
    """

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    accounts: dict[str, Account] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> FileLinkConfig:
        """Load configuration from a YAML file.

        Values tagged with ``!env VAR_NAME`` are resolved from the
        environment at load time, after ``.env`` files are loaded.

        Args:
            config_path: YAML file.  Defaults to :func:`get_config_path`.

        Returns:
            FileLinkConfig instance.

        Raises:
            ConfigError: If the file is missing or malformed.
        """
        load_dotenv_once(get_dotenv_path())

        if config_path is None:
            config_path = get_config_path()

        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            try:
                raw = yaml.load(f, Loader=_make_loader())
            except yaml.YAMLError as e:
                raise ConfigError(
                    f"Invalid YAML in {config_path}: {e}"
                ) from e

        if not isinstance(raw, dict):
            raise ConfigError(
                f"Config file must be a YAML mapping: {config_path}"
            )

        config = cls._from_raw(raw)
        logger.info(
            "Config loaded from %s: %d accounts",
            config_path,
            len(config.accounts),
        )
        return config

    @classmethod
    def _from_raw(cls, raw: dict[str, Any]) -> FileLinkConfig:
        """Build config from parsed (but unresolved) YAML dict."""
        upload = raw.get("upload") or {}
        if not isinstance(upload, dict):
            raise ConfigError("'upload' must be a YAML mapping")

        raw_accounts = raw.get("accounts") or {}
        if not isinstance(raw_accounts, dict):
            raise ConfigError("'accounts' must be a YAML mapping")

        accounts: dict[str, Account] = {}
        for account_id, account_raw in raw_accounts.items():
            account_id = str(account_id)
            if not isinstance(account_raw, dict):
                raise ConfigError(
                    f"accounts.{account_id} must be a YAML mapping"
                )
            resolved = {
                str(key): _raw_resolve(value)
                for key, value in account_raw.items()
            }
            try:
                accounts[account_id] = Account.from_mapping(resolved)
            except InvalidAccountError as e:
                raise ConfigError(f"accounts.{account_id}: {e}") from e

        return cls(
            timeout_seconds=_resolve_number(
                upload.get("timeout_seconds"),
                float,
                name="upload.timeout_seconds",
                default=DEFAULT_TIMEOUT_SECONDS,
            ),
            max_concurrent=_resolve_number(
                upload.get("max_concurrent"),
                int,
                name="upload.max_concurrent",
                default=DEFAULT_MAX_CONCURRENT,
            ),
            accounts=accounts,
        )
