# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Logging setup with redaction of account secrets.

Library modules only create module loggers; entry points call
:func:`configure_logging` once.

Usage:
    from s3filelink.logging import configure_logging
    configure_logging(level=logging.DEBUG)
"""

import logging
import re
from typing import ClassVar


_DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"
_REDACTED = "[REDACTED]"


class SecretFilter(logging.Filter):
    """Logging filter that replaces registered secrets with ``[REDACTED]``.

    Secret keys are registered when accounts are stored, so a secret
    that ends up in a message or an argument never reaches a handler.
    """

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact secrets in the record; never drops the record."""
        if self._pattern is not None:
            record.msg = self.redact(str(record.msg))
            if record.args and isinstance(record.args, tuple):
                record.args = tuple(
                    self.redact(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )
        return True

    @classmethod
    def redact(cls, text: str) -> str:
        """Return *text* with every registered secret replaced."""
        if cls._pattern is None:
            return text
        return cls._pattern.sub(_REDACTED, text)

    @classmethod
    def register_secret(cls, secret: str) -> None:
        """Register a secret.  Empty strings are ignored."""
        if secret and secret not in cls._secrets:
            cls._secrets.add(secret)
            # Longest first so a secret containing another is fully hidden
            escaped = sorted(
                (re.escape(s) for s in cls._secrets), key=len, reverse=True
            )
            cls._pattern = re.compile("|".join(escaped))

    @classmethod
    def clear_secrets(cls) -> None:
        """Forget all registered secrets. Primarily for testing."""
        cls._secrets.clear()
        cls._pattern = None


def configure_logging(
    level: int = logging.INFO,
    format_string: str | None = None,
) -> None:
    """Configure the root logger with a redacting stream handler.

    Args:
        level: Root logging level.
        format_string: Custom format string.  Defaults to
            ``time [LEVEL] name: message``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(format_string or _DEFAULT_FORMAT, _DEFAULT_DATEFMT)
    )
    handler.addFilter(SecretFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)
    root_logger.addHandler(handler)
