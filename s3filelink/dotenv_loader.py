# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Idempotent ``.env`` loading for ``!env`` configuration values.

Variables are read from two locations, in order:

1. ``~/.config/s3filelink/.env`` (XDG config directory)
2. ``.env`` in the current working directory

``python-dotenv`` does not overwrite variables that are already set, so
the process environment wins over both files and the XDG file wins over
the working directory.
"""

import logging
from pathlib import Path

from dotenv import load_dotenv


logger = logging.getLogger(__name__)

_dotenv_loaded = False


def load_dotenv_once(xdg_env: Path) -> None:
    """Load ``.env`` files once per process.

    Args:
        xdg_env: Path of the ``.env`` file in the config directory.
    """
    global _dotenv_loaded
    if _dotenv_loaded:
        return

    for env_path in (xdg_env, Path.cwd() / ".env"):
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug("Loaded .env from %s", env_path)

    _dotenv_loaded = True


def reset_dotenv_state() -> None:
    """Reset the dotenv loaded state. For testing only."""
    global _dotenv_loaded
    _dotenv_loaded = False
