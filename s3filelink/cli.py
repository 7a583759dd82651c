# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""s3filelink CLI — multi-command entry point.

Subcommands:

* ``upload`` — upload a file and print its public URL
* ``check``  — load the config and list accounts with their status
"""

from __future__ import annotations

import argparse
import logging
import secrets
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from s3filelink.accounts import AccountNotFoundError, AccountStore
from s3filelink.config import ConfigError, FileLinkConfig
from s3filelink.logging import SecretFilter, configure_logging
from s3filelink.object_key import virtual_host
from s3filelink.service import FileLinkService
from s3filelink.uploader import UploadError


logger = logging.getLogger(__name__)

_USAGE = """\
usage: s3filelink <command> [args]

commands:
  upload   Upload a file and print its public URL
  check    Verify the config and list configured accounts

Run 's3filelink <command> --help' for command-specific help.\
"""

# Exit codes
EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_UPLOAD = 2


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the YAML config (default: XDG config directory)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )


def cmd_upload(argv: list[str]) -> int:
    """Upload one file.

    Ctrl-C cancels the in-flight request through the upload registry.
    A second Ctrl-C stops waiting for the cancellation to settle.

    Args:
        argv: Arguments after the subcommand.

    Returns:
        Exit code (0 on success, 1 on config error, 2 on upload error).
    """
    parser = argparse.ArgumentParser(
        prog="s3filelink upload",
        description="Upload a file to an S3-compatible bucket.",
    )
    _add_common_args(parser)
    parser.add_argument("account", help="Account id from the config")
    parser.add_argument("file", type=Path, help="File to upload")
    parser.add_argument(
        "--name", help="Object file name (default: the file's name)"
    )
    args = parser.parse_args(argv)

    configure_logging(level=logging.DEBUG if args.debug else logging.INFO)

    try:
        config = FileLinkConfig.from_yaml(args.config)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_CONFIG

    try:
        blob = args.file.read_bytes()
    except OSError as e:
        logger.error("Cannot read %s: %s", args.file, e)
        return EXIT_CONFIG

    upload_id = secrets.token_hex(8)
    name = args.name or args.file.name

    # Service exits before the pool joins, aborting an abandoned upload
    with (
        ThreadPoolExecutor(max_workers=1) as pool,
        FileLinkService.from_config(config) as service,
    ):
        future = pool.submit(
            service.new_upload, args.account, upload_id, name, blob
        )
        try:
            try:
                result = future.result()
            except KeyboardInterrupt:
                logger.warning("Interrupted, cancelling upload %s", upload_id)
                service.cancel_upload(upload_id)
                result = future.result()
        except KeyboardInterrupt:
            logger.warning(
                "Interrupted again, not waiting for upload %s", upload_id
            )
            return EXIT_UPLOAD
        except AccountNotFoundError as e:
            logger.error("%s", e)
            return EXIT_CONFIG
        except UploadError as e:
            print(
                f"s3filelink: {e.code}: {SecretFilter.redact(str(e))}",
                file=sys.stderr,
            )
            return EXIT_UPLOAD

    print(result.url)
    return EXIT_OK


def cmd_check(argv: list[str]) -> int:
    """Load the config and print each account's status.

    Args:
        argv: Arguments after the subcommand.

    Returns:
        Exit code (0 if at least one account is configured, 1 otherwise).
    """
    parser = argparse.ArgumentParser(
        prog="s3filelink check",
        description="Verify the config and list configured accounts.",
    )
    _add_common_args(parser)
    args = parser.parse_args(argv)

    configure_logging(level=logging.DEBUG if args.debug else logging.WARNING)

    try:
        config = FileLinkConfig.from_yaml(args.config)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_CONFIG

    store = AccountStore.from_config(config)
    status = store.configured_status(config.accounts)
    if not any(status.values()):
        print("No accounts configured")
        return EXIT_CONFIG

    for account_id, configured in status.items():
        account = config.accounts[account_id]
        print(
            f"{account_id}: https://{virtual_host(account)}/"
            f" region={account.region} prefix={account.prefix or '/'}"
            f" configured={configured}"
        )
    return EXIT_OK


_DISPATCH = {
    "upload": cmd_upload,
    "check": cmd_check,
}


def cli() -> None:
    """Entry point for the ``s3filelink`` command."""
    argv = sys.argv[1:]

    if not argv or argv[0] == "--help":
        print(_USAGE)
        sys.exit(0)

    handler = _DISPATCH.get(argv[0])
    if handler is None:
        print(f"s3filelink: unknown command '{argv[0]}'", file=sys.stderr)
        print(_USAGE, file=sys.stderr)
        sys.exit(2)

    sys.exit(handler(argv[1:]))
