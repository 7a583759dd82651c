# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Host-facing upload service.

The host (a mail client's cloud-file integration, the CLI, a web
handler) calls :meth:`FileLinkService.new_upload` when a file should be
uploaded and :meth:`FileLinkService.cancel_upload` when the user aborts
it, possibly from another thread.  Account lifecycle hooks are exposed
as plain methods as well.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from s3filelink.accounts import AccountStore
from s3filelink.config import FileLinkConfig
from s3filelink.registry import CancelHandle, UploadRegistry
from s3filelink.uploader import (
    Upload,
    Uploader,
    UploadHttpError,
    UploadResult,
)


logger = logging.getLogger(__name__)


class FileLinkService:
    """Runs uploads for stored accounts and routes cancellation.

    Args:
        accounts: Account store to resolve account ids.
        registry: Registry of in-flight uploads.  A new one is created
            when omitted.
        uploader: Upload orchestrator.  A default one is created when
            omitted.
    """

    def __init__(
        self,
        accounts: AccountStore,
        *,
        registry: UploadRegistry | None = None,
        uploader: Uploader | None = None,
    ) -> None:
        self.accounts = accounts
        self.registry = registry or UploadRegistry()
        self._uploader = uploader or Uploader()

    @classmethod
    def from_config(cls, config: FileLinkConfig) -> FileLinkService:
        """Build a service with accounts and limits from configuration."""
        return cls(
            AccountStore.from_config(config),
            uploader=Uploader(
                timeout=config.timeout_seconds,
                max_concurrent=config.max_concurrent,
            ),
        )

    def __enter__(self) -> FileLinkService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the uploader's worker threads."""
        self._uploader.close()

    def new_upload(
        self, account_id: str, upload_id: str, name: str, blob: bytes
    ) -> UploadResult:
        """Upload a file for an account.

        Args:
            account_id: Id of the stored account.
            upload_id: Caller-chosen id, unique among concurrent uploads.
            name: File name.
            blob: File content.

        Returns:
            UploadResult with the public URL.

        Raises:
            AccountNotFoundError: Unknown account; nothing is registered.
            UploadError: The upload failed (see ``s3filelink.uploader``).
        """
        account = self.accounts.get(account_id)

        upload = Upload(id=upload_id, name=name, handle=CancelHandle())
        self.registry.register(upload_id, upload.handle)
        logger.info(
            "Uploading %s (%d bytes) for account %s as upload %s",
            name,
            len(blob),
            account_id,
            upload_id,
        )
        try:
            result = self._uploader.upload(account, upload, blob)
        except UploadHttpError as e:
            logger.warning(
                "Upload %s failed with HTTP %d: %s", upload_id, e.status, e.body
            )
            raise
        finally:
            self.registry.remove(upload_id, upload.handle)

        logger.info("Upload %s succeeded: %s", upload_id, result.url)
        logger.debug("Upload %s response: %s", upload_id, result.body)
        return result

    def cancel_upload(self, upload_id: str) -> None:
        """Cancel an in-flight upload.  Unknown ids are ignored."""
        self.registry.cancel(upload_id)

    def account_deleted(self, account_id: str) -> None:
        """Forget the settings of an account the host removed."""
        self.accounts.remove(account_id)

    def configured_status(self, account_ids: Iterable[str]) -> dict[str, bool]:
        """Report which host account ids have usable settings."""
        return self.accounts.configured_status(account_ids)
