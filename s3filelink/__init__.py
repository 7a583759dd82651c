# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Signed single-request uploads to S3-compatible object stores.

- SigV4 request signing without an AWS SDK (``signing``)
- Content-addressed object keys (``object_key``)
- Cancellable uploads (``uploader``, ``registry``)
- Host-facing service and account store (``service``, ``accounts``)
"""

from s3filelink.accounts import (
    Account,
    AccountNotFoundError,
    AccountStore,
)
from s3filelink.registry import CancelHandle, UploadRegistry
from s3filelink.service import FileLinkService
from s3filelink.signing import SigningRequest, sign
from s3filelink.uploader import (
    Upload,
    UploadCancelledError,
    Uploader,
    UploadError,
    UploadErrorKind,
    UploadHttpError,
    UploadNetworkError,
    UploadResult,
    UploadUnknownError,
)


__all__ = [
    "Account",
    "AccountNotFoundError",
    "AccountStore",
    "CancelHandle",
    "FileLinkService",
    "SigningRequest",
    "Upload",
    "UploadCancelledError",
    "UploadError",
    "UploadErrorKind",
    "UploadHttpError",
    "UploadNetworkError",
    "UploadRegistry",
    "UploadResult",
    "UploadUnknownError",
    "Uploader",
    "sign",
]
