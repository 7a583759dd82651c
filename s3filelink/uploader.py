# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Single-request S3 upload orchestration.

Hashes the blob, builds the content-addressed key, signs one ``PUT`` and
sends it.  The request runs as a task on a background event loop while
the calling thread waits for the response.  Cancelling the upload's
handle from any thread cancels that task, so the connection is torn
down and the transport slot freed even when the server never answers.

Failures are classified into:

- ``UploadHttpError`` — a status other than 200 was received
- ``UploadNetworkError`` — DNS, TLS, connect or read failure
- ``UploadCancelledError`` — cancelled before or during the request
  (a network error subclass)
- ``UploadUnknownError`` — anything else, such as a header the client
  cannot encode

Nothing is retried here; retry policy belongs to the caller.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import functools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

import httpx

from s3filelink.accounts import Account
from s3filelink.digest import sha256_hex
from s3filelink.object_key import build_key, public_url, virtual_host
from s3filelink.registry import CancelHandle
from s3filelink.signing import SigningRequest, format_amz_date, sign


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_MAX_CONCURRENT = 4

_CLOSE_TIMEOUT_SECONDS = 5.0

CONTENT_TYPE = "application/octet-stream"


class UploadErrorKind(Enum):
    """Classification of upload failures."""

    NETWORK = "network"
    HTTP = "http"
    UNKNOWN = "unknown"


class UploadError(Exception):
    """Base class for failed uploads.

    Attributes:
        kind: Failure classification.
        code: Stable identifier for mapping to user-facing messages.
    """

    kind: UploadErrorKind = UploadErrorKind.UNKNOWN

    @property
    def code(self) -> str:
        return "ERR_UPLOAD_FAILED_UNKNOWN"


class UploadNetworkError(UploadError):
    """No HTTP status was received (transport failure or cancellation)."""

    kind = UploadErrorKind.NETWORK
    cancelled = False

    @property
    def code(self) -> str:
        return "ERR_UPLOAD_FAILED_NETWORK_ERROR"


class UploadCancelledError(UploadNetworkError):
    """The upload was cancelled before the server answered."""

    cancelled = True


class UploadHttpError(UploadError):
    """The server answered with a status other than 200.

    Attributes:
        status: HTTP status code.
        body: Response body text, kept for diagnostics.
    """

    kind = UploadErrorKind.HTTP

    def __init__(self, status: int, body: str = "") -> None:
        super().__init__(f"Upload failed with HTTP status {status}")
        self.status = status
        self.body = body

    @property
    def code(self) -> str:
        return f"ERR_UPLOAD_FAILED_HTTP_{self.status}"


class UploadUnknownError(UploadError):
    """The request failed with neither a status nor a transport error."""


@dataclass
class Upload:
    """One in-flight transfer.

    Attributes:
        id: Caller-supplied identity, unique per concurrent upload.
        name: File name used for the object key.
        handle: Cancellation handle for the network call.
    """

    id: str
    name: str
    handle: CancelHandle = field(default_factory=CancelHandle)


@dataclass(frozen=True)
class PreparedUpload:
    """A signed PUT ready to send.

    Attributes:
        url: Full request URL (also the public URL of the object).
        key: Object key without leading slash.
        content_hash: Hex SHA-256 of the body.
        headers: Request headers, including ``Authorization``.
    """

    url: str
    key: str
    content_hash: str
    headers: dict[str, str]


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful upload."""

    url: str
    key: str
    status: int
    body: str = ""


def prepare_upload(
    account: Account, name: str, blob: bytes, now: datetime
) -> PreparedUpload:
    """Hash, key and sign an upload.

    The same *now* feeds the object key, the signature and the
    ``X-Amz-Date`` header; any mismatch invalidates the signature.

    Args:
        account: Target account.
        name: File name.
        blob: File content.
        now: Upload timestamp.

    Returns:
        PreparedUpload with URL and headers.
    """
    content_hash = sha256_hex(blob)
    key = build_key(account, name, content_hash, now)
    authorization = sign(
        SigningRequest(
            method="PUT",
            path=f"/{key}",
            query="",
            host=virtual_host(account),
            region=account.region,
            payload_hash=content_hash,
            access_key=account.access_key,
            secret_key=account.secret_key,
        ),
        now,
    )
    return PreparedUpload(
        url=public_url(account, key),
        key=key,
        content_hash=content_hash,
        headers={
            "Content-Type": CONTENT_TYPE,
            "X-Amz-Date": format_amz_date(now),
            "X-Amz-Content-SHA256": content_hash,
            "Authorization": authorization,
        },
    )


class Uploader:
    """Performs signed single-PUT uploads.

    Requests run as tasks on an event loop owned by a background
    transport thread.  Callers block on their own thread; cancelling an
    upload's handle cancels its task, which aborts the socket read or
    write and closes the connection right away.

    Args:
        timeout: Per-request timeout in seconds applied by the default
            HTTP client.
        max_concurrent: Number of requests allowed on the wire at once.
            Further uploads wait for a free slot.
        client_factory: Returns a fresh ``httpx.AsyncClient`` per upload.
        clock: Returns the current time; defaults to UTC now.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client_factory = client_factory or functools.partial(
            httpx.AsyncClient, timeout=timeout
        )
        self._clock = clock or (lambda: datetime.now(UTC))
        self._slots = asyncio.Semaphore(max_concurrent)
        self._closed = False
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop, name="UploadTransport", daemon=True
        )
        self._thread.start()

    def __enter__(self) -> Uploader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def close(self) -> None:
        """Abort in-flight requests and stop the transport thread."""
        if self._closed:
            return
        self._closed = True

        future = asyncio.run_coroutine_threadsafe(
            self._cancel_pending(), self._loop
        )
        try:
            future.result(timeout=_CLOSE_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning("Upload transport did not drain in time")
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=_CLOSE_TIMEOUT_SECONDS)
        if not self._thread.is_alive():
            self._loop.close()

    async def _cancel_pending(self) -> None:
        current = asyncio.current_task()
        tasks = [task for task in asyncio.all_tasks() if task is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def upload(
        self, account: Account, upload: Upload, blob: bytes
    ) -> UploadResult:
        """Upload *blob* as *upload.name* to *account*.

        Args:
            account: Target account.
            upload: Upload identity and cancellation handle.
            blob: File content.

        Returns:
            UploadResult with the public URL.

        Raises:
            UploadHttpError: A status other than 200 was received.
            UploadCancelledError: The handle fired before a response, or
                the uploader was closed mid-request.
            UploadNetworkError: The transport failed.
            UploadUnknownError: Anything else went wrong.
            RuntimeError: The uploader is closed.
        """
        if self._closed:
            raise RuntimeError("Uploader is closed")
        if upload.handle.cancelled:
            raise UploadCancelledError(f"Upload {upload.id} cancelled")

        try:
            prepared = prepare_upload(
                account, upload.name, blob, self._clock()
            )
        except Exception as e:
            raise UploadUnknownError(
                f"Upload {upload.id} could not be prepared: "
                f"{type(e).__name__}: {e}"
            ) from e
        logger.debug(
            "PUT %s (%d bytes, sha256=%s)",
            prepared.url,
            len(blob),
            prepared.content_hash,
        )

        response = self._send(prepared, blob, upload)
        if response.status_code != 200:
            raise UploadHttpError(response.status_code, response.text)
        return UploadResult(
            url=prepared.url,
            key=prepared.key,
            status=response.status_code,
            body=response.text,
        )

    async def _put(
        self, prepared: PreparedUpload, blob: bytes
    ) -> httpx.Response:
        async with self._slots, self._client_factory() as client:
            return await client.put(
                prepared.url, headers=prepared.headers, content=blob
            )

    def _send(
        self, prepared: PreparedUpload, blob: bytes, upload: Upload
    ) -> httpx.Response:
        """Run the PUT on the transport loop and wait for it."""
        future = asyncio.run_coroutine_threadsafe(
            self._put(prepared, blob), self._loop
        )
        # Cancelling the concurrent future cancels the task on the loop
        upload.handle.add_callback(future.cancel)

        try:
            return future.result()
        except concurrent.futures.CancelledError as e:
            logger.info("Upload %s cancelled in flight", upload.id)
            raise UploadCancelledError(
                f"Upload {upload.id} cancelled"
            ) from e
        except httpx.TransportError as e:
            if upload.handle.cancelled:
                raise UploadCancelledError(
                    f"Upload {upload.id} cancelled"
                ) from e
            raise UploadNetworkError(
                f"Upload {upload.id} failed: {type(e).__name__}: {e}"
            ) from e
        except Exception as e:
            raise UploadUnknownError(
                f"Upload {upload.id} failed: {type(e).__name__}: {e}"
            ) from e
