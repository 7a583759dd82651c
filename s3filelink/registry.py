# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""In-flight upload registry and cancellation handles.

The registry maps an upload id to the cancellation handle of the
transfer currently running under that id, so a cancel request arriving
on another thread can abort it.  It is owned by the upload service and
shared by reference; there is no module-level instance.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable


logger = logging.getLogger(__name__)


class CancelHandle:
    """One-shot cancellation signal for a single upload.

    Cancelling is idempotent.  Callbacks registered with
    :meth:`add_callback` run exactly once, on the thread that cancels,
    or immediately if the handle is already cancelled.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._callbacks: list[Callable[[], object]] = []

    @property
    def cancelled(self) -> bool:
        """True once :meth:`cancel` has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Trigger cancellation.  Later calls do nothing."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], object]) -> None:
        """Run *callback* when the handle is cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or *timeout* elapses.

        Returns:
            True if the handle was cancelled.
        """
        return self._event.wait(timeout)


class UploadRegistry:
    """Thread-safe mapping from upload id to CancelHandle."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handles: dict[str, CancelHandle] = {}

    def register(self, upload_id: str, handle: CancelHandle) -> None:
        """Register *handle* under *upload_id*, replacing any previous one."""
        with self._lock:
            replaced = self._handles.get(upload_id)
            self._handles[upload_id] = handle
        if replaced is not None and replaced is not handle:
            logger.warning(
                "Upload id %s registered twice; previous entry replaced",
                upload_id,
            )

    def cancel(self, upload_id: str) -> bool:
        """Cancel the upload registered under *upload_id*, if any.

        The entry is left in place; the owner of the upload removes it
        once the transfer settles.

        Returns:
            True if a handle was found and cancelled by this call.
        """
        with self._lock:
            handle = self._handles.get(upload_id)
        if handle is None or handle.cancelled:
            logger.debug("Nothing to cancel for upload %s", upload_id)
            return False
        handle.cancel()
        logger.info("Cancelled upload %s", upload_id)
        return True

    def remove(
        self, upload_id: str, handle: CancelHandle | None = None
    ) -> None:
        """Drop the entry for *upload_id*.

        Args:
            upload_id: Upload id.
            handle: When given, only remove the entry if it still maps to
                this handle (a duplicate id may have replaced it).
        """
        with self._lock:
            current = self._handles.get(upload_id)
            if current is None:
                return
            if handle is not None and current is not handle:
                return
            del self._handles[upload_id]

    def get(self, upload_id: str) -> CancelHandle | None:
        """Return the handle registered under *upload_id*, if any."""
        with self._lock:
            return self._handles.get(upload_id)

    def __contains__(self, upload_id: object) -> bool:
        with self._lock:
            return upload_id in self._handles

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
