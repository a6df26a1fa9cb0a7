"""Run downloads off the caller's thread, one operation at a time."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional

from .fetcher import Fetcher
from .models import RenderedDocument
from .pipeline import download_conversation
from .settings import ShareLinkSettings


class DownloadSession:
    """Serialize user-triggered downloads on a single worker thread.

    Starting a new download supersedes the previous one: a queued download
    is cancelled outright, and a running one completes its network call but
    raises DownloadCancelled instead of rendering.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        link_settings: Optional[ShareLinkSettings] = None,
    ) -> None:
        self._fetcher = fetcher
        self._link_settings = link_settings
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="share-download"
        )
        self._lock = threading.Lock()
        self._generation = 0
        self._current: Optional[Future[RenderedDocument]] = None

    def start(self, url: str) -> Future[RenderedDocument]:
        """Schedule ``url`` for download, superseding any earlier one."""

        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._current is not None:
                self._current.cancel()
            future = self._executor.submit(self._run, url, generation)
            self._current = future
        return future

    def cancel(self) -> None:
        """Abandon the current download, if any."""

        with self._lock:
            self._generation += 1
            if self._current is not None:
                self._current.cancel()
                self._current = None

    def close(self) -> None:
        """Cancel outstanding work and stop the worker thread."""

        self.cancel()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "DownloadSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _is_stale(self, generation: int) -> bool:
        with self._lock:
            return generation != self._generation

    def _run(self, url: str, generation: int) -> RenderedDocument:
        return download_conversation(
            url,
            fetcher=self._fetcher,
            link_settings=self._link_settings,
            is_cancelled=lambda: self._is_stale(generation),
        )


__all__ = ["DownloadSession"]
