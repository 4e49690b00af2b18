"""
Cooperative cancellation for crawl and summarization runs.
"""

from typing import Callable, Optional

from fishtales.core.base import CrawlCancelled


class CancellationToken:
    """
    Flag checked at the top of every crawl iteration and before every
    summarization call.

    An optional `check` callable is consulted as well, so a token can mirror
    an external job status without the crawler knowing about job storage.
    """

    def __init__(self, check: Optional[Callable[[], bool]] = None):
        self._cancelled = False
        self._check = check

    def cancel(self) -> None:
        """Mark the token as cancelled"""
        self._cancelled = True

    def is_cancelled(self) -> bool:
        if not self._cancelled and self._check is not None and self._check():
            self._cancelled = True
        return self._cancelled

    def throw_if_cancelled(self) -> None:
        """Raise CrawlCancelled once the token has been cancelled"""
        if self.is_cancelled():
            raise CrawlCancelled()
