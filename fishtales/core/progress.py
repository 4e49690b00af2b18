"""
Progress reporting for long-running jobs.
"""

import inspect
from typing import Any, Callable, List, Optional

from fishtales.core.logging import get_logger


class ProgressReporter:
    """
    Collects progress messages and forwards them to an optional callback.

    The callback receives `(message, update_last)` and may be a plain
    function or a coroutine function. With `update_last=True` the message
    replaces the previous one, which is how counters like
    "Scraping sites (3/10)" are shown without flooding the log.
    """

    def __init__(self, callback: Optional[Callable[..., Any]] = None):
        self.callback = callback
        self.messages: List[str] = []
        self.logger = get_logger('progress')

    async def emit(self, message: str, update_last: bool = False) -> None:
        if update_last and self.messages:
            self.messages[-1] = message
        else:
            self.messages.append(message)

        self.logger.info(message)

        if self.callback is not None:
            result = self.callback(message, update_last)
            if inspect.isawaitable(result):
                await result

    def transcript(self) -> str:
        return "\n".join(self.messages)
