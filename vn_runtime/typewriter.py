"""Progressive text reveal timing.

The reveal runs as an asyncio task that exposes one more character every
1/chars_per_second seconds through the `on_reveal` callback. `complete()`
cancels the task and exposes the full text; calling it on a finished reveal
does nothing. With the typewriter disabled (or a non-positive rate) text is
revealed at once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class Typewriter:
    def __init__(
        self,
        on_reveal: Callable[[str], None],
        chars_per_second: float = 40.0,
        enabled: bool = True,
    ) -> None:
        self._on_reveal = on_reveal
        self._cps = chars_per_second
        self._enabled = enabled
        self._task: asyncio.Task | None = None
        self._text = ""
        self._complete = True

    @property
    def progressive(self) -> bool:
        return self._enabled and self._cps > 0

    @property
    def running(self) -> bool:
        return not self._complete

    @property
    def text(self) -> str:
        return self._text

    def start(self, text: str, *, instant: bool = False) -> bool:
        """Begin revealing `text`. Returns True if the reveal is progressive."""
        self.stop()
        self._text = text
        if instant or not self.progressive or not text:
            self._complete = True
            self._on_reveal(text)
            return False
        self._complete = False
        self._task = asyncio.get_running_loop().create_task(self._run(text))
        return True

    async def _run(self, text: str) -> None:
        delay = 1.0 / self._cps
        for i in range(1, len(text)):
            self._on_reveal(text[:i])
            await asyncio.sleep(delay)
        self._on_reveal(text)
        self._complete = True
        self._task = None

    def complete(self) -> None:
        """Finish the current reveal instantly. Idempotent."""
        if self._complete:
            return
        self.stop()
        self._complete = True
        self._on_reveal(self._text)

    def stop(self) -> None:
        """Drop the running reveal without exposing the rest of the text."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._complete = True
