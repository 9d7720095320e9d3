import asyncio
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List

from aiogram import Bot
from aiogram.exceptions import TelegramRetryAfter

from dcamonitor.monitor.config import DEDUP_WINDOW_SECONDS, MIN_SEND_INTERVAL_SECONDS


class TelegramNotifier:
    """
    Delivers alert text to a Telegram chat.

    Identical texts within the dedup window are suppressed, deliveries are
    spaced by a minimum interval, and throttled messages (HTTP 429) are put
    back at the head of the queue until the signalled delay has passed.
    """

    PARSE_MODE = "HTML"

    def __init__(
        self,
        bot: Bot | Any,
        chat_id: str | int,
        dedup_window: float = DEDUP_WINDOW_SECONDS,
        min_interval: float = MIN_SEND_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.bot = bot
        self.chat_id = chat_id
        self.dedup_window = dedup_window
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep

        self._queue: Deque[str] = deque()
        self._recent: Dict[str, float] = {}
        self._last_sent_at: float | None = None
        self._drain_task: asyncio.Task | None = None
        self._listeners: List[Callable[[str], None]] = []

        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_token(cls, token: str, chat_id: str | int, **kwargs) -> "TelegramNotifier":
        return cls(Bot(token=token), chat_id, **kwargs)

    def on_message(self, listener: Callable[[str], None]) -> None:
        """Register a listener called with every delivered text."""
        self._listeners.append(listener)

    @property
    def pending(self) -> int:
        return len(self._queue)

    async def send_alert(self, text: str) -> bool:
        """
        Queue a message for delivery.

        ## Returns:
        - `bool`: False when the same text was queued within the dedup
          window, True otherwise

        ## Side Effects:
        - Starts the background drain task if it is not running
        """
        now = self._clock()
        self._prune_recent(now)

        if text in self._recent:
            self.logger.debug("Suppressed duplicate alert")
            return False

        self._recent[text] = now
        self._queue.append(text)

        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self._drain())

        return True

    async def flush(self) -> None:
        """Wait until every queued message has been delivered or dropped."""
        while self._drain_task is not None and not self._drain_task.done():
            await self._drain_task

    async def close(self) -> None:
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass

        if self._queue:
            self.logger.warning(f"Dropping {len(self._queue)} undelivered alerts")
            self._queue.clear()

        session = getattr(self.bot, "session", None)
        if session is not None:
            await session.close()

    def _prune_recent(self, now: float) -> None:
        expired = [
            text for text, sent_at in self._recent.items()
            if now - sent_at >= self.dedup_window
        ]
        for text in expired:
            del self._recent[text]

    async def _wait_for_slot(self) -> None:
        if self._last_sent_at is None:
            return
        elapsed = self._clock() - self._last_sent_at
        if elapsed < self.min_interval:
            await self._sleep(self.min_interval - elapsed)

    async def _drain(self) -> None:
        while self._queue:
            await self._wait_for_slot()
            text = self._queue.popleft()

            try:
                await self.bot.send_message(
                    chat_id=self.chat_id, text=text, parse_mode=self.PARSE_MODE
                )
            except TelegramRetryAfter as e:
                self.logger.warning(
                    f"Telegram rate limit hit, retrying in {e.retry_after}s"
                )
                self._queue.appendleft(text)
                await self._sleep(e.retry_after)
                continue
            except Exception as e:
                self.logger.error(f"Failed to send Telegram notification: {e}")
                self._last_sent_at = self._clock()
                continue

            self._last_sent_at = self._clock()
            for listener in self._listeners:
                try:
                    listener(text)
                except Exception as e:
                    self.logger.error(f"Message listener failed: {e}", exc_info=True)
