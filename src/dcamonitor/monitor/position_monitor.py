"""
# DCA Position Monitor

Polls the DCA account source, keeps positions that touch a tracked token and
still hold funds, and reports what changed since the previous poll.

## Cycle
1. Fetch positions (bounded by a timeout)
2. Filter to open positions on tracked mints
3. Diff against the previous cycle; announce closed and opened positions
4. When due, recompute summaries, update the state store and announce them
5. Keep the current map as "previous" for the next cycle

A failed cycle is logged and skipped; the previous map is left untouched.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Set

from dcamonitor.models import (
    ChartPoint,
    DcaPosition,
    FormattedPosition,
    TokenInfo,
    TokenSummary,
    TrackedToken,
)
from dcamonitor.monitor.config import (
    FETCH_TIMEOUT_SECONDS,
    POLL_INTERVAL_SECONDS,
    SUMMARY_INTERVAL_SECONDS,
)
from dcamonitor.monitor.messages import (
    format_close_message,
    format_open_message,
    format_startup_message,
    format_summary_message,
    solscan_url,
)
from dcamonitor.monitor.positions import (
    diff_positions,
    direction_for,
    filter_open_positions,
    match_tracked_token,
    summarize,
)
from dcamonitor.monitor.state import StateStore
from dcamonitor.monitor.utils import now_ms, scale_amount

logger = logging.getLogger(__name__)


class PositionSource(Protocol):
    async def fetch_positions(self) -> List[DcaPosition]: ...


class MetadataResolver(Protocol):
    async def resolve(self, mint: str) -> TokenInfo: ...


class Notifier(Protocol):
    async def send_alert(self, text: str) -> bool: ...


@dataclass
class PollResult:
    opened: Set[str] = field(default_factory=set)
    closed: Set[str] = field(default_factory=set)
    summaries: Optional[Dict[str, TokenSummary]] = None


class PositionMonitor:
    """Tracks open DCA positions for the configured tokens."""

    def __init__(
        self,
        source: PositionSource,
        resolver: MetadataResolver,
        notifier: Notifier,
        store: StateStore,
        tracked_tokens: List[TrackedToken],
        poll_interval: float = POLL_INTERVAL_SECONDS,
        summary_interval: float = SUMMARY_INTERVAL_SECONDS,
        fetch_timeout: float = FETCH_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.resolver = resolver
        self.notifier = notifier
        self.store = store
        self.tracked_tokens = list(tracked_tokens)
        self.poll_interval = poll_interval
        self.summary_interval = summary_interval
        self.fetch_timeout = fetch_timeout
        self._clock = clock

        self.previous: Dict[str, DcaPosition] = {}
        self._last_summary_at: Optional[float] = None
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """
        Announce startup and launch the polling loop as a background task.

        ## Raises
        - `RuntimeError` if the monitor is already running
        """
        if self.is_running:
            raise RuntimeError("Monitor is already running")

        self._stop_event = asyncio.Event()
        await self.notifier.send_alert(format_startup_message(self.tracked_tokens))
        self._task = asyncio.create_task(self.run(), name="dca-position-monitor")
        logger.info("DCA position monitor started")

    def stop(self) -> None:
        self._stop_event.set()

    async def wait_stopped(self) -> None:
        if self._task is not None:
            await self._task

    async def run(self) -> None:
        """
        Poll until stopped.

        The stop event is checked before and after each cycle; the wait
        between cycles returns early once the event is set.
        """
        logger.info(
            f"Polling DCA positions every {self.poll_interval}s for "
            f"{', '.join(t.symbol for t in self.tracked_tokens)}"
        )

        while not self._stop_event.is_set():
            try:
                await self.poll_once()
            except Exception as e:
                logger.error(f"Error in DCA monitor cycle: {e}", exc_info=True)

            if self._stop_event.is_set():
                break
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        logger.info("DCA position monitor stopped")

    # ------------------------------------------------------------------
    # Poll cycle
    # ------------------------------------------------------------------

    async def poll_once(self) -> PollResult:
        positions = await asyncio.wait_for(
            self.source.fetch_positions(), timeout=self.fetch_timeout
        )
        current = filter_open_positions(positions, self.tracked_tokens)
        opened, closed = diff_positions(self.previous, current)

        for address in sorted(closed):
            await self._announce_closed(self.previous[address])
        for address in sorted(opened):
            await self._announce_opened(current[address])

        result = PollResult(opened=opened, closed=closed)
        if self._summary_due():
            result.summaries = await self._publish_summary(current.values())
            self._last_summary_at = self._clock()

        self.previous = current
        if opened or closed:
            logger.info(
                f"Positions: {len(current)} open, {len(opened)} opened, "
                f"{len(closed)} closed"
            )
        return result

    def _summary_due(self) -> bool:
        if self._last_summary_at is None:
            return True
        return self._clock() - self._last_summary_at >= self.summary_interval

    async def _announce_closed(self, position: DcaPosition) -> None:
        token = match_tracked_token(position, self.tracked_tokens)
        if token is None:
            return

        input_info = await self.resolver.resolve(position.input_mint)
        output_info = await self.resolver.resolve(position.output_mint)
        await self.notifier.send_alert(
            format_close_message(
                position.address,
                token,
                direction_for(position, token),
                input_info,
                output_info,
            )
        )

    async def _announce_opened(self, position: DcaPosition) -> None:
        token = match_tracked_token(position, self.tracked_tokens)
        if token is None:
            return

        input_info = await self.resolver.resolve(position.input_mint)
        output_info = await self.resolver.resolve(position.output_mint)
        await self.notifier.send_alert(
            format_open_message(
                position.address,
                token,
                direction_for(position, token),
                input_info,
                output_info,
                total_amount=scale_amount(position.remaining, input_info.decimals),
                amount_per_cycle=scale_amount(
                    position.in_amount_per_cycle, input_info.decimals
                ),
                cycle_frequency=position.cycle_frequency,
            )
        )

    async def _publish_summary(
        self, positions: Iterable[DcaPosition]
    ) -> Dict[str, TokenSummary]:
        positions = list(positions)
        mints = list(
            dict.fromkeys(
                mint
                for position in positions
                for mint in (position.input_mint, position.output_mint)
            )
        )
        resolved = await asyncio.gather(*(self.resolver.resolve(m) for m in mints))
        infos: Dict[str, TokenInfo] = dict(zip(mints, resolved))

        summaries = summarize(
            positions, self.tracked_tokens, lambda mint: infos[mint].decimals
        )
        formatted = self._format_positions(positions, infos)

        self.store.replace(formatted, summaries)
        timestamp = now_ms()
        for symbol, summary in summaries.items():
            self.store.append_chart_point(
                symbol, ChartPoint.from_summary(summary, timestamp)
            )

        await self.notifier.send_alert(format_summary_message(summaries))
        return summaries

    def _format_positions(
        self, positions: List[DcaPosition], infos: Dict[str, TokenInfo]
    ) -> List[FormattedPosition]:
        timestamp = now_ms()
        formatted: List[FormattedPosition] = []

        for position in positions:
            token = match_tracked_token(position, self.tracked_tokens)
            if token is None:
                continue
            input_info = infos[position.input_mint]
            formatted.append(
                FormattedPosition(
                    token=token.symbol,
                    type=direction_for(position, token),
                    public_key=position.address,
                    input_token=input_info.symbol,
                    output_token=infos[position.output_mint].symbol,
                    total_amount=scale_amount(position.remaining, input_info.decimals),
                    amount_per_cycle=scale_amount(
                        position.in_amount_per_cycle, input_info.decimals
                    ),
                    remaining_cycles=position.remaining_cycles,
                    cycle_frequency=position.cycle_frequency,
                    last_update=timestamp,
                    solscan_url=solscan_url(position.address),
                )
            )

        return formatted
