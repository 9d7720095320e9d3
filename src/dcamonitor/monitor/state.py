"""
Snapshot state management for the DCA Monitor.

The store keeps the latest Snapshot in memory and rewrites a JSON copy of it
after every mutation. Each mutation builds a new Snapshot and swaps the
reference, so readers always see a complete snapshot.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from dcamonitor.models import ChartPoint, FormattedPosition, Snapshot, TokenSummary
from dcamonitor.monitor.config import CHART_RETENTION_SECONDS
from dcamonitor.monitor.utils import is_timestamp_older_than, now_ms

logger = logging.getLogger(__name__)


class StateStore:
    """Holds and persists the latest Snapshot."""

    def __init__(
        self,
        path: str | Path,
        symbols: Iterable[str],
        resume: bool = True,
        retention_seconds: float = CHART_RETENTION_SECONDS,
    ):
        """
        Initialize the store.

        Args:
            path: Location of the persisted JSON snapshot
            symbols: Tracked token symbols (keys of summary and chartData)
            resume: Load an existing snapshot instead of starting empty
            retention_seconds: Trailing window kept for chart points
        """
        self.path = Path(path)
        self.symbols = list(symbols)
        self.retention_seconds = retention_seconds
        self._snapshot = self._load() if resume else None
        if self._snapshot is None:
            self._snapshot = self.default_snapshot()
        self._persist()

    def default_snapshot(self) -> Snapshot:
        return Snapshot(
            timestamp=now_ms(),
            summary={symbol: TokenSummary() for symbol in self.symbols},
            positions=[],
            chart_data={symbol: [] for symbol in self.symbols},
        )

    def read(self) -> Snapshot:
        return self._snapshot

    def chart_data(self, symbol: str) -> List[ChartPoint]:
        return list(self._snapshot.chart_data.get(symbol, []))

    def replace(
        self,
        positions: List[FormattedPosition],
        summaries: Dict[str, TokenSummary],
    ) -> None:
        """Overwrite positions and per-token summaries, then persist."""
        summary = dict(self._snapshot.summary)
        summary.update(summaries)
        self._snapshot = self._snapshot.model_copy(
            update={
                "timestamp": now_ms(),
                "positions": list(positions),
                "summary": summary,
            }
        )
        self._persist()

    def append_chart_point(self, symbol: str, point: ChartPoint) -> None:
        """Append a chart point, drop points outside the retention window, persist."""
        reference = now_ms()
        points = [
            p
            for p in self._snapshot.chart_data.get(symbol, [])
            if not is_timestamp_older_than(
                p.timestamp, seconds=self.retention_seconds, now=reference
            )
        ]
        points.append(point)

        chart_data = dict(self._snapshot.chart_data)
        chart_data[symbol] = points
        self._snapshot = self._snapshot.model_copy(update={"chart_data": chart_data})
        self._persist()

    def _load(self) -> Optional[Snapshot]:
        if not self.path.exists():
            return None

        # ValueError covers JSONDecodeError, UnicodeDecodeError and ValidationError
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                snapshot = Snapshot.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning(f"Discarding unreadable state file {self.path}: {e}")
            return None

        reference = now_ms()
        summary = {s: snapshot.summary.get(s, TokenSummary()) for s in self.symbols}
        chart_data = {
            s: [
                p
                for p in snapshot.chart_data.get(s, [])
                if not is_timestamp_older_than(
                    p.timestamp, seconds=self.retention_seconds, now=reference
                )
            ]
            for s in self.symbols
        }
        logger.info(
            f"Resumed state from {self.path}: {len(snapshot.positions)} positions, "
            f"{sum(len(points) for points in chart_data.values())} chart points"
        )
        return snapshot.model_copy(update={"summary": summary, "chart_data": chart_data})

    def _persist(self) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._snapshot.to_json_dict(), f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to persist state to {self.path}: {e}", exc_info=True)
