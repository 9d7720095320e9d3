"""
Position filtering, diffing and summary computation for the DCA Monitor.
"""

from typing import Callable, Dict, Iterable, List, Literal, Optional, Set, Tuple

from dcamonitor.models import DcaPosition, TokenSummary, TrackedToken
from dcamonitor.monitor.utils import scale_amount

Direction = Literal["BUY", "SELL"]


def is_tracked_position(position: DcaPosition, tracked: List[TrackedToken]) -> bool:
    """
    Determine if a position should be kept.

    ## Returns
    - `True` if the position still has funds left and touches a tracked mint
    """
    if not position.is_open:
        return False
    return any(position.touches(token.mint) for token in tracked)


def filter_open_positions(
    positions: Iterable[DcaPosition], tracked: List[TrackedToken]
) -> Dict[str, DcaPosition]:
    return {p.address: p for p in positions if is_tracked_position(p, tracked)}


def diff_positions(
    previous: Dict[str, DcaPosition], current: Dict[str, DcaPosition]
) -> Tuple[Set[str], Set[str]]:
    """
    Compare two poll results.

    ## Returns
    - `(opened, closed)` address sets; addresses present in both are ignored
    """
    opened = set(current) - set(previous)
    closed = set(previous) - set(current)
    return opened, closed


def match_tracked_token(
    position: DcaPosition, tracked: List[TrackedToken]
) -> Optional[TrackedToken]:
    """First configured tracked token referenced by the position."""
    for token in tracked:
        if position.touches(token.mint):
            return token
    return None


def direction_for(position: DcaPosition, token: TrackedToken) -> Direction:
    return "BUY" if position.output_mint == token.mint else "SELL"


def summarize(
    positions: Iterable[DcaPosition],
    tracked: List[TrackedToken],
    decimals_for: Callable[[str], int],
) -> Dict[str, TokenSummary]:
    """
    Recompute per-token buy/sell counts and volumes.

    ## Parameters
    - `positions`: Open, already filtered positions
    - `tracked`: Tracked tokens
    - `decimals_for`: Decimal count for a mint, applied to each position's
      remaining input amount

    ## Design Notes
    A position is counted once for every tracked token it references, so a
    LOGOS to CHAOS order is a SELL for LOGOS and a BUY for CHAOS.
    """
    summary = {token.symbol: TokenSummary() for token in tracked}

    for position in positions:
        volume = scale_amount(position.remaining, decimals_for(position.input_mint))
        for token in tracked:
            if not position.touches(token.mint):
                continue
            entry = summary[token.symbol]
            if direction_for(position, token) == "BUY":
                entry.buy_orders += 1
                entry.buy_volume += volume
            else:
                entry.sell_orders += 1
                entry.sell_volume += volume

    return summary
