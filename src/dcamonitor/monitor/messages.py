"""
Alert text formatting for the DCA Monitor.

Messages are sent with HTML parse mode, so token symbols coming from external
metadata are escaped.
"""

from html import escape
from typing import Dict, List

from dcamonitor.models import TokenInfo, TokenSummary, TrackedToken
from dcamonitor.monitor.config import SOLSCAN_ACCOUNT_URL
from dcamonitor.monitor.positions import Direction
from dcamonitor.monitor.utils import format_amount


def solscan_url(address: str) -> str:
    return SOLSCAN_ACCOUNT_URL.format(address=address)


def format_startup_message(tracked: List[TrackedToken]) -> str:
    symbols = " & ".join(escape(token.symbol) for token in tracked)
    return f"Monitor starting up and watching for {symbols} DCA orders..."


def format_open_message(
    address: str,
    token: TrackedToken,
    direction: Direction,
    input_info: TokenInfo,
    output_info: TokenInfo,
    total_amount: float,
    amount_per_cycle: float,
    cycle_frequency: int,
) -> str:
    is_buy = direction == "BUY"
    arrow = "🟢 ⬆️" if is_buy else "🔴 ⬇️"
    action = "Buying" if is_buy else "Selling"
    symbol = escape(token.symbol)
    input_symbol = escape(input_info.symbol)

    return "\n".join(
        [
            f"{arrow} {symbol} DCA Position ({action} {symbol})",
            f"Input Token: {input_symbol}",
            f"Output Token: {escape(output_info.symbol)}",
            f"Total Amount: {format_amount(total_amount)} {input_symbol}",
            f"Amount Per Cycle: {format_amount(amount_per_cycle)} {input_symbol}",
            f"Frequency: Every {cycle_frequency} seconds",
            f"Position: {solscan_url(address)}",
        ]
    )


def format_close_message(
    address: str,
    token: TrackedToken,
    direction: Direction,
    input_info: TokenInfo,
    output_info: TokenInfo,
) -> str:
    symbol = escape(token.symbol)
    if direction == "BUY":
        route = f"{escape(input_info.symbol)} ➜ {symbol}"
    else:
        route = f"{symbol} ➜ {escape(output_info.symbol)}"

    return "\n".join(
        [
            f"🟠 🗑 {symbol} DCA Position Closed",
            f"Direction: {route}",
            f"Position: {solscan_url(address)}",
        ]
    )


def format_summary_message(summaries: Dict[str, TokenSummary]) -> str:
    lines = ["📊 Jupiter DCA Summary:", ""]
    for symbol, summary in summaries.items():
        lines.extend(
            [
                f"{escape(symbol)}:",
                f"🟢 Buy Orders: {summary.buy_orders}",
                f"🔴 Sell Orders: {summary.sell_orders}",
                f"💰 Buy Volume: {format_amount(summary.buy_volume)}",
                f"💰 Sell Volume: {format_amount(summary.sell_volume)}",
                "",
            ]
        )
    return "\n".join(lines).rstrip()
