"""Unit tests for position filtering, diffing and summaries."""

import pytest

from conftest import BONK_MINT, CHAOS_MINT, LOGOS_MINT, SOL_MINT, USDC_MINT, make_position
from dcamonitor.monitor.positions import (
    diff_positions,
    direction_for,
    filter_open_positions,
    match_tracked_token,
    summarize,
)


def six_decimals(_mint: str) -> int:
    return 6


class TestFilter:
    def test_keeps_open_positions_on_tracked_mints(self, tracked):
        positions = [
            make_position("a", USDC_MINT, LOGOS_MINT),
            make_position("b", CHAOS_MINT, SOL_MINT),
        ]
        assert set(filter_open_positions(positions, tracked)) == {"a", "b"}

    def test_drops_fully_withdrawn_positions(self, tracked):
        positions = [
            make_position("done", USDC_MINT, LOGOS_MINT, deposited=500, withdrawn=500),
            make_position("over", USDC_MINT, LOGOS_MINT, deposited=500, withdrawn=600),
        ]
        assert filter_open_positions(positions, tracked) == {}

    def test_drops_untracked_mints(self, tracked):
        positions = [make_position("x", USDC_MINT, BONK_MINT)]
        assert filter_open_positions(positions, tracked) == {}

    def test_result_is_keyed_by_address(self, tracked):
        position = make_position("addr1", LOGOS_MINT, USDC_MINT)
        assert filter_open_positions([position], tracked) == {"addr1": position}


class TestDiff:
    def test_opened_and_closed(self, tracked):
        old = {"a": make_position("a", USDC_MINT, LOGOS_MINT)}
        new = {"b": make_position("b", USDC_MINT, CHAOS_MINT)}
        opened, closed = diff_positions(old, new)
        assert opened == {"b"}
        assert closed == {"a"}

    def test_unchanged_addresses_produce_nothing(self):
        same = {"a": make_position("a", USDC_MINT, LOGOS_MINT)}
        assert diff_positions(same, dict(same)) == (set(), set())

    def test_first_run_opens_everything(self):
        new = {
            "a": make_position("a", USDC_MINT, LOGOS_MINT),
            "b": make_position("b", LOGOS_MINT, USDC_MINT),
        }
        assert diff_positions({}, new) == ({"a", "b"}, set())

    def test_diff_is_idempotent(self):
        old = {"a": make_position("a", USDC_MINT, LOGOS_MINT)}
        new = {"b": make_position("b", USDC_MINT, LOGOS_MINT)}
        assert diff_positions(old, new) == diff_positions(old, new)


class TestClassification:
    def test_buy_when_output_is_token(self, tracked):
        position = make_position("a", USDC_MINT, LOGOS_MINT)
        token = match_tracked_token(position, tracked)
        assert token.symbol == "LOGOS"
        assert direction_for(position, token) == "BUY"

    def test_sell_when_input_is_token(self, tracked):
        position = make_position("a", CHAOS_MINT, USDC_MINT)
        token = match_tracked_token(position, tracked)
        assert token.symbol == "CHAOS"
        assert direction_for(position, token) == "SELL"

    def test_ambiguous_position_defaults_to_first_configured(self, tracked):
        position = make_position("a", CHAOS_MINT, LOGOS_MINT)
        assert match_tracked_token(position, tracked).symbol == "LOGOS"

    def test_untracked_position_has_no_token(self, tracked):
        assert match_tracked_token(make_position("a", USDC_MINT, SOL_MINT), tracked) is None


class TestSummary:
    def test_worked_example(self, tracked):
        positions = [
            make_position("buy", USDC_MINT, LOGOS_MINT, deposited=1_000_000, per_cycle=100_000),
            make_position("sell", LOGOS_MINT, USDC_MINT, deposited=500_000, per_cycle=50_000),
        ]
        summary = summarize(positions, tracked, six_decimals)

        logos = summary["LOGOS"]
        assert logos.buy_orders == 1
        assert logos.sell_orders == 1
        assert logos.buy_volume == pytest.approx(1.0)
        assert logos.sell_volume == pytest.approx(0.5)

        chaos = summary["CHAOS"]
        assert (chaos.buy_orders, chaos.sell_orders) == (0, 0)

    def test_volume_uses_remaining_amount(self, tracked):
        positions = [
            make_position("a", USDC_MINT, CHAOS_MINT, deposited=3_000_000, withdrawn=1_000_000)
        ]
        summary = summarize(positions, tracked, six_decimals)
        assert summary["CHAOS"].buy_volume == pytest.approx(2.0)

    def test_volume_scaled_by_input_decimals(self, tracked):
        decimals = {SOL_MINT: 9, LOGOS_MINT: 6}
        positions = [make_position("a", SOL_MINT, LOGOS_MINT, deposited=2_500_000_000)]
        summary = summarize(positions, tracked, decimals.__getitem__)
        assert summary["LOGOS"].buy_volume == pytest.approx(2.5)

    def test_cross_position_counts_for_both_tokens(self, tracked):
        positions = [make_position("x", LOGOS_MINT, CHAOS_MINT)]
        summary = summarize(positions, tracked, six_decimals)
        assert summary["LOGOS"].sell_orders == 1
        assert summary["CHAOS"].buy_orders == 1

    def test_counts_match_hand_computed_set(self, tracked):
        positions = [
            make_position("1", USDC_MINT, LOGOS_MINT),
            make_position("2", SOL_MINT, LOGOS_MINT),
            make_position("3", LOGOS_MINT, USDC_MINT),
            make_position("4", USDC_MINT, CHAOS_MINT),
            make_position("5", CHAOS_MINT, SOL_MINT),
            make_position("6", CHAOS_MINT, USDC_MINT),
        ]
        summary = summarize(positions, tracked, six_decimals)
        assert (summary["LOGOS"].buy_orders, summary["LOGOS"].sell_orders) == (2, 1)
        assert (summary["CHAOS"].buy_orders, summary["CHAOS"].sell_orders) == (1, 2)

    def test_empty_input_gives_zeroed_summaries(self, tracked):
        summary = summarize([], tracked, six_decimals)
        assert set(summary) == {"LOGOS", "CHAOS"}
        assert summary["LOGOS"].buy_volume == 0.0
