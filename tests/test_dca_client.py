import asyncio
import struct
from types import SimpleNamespace

import pytest
from solders.pubkey import Pubkey

from conftest import LOGOS_MINT, USDC_MINT
from dcamonitor.dca import DcaAccountSource, decode_dca_account
from dcamonitor.dca.client import MIN_ACCOUNT_SIZE

USER = Pubkey.new_unique()


def encode_account(
    input_mint: str,
    output_mint: str,
    deposited: int = 5_000_000,
    withdrawn: int = 1_000_000,
    per_cycle: int = 500_000,
    frequency: int = 60,
    next_cycle_at: int = 1_700_000_000,
) -> bytes:
    numbers = struct.pack(
        "<QqQQQQQQq",
        7,
        next_cycle_at,
        deposited,
        withdrawn,
        0,
        0,
        0,
        per_cycle,
        frequency,
    )
    return (
        bytes(8)
        + bytes(USER)
        + bytes(Pubkey.from_string(input_mint))
        + bytes(Pubkey.from_string(output_mint))
        + numbers
        + bytes(16)
    )


def keyed_account(address: Pubkey, data: bytes):
    return SimpleNamespace(pubkey=address, account=SimpleNamespace(data=data))


class FakeRpcClient:
    def __init__(self, accounts=None, failures=0, delays=()):
        self.accounts = accounts or []
        self.failures = failures
        self.delays = list(delays)
        self.calls = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False

    async def get_program_accounts(self, program_id, encoding=None, filters=None):
        self.calls.append((program_id, filters[0].offset, filters[0].bytes))
        if self.failures:
            self.failures -= 1
            raise ConnectionError("rpc unavailable")

        delay = self.delays.pop(0) if self.delays else 0
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(delay)
        finally:
            self.in_flight -= 1
        return SimpleNamespace(value=self.accounts)

    async def close(self):
        self.closed = True


class TestDecode:
    def test_decodes_fields(self):
        data = encode_account(USDC_MINT, LOGOS_MINT)
        position = decode_dca_account("addr", data)

        assert position.address == "addr"
        assert position.user == str(USER)
        assert position.input_mint == USDC_MINT
        assert position.output_mint == LOGOS_MINT
        assert position.in_deposited == 5_000_000
        assert position.in_withdrawn == 1_000_000
        assert position.in_amount_per_cycle == 500_000
        assert position.cycle_frequency == 60
        assert position.next_cycle_at == 1_700_000_000
        assert position.remaining_cycles == 8

    def test_short_buffer_raises(self):
        with pytest.raises(ValueError):
            decode_dca_account("addr", bytes(MIN_ACCOUNT_SIZE - 1))


class TestDcaAccountSource:
    def test_queries_both_mint_offsets_for_each_mint(self):
        client = FakeRpcClient()
        source = DcaAccountSource("http://rpc", [LOGOS_MINT, USDC_MINT], client=client)

        asyncio.run(source.fetch_positions())

        assert [(offset, mint) for _, offset, mint in client.calls] == [
            (40, LOGOS_MINT),
            (72, LOGOS_MINT),
            (40, USDC_MINT),
            (72, USDC_MINT),
        ]

    def test_accounts_are_deduplicated_by_address(self):
        address = Pubkey.new_unique()
        client = FakeRpcClient(
            accounts=[keyed_account(address, encode_account(USDC_MINT, LOGOS_MINT))]
        )
        source = DcaAccountSource("http://rpc", [LOGOS_MINT], client=client)

        positions = asyncio.run(source.fetch_positions())

        assert [p.address for p in positions] == [str(address)]

    def test_undecodable_accounts_are_skipped(self):
        good = Pubkey.new_unique()
        client = FakeRpcClient(
            accounts=[
                keyed_account(Pubkey.new_unique(), bytes(10)),
                keyed_account(good, encode_account(LOGOS_MINT, USDC_MINT)),
            ]
        )
        source = DcaAccountSource("http://rpc", [LOGOS_MINT], client=client)

        positions = asyncio.run(source.fetch_positions())

        assert [p.address for p in positions] == [str(good)]

    def test_transient_failures_are_retried(self):
        client = FakeRpcClient(failures=2)
        source = DcaAccountSource(
            "http://rpc", [LOGOS_MINT], max_attempts=3, retry_delay=0, client=client
        )

        assert asyncio.run(source.fetch_positions()) == []

    def test_error_propagates_after_last_attempt(self):
        client = FakeRpcClient(failures=5)
        source = DcaAccountSource(
            "http://rpc", [LOGOS_MINT], max_attempts=2, retry_delay=0, client=client
        )

        with pytest.raises(ConnectionError):
            asyncio.run(source.fetch_positions())
        assert len(client.calls) == 4

    def test_queries_run_concurrently(self):
        client = FakeRpcClient(delays=[0.05] * 4)
        source = DcaAccountSource(
            "http://rpc", [LOGOS_MINT, USDC_MINT], attempt_timeout=0.15, client=client
        )

        asyncio.run(source.fetch_positions())

        assert client.peak_in_flight == 4

    def test_slow_attempt_is_timed_out_and_retried(self):
        client = FakeRpcClient(delays=[1.0, 1.0])
        source = DcaAccountSource(
            "http://rpc",
            [LOGOS_MINT],
            max_attempts=2,
            retry_delay=0,
            attempt_timeout=0.05,
            client=client,
        )

        assert asyncio.run(source.fetch_positions()) == []
        assert len(client.calls) == 4
        assert client.in_flight == 0

    def test_close_closes_the_client(self):
        client = FakeRpcClient()
        source = DcaAccountSource("http://rpc", [LOGOS_MINT], client=client)

        asyncio.run(source.close())

        assert client.closed
