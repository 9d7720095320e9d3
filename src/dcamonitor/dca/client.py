"""
# Jupiter DCA account source

Fetches DCA program accounts over Solana JSON-RPC and decodes the fields the
monitor needs.

## Account Layout (Anchor)
| offset | field |
|---|---|
| 0 | discriminator (8 bytes) |
| 8 | user (pubkey) |
| 40 | input_mint (pubkey) |
| 72 | output_mint (pubkey) |
| 104 | idx u64, next_cycle_at i64, in_deposited u64, in_withdrawn u64, out_withdrawn u64, in_used u64, out_received u64, in_amount_per_cycle u64, cycle_frequency i64 |

All integers are little-endian.
"""

import asyncio
import logging
import struct
from typing import Dict, Iterable, List

from solana.rpc.async_api import AsyncClient
from solana.rpc.models import MemcmpOpts
from solders.pubkey import Pubkey

from dcamonitor.models import DcaPosition
from dcamonitor.monitor.config import (
    DCA_PROGRAM_ID,
    FETCH_MAX_ATTEMPTS,
    FETCH_RETRY_DELAY_SECONDS,
    INPUT_MINT_OFFSET,
    OUTPUT_MINT_OFFSET,
    RPC_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

_NUMBERS = struct.Struct("<QqQQQQQQq")
_NUMBERS_OFFSET = 104
MIN_ACCOUNT_SIZE = _NUMBERS_OFFSET + _NUMBERS.size


def decode_dca_account(address: str, data: bytes) -> DcaPosition:
    """
    Decode a raw DCA account into a `DcaPosition`.

    ## Raises
    - `ValueError` if the buffer is shorter than the fixed layout
    """
    if len(data) < MIN_ACCOUNT_SIZE:
        raise ValueError(
            f"DCA account {address} too short: {len(data)} < {MIN_ACCOUNT_SIZE} bytes"
        )

    (
        _idx,
        next_cycle_at,
        in_deposited,
        in_withdrawn,
        _out_withdrawn,
        _in_used,
        _out_received,
        in_amount_per_cycle,
        cycle_frequency,
    ) = _NUMBERS.unpack_from(data, _NUMBERS_OFFSET)

    return DcaPosition(
        address=address,
        user=str(Pubkey.from_bytes(data[8:40])),
        input_mint=str(Pubkey.from_bytes(data[INPUT_MINT_OFFSET:OUTPUT_MINT_OFFSET])),
        output_mint=str(Pubkey.from_bytes(data[OUTPUT_MINT_OFFSET:_NUMBERS_OFFSET])),
        in_deposited=in_deposited,
        in_withdrawn=in_withdrawn,
        in_amount_per_cycle=in_amount_per_cycle,
        cycle_frequency=cycle_frequency,
        next_cycle_at=next_cycle_at,
    )


class DcaAccountSource:
    """Reads DCA positions that reference any of the given mints."""

    def __init__(
        self,
        rpc_endpoint: str,
        mints: Iterable[str],
        program_id: str = DCA_PROGRAM_ID,
        max_attempts: int = FETCH_MAX_ATTEMPTS,
        retry_delay: float = FETCH_RETRY_DELAY_SECONDS,
        attempt_timeout: float = RPC_TIMEOUT_SECONDS,
        client: AsyncClient | None = None,
    ):
        self.mints = list(mints)
        self.program_id = Pubkey.from_string(program_id)
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.attempt_timeout = attempt_timeout
        self.client = client or AsyncClient(rpc_endpoint, timeout=RPC_TIMEOUT_SECONDS)

    async def fetch_positions(self) -> List[DcaPosition]:
        """
        Fetch all DCA positions touching the configured mints.

        ## Retry Strategy
        Each attempt runs every query concurrently and is bounded by
        `attempt_timeout`. Failed or timed out attempts are retried with
        exponential backoff; the last error propagates once `max_attempts`
        is exhausted.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await asyncio.wait_for(
                    self._fetch_once(), timeout=self.attempt_timeout
                )
            except Exception as e:
                if attempt == self.max_attempts:
                    raise
                delay = self.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"DCA fetch attempt {attempt}/{self.max_attempts} failed: "
                    f"{e!r}. Retrying in {delay}s"
                )
                await asyncio.sleep(delay)

    async def _query(self, mint: str, offset: int):
        resp = await self.client.get_program_accounts(
            self.program_id,
            encoding="base64",
            filters=[MemcmpOpts(offset=offset, bytes=mint)],
        )
        return resp.value

    async def _fetch_once(self) -> List[DcaPosition]:
        results = await asyncio.gather(
            *(
                self._query(mint, offset)
                for mint in self.mints
                for offset in (INPUT_MINT_OFFSET, OUTPUT_MINT_OFFSET)
            )
        )

        positions: Dict[str, DcaPosition] = {}
        for accounts in results:
            for keyed in accounts:
                address = str(keyed.pubkey)
                if address in positions:
                    continue
                try:
                    positions[address] = decode_dca_account(
                        address, bytes(keyed.account.data)
                    )
                except ValueError as e:
                    logger.warning(f"Skipping undecodable account: {e}")

        logger.debug(f"Fetched {len(positions)} DCA accounts")
        return list(positions.values())

    async def close(self) -> None:
        await self.client.close()
