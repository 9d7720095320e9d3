import pytest

from dcamonitor.models import DcaPosition, TrackedToken

LOGOS_MINT = "HJUfqXoYjC653f2p33i84zdCC3jc4EuVnbruSe5kpump"
CHAOS_MINT = "8SgNwESovnbG1oNEaPVhg6CR9mTMSK7jPvcYRe3wpump"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
SOL_MINT = "So11111111111111111111111111111111111111112"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


def make_position(
    address: str,
    input_mint: str,
    output_mint: str,
    deposited: int = 1_000_000,
    withdrawn: int = 0,
    per_cycle: int = 100_000,
    frequency: int = 3600,
) -> DcaPosition:
    return DcaPosition(
        address=address,
        input_mint=input_mint,
        output_mint=output_mint,
        in_deposited=deposited,
        in_withdrawn=withdrawn,
        in_amount_per_cycle=per_cycle,
        cycle_frequency=frequency,
    )


@pytest.fixture
def tracked():
    return [
        TrackedToken(symbol="LOGOS", mint=LOGOS_MINT, decimals=6),
        TrackedToken(symbol="CHAOS", mint=CHAOS_MINT, decimals=6),
    ]
