"""
Configuration constants and environment settings for the DCA Monitor.
"""

import os
from typing import List

from pydantic import BaseModel

from dcamonitor.models import TokenInfo, TrackedToken

# Jupiter DCA program
DCA_PROGRAM_ID = "DCA265Vj8a9CEuX1eb1LWRnDT7uK6q1xMipnNyatn23M"

# Offsets of the mint fields inside a DCA account (after the 8 byte discriminator
# and the 32 byte user key)
INPUT_MINT_OFFSET = 40
OUTPUT_MINT_OFFSET = 72

DEFAULT_TRACKED_TOKENS = (
    "LOGOS:HJUfqXoYjC653f2p33i84zdCC3jc4EuVnbruSe5kpump:6,"
    "CHAOS:8SgNwESovnbG1oNEaPVhg6CR9mTMSK7jPvcYRe3wpump:6"
)

# Fallback metadata for tokens that show up on the other side of most orders
KNOWN_TOKENS = {
    "So11111111111111111111111111111111111111112": TokenInfo(symbol="SOL", decimals=9),
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": TokenInfo(
        symbol="USDC", decimals=6
    ),
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": TokenInfo(
        symbol="USDT", decimals=6
    ),
}

# Configuration constants
POLL_INTERVAL_SECONDS = 10
SUMMARY_INTERVAL_SECONDS = 300
RPC_TIMEOUT_SECONDS = 20
METADATA_TIMEOUT_SECONDS = 10
FETCH_MAX_ATTEMPTS = 3
FETCH_RETRY_DELAY_SECONDS = 1.0
# Outer bound on one fetch: every attempt plus the backoff between them
FETCH_TIMEOUT_SECONDS = FETCH_MAX_ATTEMPTS * RPC_TIMEOUT_SECONDS + sum(
    FETCH_RETRY_DELAY_SECONDS * 2**i for i in range(FETCH_MAX_ATTEMPTS - 1)
)
CHART_RETENTION_SECONDS = 24 * 60 * 60
DEDUP_WINDOW_SECONDS = 5 * 60
MIN_SEND_INTERVAL_SECONDS = 1.0
SOLSCAN_ACCOUNT_URL = "https://solscan.io/account/{address}"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_tracked_tokens(raw: str) -> List[TrackedToken]:
    """
    Parse a `SYMBOL:MINT:DECIMALS` comma separated list.

    Exactly two tokens are required; decimals default to 6 when omitted.
    """
    tokens: List[TrackedToken] = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
            raise ValueError(f"Malformed tracked token entry: '{entry}'")
        decimals = int(parts[2]) if len(parts) == 3 else 6
        tokens.append(TrackedToken(symbol=parts[0], mint=parts[1], decimals=decimals))

    if len(tokens) != 2:
        raise ValueError(f"Expected exactly two tracked tokens, got {len(tokens)}")
    if tokens[0].symbol == tokens[1].symbol or tokens[0].mint == tokens[1].mint:
        raise ValueError("Tracked tokens must have distinct symbols and mints")
    return tokens


class MonitorSettings(BaseModel):
    telegram_bot_token: str
    telegram_chat_id: str
    rpc_endpoint: str
    tracked_tokens: List[TrackedToken]
    program_id: str = DCA_PROGRAM_ID
    poll_interval: float = POLL_INTERVAL_SECONDS
    summary_interval: float = SUMMARY_INTERVAL_SECONDS
    fetch_timeout: float = FETCH_TIMEOUT_SECONDS
    state_file: str = "dca_state.json"
    resume_state: bool = True
    http_host: str = "0.0.0.0"
    http_port: int = 3000
    auto_start: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "MonitorSettings":
        """
        Build settings from environment variables.

        ## Raises
        - `ValueError` if a required variable is missing or malformed
        """
        required = {
            "TELEGRAM_BOT_TOKEN": os.getenv("TELEGRAM_BOT_TOKEN"),
            "TELEGRAM_CHAT_ID": os.getenv("TELEGRAM_CHAT_ID"),
            "SOLANA_RPC_ENDPOINT": os.getenv("SOLANA_RPC_ENDPOINT"),
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        return cls(
            telegram_bot_token=required["TELEGRAM_BOT_TOKEN"],
            telegram_chat_id=required["TELEGRAM_CHAT_ID"],
            rpc_endpoint=required["SOLANA_RPC_ENDPOINT"],
            tracked_tokens=parse_tracked_tokens(
                os.getenv("TRACKED_TOKENS", DEFAULT_TRACKED_TOKENS)
            ),
            program_id=os.getenv("DCA_PROGRAM_ID", DCA_PROGRAM_ID),
            poll_interval=float(
                os.getenv("POLL_INTERVAL_SECONDS", POLL_INTERVAL_SECONDS)
            ),
            summary_interval=float(
                os.getenv("SUMMARY_INTERVAL_SECONDS", SUMMARY_INTERVAL_SECONDS)
            ),
            fetch_timeout=float(
                os.getenv("FETCH_TIMEOUT_SECONDS", FETCH_TIMEOUT_SECONDS)
            ),
            state_file=os.getenv("STATE_FILE", "dca_state.json"),
            resume_state=_env_bool("RESUME_STATE", True),
            http_host=os.getenv("HTTP_HOST", "0.0.0.0"),
            http_port=int(os.getenv("HTTP_PORT", "3000")),
            auto_start=_env_bool("AUTO_START", True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
