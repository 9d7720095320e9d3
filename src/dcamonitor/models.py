from typing import Dict, List, Literal

from pydantic import BaseModel, Field


class DcaPosition(BaseModel):
    address: str
    user: str | None = None
    input_mint: str
    output_mint: str
    in_deposited: int
    in_withdrawn: int
    in_amount_per_cycle: int
    cycle_frequency: int
    next_cycle_at: int | None = None

    @property
    def remaining(self) -> int:
        return self.in_deposited - self.in_withdrawn

    @property
    def is_open(self) -> bool:
        return self.remaining > 0

    @property
    def remaining_cycles(self) -> int:
        if self.in_amount_per_cycle <= 0:
            return 0
        return self.remaining // self.in_amount_per_cycle

    def touches(self, mint: str) -> bool:
        return mint in (self.input_mint, self.output_mint)


class TrackedToken(BaseModel):
    symbol: str
    mint: str
    decimals: int = 6


class TokenInfo(BaseModel):
    symbol: str
    decimals: int


class TokenSummary(BaseModel):
    buy_orders: int = Field(0, alias="buyOrders")
    sell_orders: int = Field(0, alias="sellOrders")
    buy_volume: float = Field(0.0, alias="buyVolume")
    sell_volume: float = Field(0.0, alias="sellVolume")
    model_config = {"populate_by_name": True}


class ChartPoint(TokenSummary):
    timestamp: int

    @classmethod
    def from_summary(cls, summary: TokenSummary, timestamp: int) -> "ChartPoint":
        return cls(timestamp=timestamp, **summary.model_dump())


class FormattedPosition(BaseModel):
    token: str
    type: Literal["BUY", "SELL"]
    public_key: str = Field(..., alias="publicKey")
    input_token: str = Field(..., alias="inputToken")
    output_token: str = Field(..., alias="outputToken")
    total_amount: float = Field(..., alias="totalAmount")
    amount_per_cycle: float = Field(..., alias="amountPerCycle")
    remaining_cycles: int = Field(..., alias="remainingCycles")
    cycle_frequency: int = Field(..., alias="cycleFrequency")
    last_update: int = Field(..., alias="lastUpdate")
    solscan_url: str = Field(..., alias="solscanUrl")
    model_config = {"populate_by_name": True}


class Snapshot(BaseModel):
    timestamp: int
    summary: Dict[str, TokenSummary] = Field(default_factory=dict)
    positions: List[FormattedPosition] = Field(default_factory=list)
    chart_data: Dict[str, List[ChartPoint]] = Field(
        default_factory=dict, alias="chartData"
    )
    model_config = {"populate_by_name": True}

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True)
