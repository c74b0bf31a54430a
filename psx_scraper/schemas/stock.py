from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class StockRow(BaseModel):
    """Durable projection of a Quote, keyed by symbol."""

    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    name: str
    current_price: float = Field(default=0.0, alias="currentPrice")
    previous_close: float = Field(default=0.0, alias="previousClose")
    change: float = 0.0
    change_percent: float = Field(default=0.0, alias="changePercent")
    volume: int = 0
    market_cap: int | None = Field(default=None, alias="marketCap")
    high: float | None = None
    low: float | None = None
    high_52_week: float | None = Field(default=None, alias="high52Week")
    low_52_week: float | None = Field(default=None, alias="low52Week")
    sector: str | None = None
    logo_url: str | None = Field(default=None, alias="logoUrl")
    is_shariah_compliant: bool | None = Field(default=None, alias="isShariahCompliant")
    last_updated: datetime | None = Field(default=None, alias="lastUpdated")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
