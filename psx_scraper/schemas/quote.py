from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Quote(BaseModel):
    """Point-in-time snapshot for one ticker, as produced by a scrape."""

    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    name: str
    current_price: float = Field(default=0.0, alias="currentPrice")
    previous_close: float = Field(default=0.0, alias="previousClose")
    change_percent: float = Field(default=0.0, alias="changePercent")
    volume: int = 0
    high_52_week: float | None = Field(default=None, alias="high52Week")
    low_52_week: float | None = Field(default=None, alias="low52Week")
    sector: str | None = None
    logo_url: str | None = Field(default=None, alias="logoUrl")
    is_shariah_compliant: bool | None = Field(default=None, alias="isShariahCompliant")
    last_updated: datetime = Field(alias="lastUpdated")
    source: str | None = None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class BatchRefreshResult(BaseModel):
    results: list[Quote]
    success_count: int
    total_requested: int
