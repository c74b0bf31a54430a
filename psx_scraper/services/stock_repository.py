from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from psx_scraper.errors import StoreError
from psx_scraper.schemas.quote import Quote
from psx_scraper.schemas.stock import StockRow

STOCKS_TABLE = "stocks"
SEARCH_LIMIT = 20

# columns owned by local curation; a scrape only writes them when it has a value
_CURATED_COLUMNS = ("sector", "logo_url", "is_shariah_compliant")
_OPTIONAL_COLUMNS = {"high_52week": "high_52_week", "low_52week": "low_52_week"}


def to_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", ""))
    except ValueError:
        return 0.0


def _optional_number(row: dict, column: str) -> float | None:
    if row.get(column) is None:
        return None
    return to_number(row[column])


def row_to_stock(row: dict) -> StockRow:
    current_price = to_number(row.get("current_price"))
    previous_close = to_number(row.get("previous_close"))
    if previous_close <= 0:
        previous_close = 0.0
    market_cap = _optional_number(row, "market_cap")
    return StockRow(
        symbol=row["symbol"],
        name=row.get("name") or row["symbol"],
        current_price=current_price,
        previous_close=previous_close,
        change=current_price - previous_close if previous_close > 0 else 0.0,
        change_percent=to_number(row.get("change_percent")),
        volume=int(to_number(row.get("volume"))),
        market_cap=int(market_cap) if market_cap is not None else None,
        high=_optional_number(row, "day_high"),
        low=_optional_number(row, "day_low"),
        high_52_week=_optional_number(row, "high_52week"),
        low_52_week=_optional_number(row, "low_52week"),
        sector=row.get("sector"),
        logo_url=row.get("logo_url"),
        is_shariah_compliant=row.get("is_shariah_compliant"),
        last_updated=row.get("last_updated"),
    )


def quote_to_row(quote: Quote, updated_at: datetime | None = None) -> dict:
    row = {
        "symbol": quote.symbol,
        "name": quote.name,
        "current_price": quote.current_price,
        "previous_close": quote.previous_close,
        "change_percent": quote.change_percent,
        "volume": quote.volume,
        "last_updated": quote.last_updated.isoformat(),
        "updated_at": (updated_at or datetime.now(timezone.utc)).isoformat(),
    }
    for column, field in _OPTIONAL_COLUMNS.items():
        value = getattr(quote, field)
        if value is not None:
            row[column] = value
    for column in _CURATED_COLUMNS:
        value = getattr(quote, column)
        if value is not None:
            row[column] = value
    return row


class StockRepository:
    def __init__(self, store) -> None:
        self.store = store

    def _call(self, op: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"{op} failed: {exc}") from exc

    def get(self, symbol: str) -> StockRow | None:
        rows = self._call("select", self.store.select, STOCKS_TABLE, {"symbol": symbol.upper()})
        if not rows:
            return None
        return row_to_stock(rows[0])

    def get_raw(self, symbol: str) -> dict | None:
        rows = self._call("select", self.store.select, STOCKS_TABLE, {"symbol": symbol.upper()})
        return rows[0] if rows else None

    def list_all(self) -> list[StockRow]:
        rows = self._call("select", self.store.select, STOCKS_TABLE, order_by="symbol")
        return [row_to_stock(r) for r in rows]

    def list_many(self, symbols: list[str]) -> list[StockRow]:
        wanted = [s.upper() for s in symbols]
        rows = self._call("select", self.store.select, STOCKS_TABLE, {"symbol": wanted})
        return [row_to_stock(r) for r in rows]

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[StockRow]:
        if not query:
            return []
        rows = self._call("search", self.store.search, STOCKS_TABLE, ["symbol", "name"], query, limit)
        return [row_to_stock(r) for r in rows]

    def upsert_quote(self, quote: Quote) -> StockRow:
        row = self._call("upsert", self.store.upsert, STOCKS_TABLE, quote_to_row(quote))
        return row_to_stock(row)

    def ensure_exists(self, symbol: str) -> StockRow:
        upper = symbol.strip().upper()
        row = self._call(
            "upsert",
            self.store.upsert,
            STOCKS_TABLE,
            {"symbol": upper, "name": upper},
            ignore_duplicates=True,
        )
        return row_to_stock(row)
