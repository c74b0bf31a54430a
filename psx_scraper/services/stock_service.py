from __future__ import annotations

from psx_scraper.errors import QuoteFetchError, StoreError
from psx_scraper.schemas.quote import BatchRefreshResult, Quote
from psx_scraper.schemas.stock import StockRow
from psx_scraper.services.batch_refresh import BatchRefreshOrchestrator
from psx_scraper.services.freshness import DEFAULT_MAX_AGE_MINUTES, is_fresh
from psx_scraper.services.stock_repository import StockRepository, row_to_stock


def _is_servable(raw: dict, max_age_minutes: float) -> bool:
    stock = row_to_stock(raw)
    # previous_close equal to current_price is the signature of a bad old scrape
    prev_close_sane = stock.previous_close > 0 and stock.previous_close != stock.current_price
    return is_fresh(raw.get("last_updated"), max_age_minutes) and stock.current_price > 0 and prev_close_sane


class StockService:
    """Read path: serve fresh stored rows, otherwise scrape and write back."""

    def __init__(
        self,
        *,
        repository: StockRepository,
        fetcher,
        orchestrator: BatchRefreshOrchestrator,
        max_age_minutes: float = DEFAULT_MAX_AGE_MINUTES,
    ) -> None:
        self.repository = repository
        self.fetcher = fetcher
        self.orchestrator = orchestrator
        self.max_age_minutes = max_age_minutes
        self.cache_hits = 0
        self.cache_misses = 0

    def _read_stored(self, symbol: str) -> dict | None:
        try:
            return self.repository.get_raw(symbol)
        except StoreError as exc:
            print(f"[STORE][read_error] symbol={symbol} error={exc}", flush=True)
            return None

    def _write_back(self, quote: Quote) -> None:
        try:
            self.repository.upsert_quote(quote)
        except StoreError as exc:
            print(f"[STORE][write_error] symbol={quote.symbol} error={exc}", flush=True)

    def get_stock(self, symbol: str) -> StockRow | Quote | None:
        upper = symbol.strip().upper()
        stored = self._read_stored(upper)
        if stored is not None and _is_servable(stored, self.max_age_minutes):
            self.cache_hits += 1
            return row_to_stock(stored)

        self.cache_misses += 1
        try:
            quote = self.fetcher.fetch(upper)
        except QuoteFetchError as exc:
            print(f"[SCRAPE][read_path_miss] symbol={upper} error={exc}", flush=True)
            return None

        self._write_back(quote)
        return quote

    def refresh(self, symbols) -> BatchRefreshResult:
        result = self.orchestrator.refresh_all(symbols)
        for quote in result.results:
            self._write_back(quote)
        return result

    def refresh_stale(self, symbols: list[str]) -> list[StockRow]:
        wanted = [s.strip().upper() for s in symbols if s and s.strip()]
        if not wanted:
            return []

        try:
            stored = {row.symbol: row for row in self.repository.list_many(wanted)}
        except StoreError as exc:
            print(f"[STORE][read_error] symbols={','.join(wanted)} error={exc}", flush=True)
            stored = {}

        stale = [s for s in wanted if s not in stored or stored[s].current_price <= 0]
        if stale:
            try:
                self.refresh(stale)
            except Exception as exc:
                print(f"[SCRAPE][refresh_stale_error] symbols={','.join(stale)} error={exc}", flush=True)
            try:
                stored.update({row.symbol: row for row in self.repository.list_many(stale)})
            except StoreError as exc:
                print(f"[STORE][read_error] symbols={','.join(stale)} error={exc}", flush=True)

        return [stored[s] for s in wanted if s in stored]

    def list_stocks(self) -> list[StockRow]:
        return self.repository.list_all()

    def search_stocks(self, query: str) -> list[StockRow]:
        return self.repository.search(query.strip()) if query else []

    def seed(self, symbol: str) -> StockRow:
        return self.repository.ensure_exists(symbol)

    def metrics(self) -> dict[str, int]:
        return {"cache_hits": self.cache_hits, "cache_misses": self.cache_misses}
