from __future__ import annotations

from typing import Callable

from psx_scraper.errors import InvalidSymbolsError
from psx_scraper.schemas.quote import BatchRefreshResult, Quote
from psx_scraper.services.task_queue import StaggeredTaskQueue


class BatchRefreshOrchestrator:
    """Fans a symbol list out to the single-symbol fetch path, tolerating partial failure."""

    def __init__(
        self,
        *,
        fetch_one: Callable[[str], Quote],
        stagger_ms: int = 100,
        max_workers: int | None = None,
        task_queue: StaggeredTaskQueue | None = None,
    ) -> None:
        self.fetch_one = fetch_one
        self.task_queue = task_queue or StaggeredTaskQueue(
            stagger_sec=stagger_ms / 1000,
            max_workers=max_workers,
        )

        self.last_batch_total = 0
        self.last_batch_success = 0
        self.last_batch_failed: list[str] = []

    @staticmethod
    def validate(symbols) -> list[str]:
        if not isinstance(symbols, list) or not symbols:
            raise InvalidSymbolsError("Symbols array required")
        if not all(isinstance(s, str) for s in symbols):
            raise InvalidSymbolsError("Symbols array required")
        return [s.strip().upper() for s in symbols]

    def refresh_all(self, symbols, fetch_one: Callable[[str], Quote] | None = None) -> BatchRefreshResult:
        normalized = self.validate(symbols)
        fetch = fetch_one or self.fetch_one
        failed: list[str] = []

        def on_error(symbol: str, exc: Exception) -> None:
            failed.append(symbol)
            print(f"[SCRAPE][batch_symbol_error] symbol={symbol} error={exc}", flush=True)
            return None

        outcomes = self.task_queue.run(normalized, fetch, on_error)
        results = [q for q in outcomes if q is not None]

        self.last_batch_total = len(normalized)
        self.last_batch_success = len(results)
        failed_set = set(failed)
        self.last_batch_failed = [s for s in normalized if s in failed_set]

        print(
            "[SCRAPE][batch_resolve] "
            f"total={len(normalized)} success={len(results)} failed={len(normalized) - len(results)}",
            flush=True,
        )

        return BatchRefreshResult(
            results=results,
            success_count=len(results),
            total_requested=len(normalized),
        )

    def metrics(self) -> dict:
        return {
            "batch_total": self.last_batch_total,
            "batch_success": self.last_batch_success,
            "batch_failed_symbols": list(self.last_batch_failed),
        }
