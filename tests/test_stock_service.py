import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from psx_scraper.errors import QuoteFetchError, StoreError
from psx_scraper.integrations.row_store import InMemoryRowStore
from psx_scraper.schemas.quote import Quote
from psx_scraper.services.batch_refresh import BatchRefreshOrchestrator
from psx_scraper.services.stock_repository import STOCKS_TABLE, StockRepository
from psx_scraper.services.stock_service import StockService
from psx_scraper.services.task_queue import StaggeredTaskQueue


def _quote(symbol: str, price: float = 50.0) -> Quote:
    return Quote(
        symbol=symbol,
        name=symbol,
        current_price=price,
        previous_close=price - 1,
        change_percent=1.0,
        volume=10,
        last_updated=datetime.now(timezone.utc),
        source="sarmaaya",
    )


class StubFetcher:
    def __init__(self, fail: set[str] | None = None) -> None:
        self.fail = fail or set()
        self.calls: list[str] = []

    def fetch(self, symbol: str) -> Quote:
        self.calls.append(symbol)
        if symbol in self.fail:
            raise QuoteFetchError(symbol)
        return _quote(symbol)


class StockServiceTest(unittest.TestCase):
    def _service(self, fetcher=None, store=None):
        fetcher = fetcher or StubFetcher()
        store = store or InMemoryRowStore()
        queue = StaggeredTaskQueue(stagger_sec=0.0)
        orchestrator = BatchRefreshOrchestrator(fetch_one=fetcher.fetch, task_queue=queue)
        service = StockService(
            repository=StockRepository(store),
            fetcher=fetcher,
            orchestrator=orchestrator,
            max_age_minutes=30,
        )
        return service, fetcher, store

    def _store_row(self, store, symbol, minutes_ago, price=100.0, prev=95.0):
        stamp = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
        store.upsert(
            STOCKS_TABLE,
            {
                "symbol": symbol,
                "name": symbol,
                "current_price": price,
                "previous_close": prev,
                "change_percent": 1.0,
                "volume": 1,
                "last_updated": stamp.isoformat(),
            },
        )

    def test_fresh_row_is_served_without_fetching(self):
        service, fetcher, store = self._service()
        self._store_row(store, "XYZ", minutes_ago=10)

        row = service.get_stock("xyz")

        self.assertEqual(row.symbol, "XYZ")
        self.assertEqual(row.current_price, 100.0)
        self.assertEqual(fetcher.calls, [])
        self.assertEqual(service.metrics()["cache_hits"], 1)

    def test_stale_row_is_refetched_and_written_back(self):
        service, fetcher, store = self._service()
        self._store_row(store, "XYZ", minutes_ago=45)

        quote = service.get_stock("XYZ")

        self.assertEqual(fetcher.calls, ["XYZ"])
        self.assertEqual(quote.current_price, 50.0)
        self.assertEqual(service.repository.get("XYZ").current_price, 50.0)

    def test_fresh_but_suspicious_row_is_refetched(self):
        service, fetcher, store = self._service()
        self._store_row(store, "ZERO", minutes_ago=1, price=0.0)
        self._store_row(store, "SAME", minutes_ago=1, price=80.0, prev=80.0)

        service.get_stock("ZERO")
        service.get_stock("SAME")

        self.assertEqual(fetcher.calls, ["ZERO", "SAME"])

    def test_missing_row_and_failed_fetch_returns_none(self):
        service, fetcher, _ = self._service(fetcher=StubFetcher(fail={"NOPE"}))

        self.assertIsNone(service.get_stock("NOPE"))
        self.assertEqual(fetcher.calls, ["NOPE"])

    def test_write_back_failure_still_returns_quote(self):
        store = MagicMock()
        store.select.return_value = []
        store.upsert.side_effect = StoreError("read-only replica")
        service, _, _ = self._service(store=store)

        quote = service.get_stock("OGDC")

        self.assertEqual(quote.symbol, "OGDC")
        store.upsert.assert_called_once()

    def test_read_failure_is_treated_as_miss(self):
        store = MagicMock()
        store.select.side_effect = ConnectionError("db down")
        store.upsert.side_effect = lambda table, row, **kwargs: row
        service, fetcher, _ = self._service(store=store)

        quote = service.get_stock("OGDC")

        self.assertEqual(quote.symbol, "OGDC")
        self.assertEqual(fetcher.calls, ["OGDC"])

    def test_refresh_persists_successes_only(self):
        service, _, _ = self._service(fetcher=StubFetcher(fail={"BBB"}))

        result = service.refresh(["AAA", "BBB"])

        self.assertEqual(result.success_count, 1)
        self.assertEqual(result.total_requested, 2)
        self.assertIsNotNone(service.repository.get("AAA"))
        self.assertIsNone(service.repository.get("BBB"))

    def test_refresh_stale_only_fetches_missing_or_zero_priced(self):
        service, fetcher, store = self._service()
        self._store_row(store, "GOOD", minutes_ago=120)
        self._store_row(store, "ZERO", minutes_ago=1, price=0.0)

        rows = service.refresh_stale(["good", "zero", "new"])

        self.assertEqual(sorted(fetcher.calls), ["NEW", "ZERO"])
        self.assertEqual([r.symbol for r in rows], ["GOOD", "ZERO", "NEW"])
        self.assertEqual(rows[1].current_price, 50.0)

    def test_search_and_list_passthrough(self):
        service, _, store = self._service()
        self._store_row(store, "ENGRO", minutes_ago=1)

        self.assertEqual([r.symbol for r in service.list_stocks()], ["ENGRO"])
        self.assertEqual([r.symbol for r in service.search_stocks("eng")], ["ENGRO"])
        self.assertEqual(service.search_stocks(""), [])


if __name__ == "__main__":
    unittest.main()
