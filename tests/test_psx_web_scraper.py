import unittest
from unittest.mock import MagicMock

import requests

from psx_scraper.errors import QuoteFetchError
from psx_scraper.integrations.psx_web import PsxQuoteScraper, parse_int, parse_number

SARMAAYA_HTML = """
<html><body>
  <h1 class="stock-name"> Oil &amp; Gas Development Company </h1>
  <span class="current-price">1,234.50</span>
  <span class="previous-close">1,200.00</span>
  <span class="change-percent">+2.88%</span>
  <span class="volume">4,512,300</span>
  <span class="high-52w">1,400.25</span>
  <span class="low-52w">850.10</span>
</body></html>
"""

DPS_HTML = """
<html><body>
  <div class="company-name">Oil &amp; Gas Development Company Limited</div>
  <div class="ldcp">1,230.00</div>
  <div class="previous-close">1,200.00</div>
  <div class="change">2.5%</div>
  <div class="volume">3,000</div>
</body></html>
"""


def _response(text: str) -> MagicMock:
    response = MagicMock()
    response.text = text
    response.raise_for_status.return_value = None
    return response


def _http_error(status: int) -> MagicMock:
    response = MagicMock()
    response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return response


class ParseHelpersTest(unittest.TestCase):
    def test_parse_number_strips_separators_and_percent(self):
        self.assertEqual(parse_number("1,234.50"), 1234.5)
        self.assertEqual(parse_number("-0.75%"), -0.75)
        self.assertEqual(parse_number("Rs. 12.5"), 12.5)

    def test_parse_number_reads_accounting_negatives(self):
        self.assertEqual(parse_number("(1.5%)"), -1.5)
        self.assertEqual(parse_number(" (2,300.25) "), -2300.25)
        self.assertEqual(parse_number("(-)"), 0.0)

    def test_parse_number_unusable_text_is_zero(self):
        self.assertEqual(parse_number(""), 0.0)
        self.assertEqual(parse_number(None), 0.0)
        self.assertEqual(parse_number("N/A"), 0.0)

    def test_parse_int_is_non_negative(self):
        self.assertEqual(parse_int("4,512,300"), 4512300)
        self.assertEqual(parse_int("-"), 0)
        self.assertEqual(parse_int(None), 0)


class PsxQuoteScraperTest(unittest.TestCase):
    def _scraper(self, session):
        return PsxQuoteScraper(
            primary_base_url="https://primary.test/stocks",
            fallback_base_url="https://fallback.test/company",
            timeout_sec=10,
            user_agent="ua-test",
            session=session,
        )

    def test_primary_success_parses_all_fields(self):
        session = MagicMock()
        session.get.return_value = _response(SARMAAYA_HTML)

        quote = self._scraper(session).fetch("ogdc")

        self.assertEqual(quote.symbol, "OGDC")
        self.assertEqual(quote.name, "Oil & Gas Development Company")
        self.assertEqual(quote.current_price, 1234.5)
        self.assertEqual(quote.previous_close, 1200.0)
        self.assertEqual(quote.change_percent, 2.88)
        self.assertEqual(quote.volume, 4512300)
        self.assertEqual(quote.high_52_week, 1400.25)
        self.assertEqual(quote.low_52_week, 850.1)
        self.assertEqual(quote.source, "sarmaaya")
        self.assertIsNotNone(quote.last_updated.tzinfo)

        session.get.assert_called_once_with(
            "https://primary.test/stocks/OGDC",
            headers={"User-Agent": "ua-test"},
            timeout=10,
        )

    def test_primary_failure_falls_back_exactly_once(self):
        session = MagicMock()
        session.get.side_effect = [requests.Timeout("slow"), _response(DPS_HTML)]
        scraper = self._scraper(session)

        quote = scraper.fetch("OGDC")

        self.assertEqual(session.get.call_count, 2)
        self.assertEqual(session.get.call_args_list[1].args[0], "https://fallback.test/company/OGDC")
        self.assertEqual(quote.source, "psx-dps")
        self.assertEqual(quote.current_price, 1230.0)
        self.assertEqual(quote.change_percent, 2.5)
        self.assertEqual(quote.volume, 3000)
        self.assertIsNone(quote.high_52_week)
        self.assertEqual(scraper.metrics(), {"primary_ok": 0, "fallback_used": 1, "failures": 0})

    def test_non_2xx_primary_triggers_fallback(self):
        session = MagicMock()
        session.get.side_effect = [_http_error(503), _response(DPS_HTML)]

        quote = self._scraper(session).fetch("OGDC")

        self.assertEqual(quote.source, "psx-dps")

    def test_both_sources_failing_raises_fetch_error(self):
        session = MagicMock()
        session.get.side_effect = [requests.ConnectionError("down"), _http_error(404)]
        scraper = self._scraper(session)

        with self.assertRaises(QuoteFetchError) as ctx:
            scraper.fetch("XYZ")

        self.assertEqual(ctx.exception.symbol, "XYZ")
        self.assertEqual(session.get.call_count, 2)
        self.assertEqual(scraper.metrics()["failures"], 1)

    def test_missing_selectors_yield_zero_not_error(self):
        session = MagicMock()
        session.get.return_value = _response("<html><body><p>layout changed</p></body></html>")

        quote = self._scraper(session).fetch("HUBC")

        self.assertEqual(quote.name, "HUBC")
        self.assertEqual(quote.current_price, 0.0)
        self.assertEqual(quote.previous_close, 0.0)
        self.assertEqual(quote.change_percent, 0.0)
        self.assertEqual(quote.volume, 0)
        self.assertEqual(quote.high_52_week, 0.0)
        self.assertEqual(session.get.call_count, 1)


if __name__ == "__main__":
    unittest.main()
