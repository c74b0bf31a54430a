from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

import requests
from bs4 import BeautifulSoup

from psx_scraper.config.settings import DEFAULT_USER_AGENT
from psx_scraper.errors import QuoteFetchError
from psx_scraper.schemas.quote import Quote

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")

PRIMARY_SOURCE = "sarmaaya"
FALLBACK_SOURCE = "psx-dps"


def parse_number(text: Optional[str], default: float = 0.0) -> float:
    """Best-effort numeric parse of scraped text; anything unusable is ``default``."""
    if not text:
        return default
    cleaned = text.replace(",", "").replace("%", "").strip()
    match = _NUMBER_RE.search(cleaned)
    if match is None:
        return default
    try:
        value = float(match.group(0))
    except ValueError:
        return default
    if not math.isfinite(value):
        return default
    # accounting notation: "(1.5)" is -1.5
    if cleaned.startswith("(") and cleaned.endswith(")"):
        value = -abs(value)
    return value


def parse_int(text: Optional[str], default: int = 0) -> int:
    if not text:
        return default
    cleaned = text.replace(",", "")
    match = re.search(r"\d+", cleaned)
    if match is None:
        return default
    return int(match.group(0))


def _select_text(soup: BeautifulSoup, selector: str) -> str:
    node = soup.select_one(selector)
    if node is None:
        return ""
    return node.get_text().strip()


class PsxQuoteScraper:
    """Scrapes PSX quotes from sarmaaya.pk, falling back to the exchange's DPS pages."""

    def __init__(
        self,
        primary_base_url: str = "https://sarmaaya.pk/stocks",
        fallback_base_url: str = "https://dps.psx.com.pk/company",
        timeout_sec: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[Any] = None,
    ) -> None:
        self.primary_base_url = primary_base_url.rstrip("/")
        self.fallback_base_url = fallback_base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.user_agent = user_agent
        self.session = session or requests

        self.primary_ok = 0
        self.fallback_used = 0
        self.failures = 0

    def _get_html(self, url: str) -> str:
        response = self.session.get(
            url,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout_sec,
        )
        response.raise_for_status()
        return response.text

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def parse_primary(self, symbol: str, html: str) -> Quote:
        soup = BeautifulSoup(html, "html.parser")
        return Quote(
            symbol=symbol,
            name=_select_text(soup, "h1.stock-name") or symbol,
            current_price=parse_number(_select_text(soup, ".current-price")),
            previous_close=parse_number(_select_text(soup, ".previous-close")),
            change_percent=parse_number(_select_text(soup, ".change-percent")),
            volume=parse_int(_select_text(soup, ".volume")),
            high_52_week=parse_number(_select_text(soup, ".high-52w")),
            low_52_week=parse_number(_select_text(soup, ".low-52w")),
            last_updated=self._now(),
            source=PRIMARY_SOURCE,
        )

    def parse_fallback(self, symbol: str, html: str) -> Quote:
        soup = BeautifulSoup(html, "html.parser")
        return Quote(
            symbol=symbol,
            name=_select_text(soup, ".company-name") or symbol,
            current_price=parse_number(_select_text(soup, ".ldcp")),
            previous_close=parse_number(_select_text(soup, ".previous-close")),
            change_percent=parse_number(_select_text(soup, ".change")),
            volume=parse_int(_select_text(soup, ".volume")),
            last_updated=self._now(),
            source=FALLBACK_SOURCE,
        )

    def fetch_primary(self, symbol: str) -> Quote:
        html = self._get_html(f"{self.primary_base_url}/{symbol}")
        return self.parse_primary(symbol, html)

    def fetch_fallback(self, symbol: str) -> Quote:
        html = self._get_html(f"{self.fallback_base_url}/{symbol}")
        return self.parse_fallback(symbol, html)

    def fetch(self, symbol: str) -> Quote:
        symbol = symbol.strip().upper()
        try:
            quote = self.fetch_primary(symbol)
        except Exception as exc:
            print(f"[SCRAPE][primary_error] symbol={symbol} error={exc}", flush=True)
        else:
            self.primary_ok += 1
            return quote

        try:
            quote = self.fetch_fallback(symbol)
        except Exception as exc:
            self.failures += 1
            print(f"[SCRAPE][fallback_error] symbol={symbol} error={exc}", flush=True)
            raise QuoteFetchError(symbol) from exc

        self.fallback_used += 1
        return quote

    def metrics(self) -> dict[str, int]:
        return {
            "primary_ok": self.primary_ok,
            "fallback_used": self.fallback_used,
            "failures": self.failures,
        }
