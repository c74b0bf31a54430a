from __future__ import annotations

from typing import Any, Optional

import requests

from psx_scraper.schemas.quote import Quote


class ScrapeApiClient:
    """Calls this service's own single-symbol endpoint over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout_sec: float = 15.0,
        session: Optional[Any] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.session = session or requests

    def get_quote(self, symbol: str) -> Quote:
        response = self.session.get(
            f"{self.base_url}/api/scrape-stock",
            params={"symbol": symbol},
            timeout=self.timeout_sec,
        )
        response.raise_for_status()
        return Quote.model_validate(response.json())
