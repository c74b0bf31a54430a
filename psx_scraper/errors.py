from __future__ import annotations


class QuoteFetchError(Exception):
    """Raised when neither upstream source produced a quote for a symbol."""

    def __init__(self, symbol: str, message: str = "Failed to scrape stock data") -> None:
        super().__init__(f"{message}: {symbol}")
        self.symbol = symbol
        self.message = message


class InvalidSymbolsError(ValueError):
    pass


class StoreError(Exception):
    pass
