class WatchlistConfigError(Exception):
    """Config file is missing, unparseable, or fails validation."""


class QuoteFetchError(Exception):
    """Quote source returned no usable quote for a symbol."""


class QuoteUnavailableError(Exception):
    """No live quote and nothing cached for the symbol."""
