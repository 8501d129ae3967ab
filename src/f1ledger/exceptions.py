"""Exception hierarchy for the f1ledger ingestion pipeline."""

from __future__ import annotations


class F1LedgerError(Exception):
    """Base exception for all f1ledger errors."""


class ConfigurationError(F1LedgerError):
    """Raised when settings or reference data cannot be loaded."""


# ── Upstream fetch failures ─────────────────────────────────────────────


class UpstreamError(F1LedgerError):
    """Base exception for failures talking to an upstream provider."""


class RateLimitedError(UpstreamError):
    """Raised when the provider answers HTTP 429."""

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        super().__init__(f"Rate limited on {endpoint}")


class TransientUpstreamError(UpstreamError):
    """A failure that is worth retrying with a gentler backoff."""


class UpstreamAPIError(TransientUpstreamError):
    """Raised when the provider returns an error response (4xx/5xx)."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP {status_code}: {message}")


class UpstreamConnectionError(TransientUpstreamError):
    """Raised when the client cannot connect to the provider."""


class UpstreamTimeoutError(TransientUpstreamError):
    """Raised when a request to the provider times out."""


class UpstreamFatalError(UpstreamError):
    """Retries are exhausted or the response cannot be used at all."""


class MalformedResponseError(UpstreamFatalError):
    """Raised when a response body does not have the expected shape."""


class FetchInterruptedError(UpstreamError):
    """Raised when a backoff wait is aborted because the worker is stopping."""


# ── Pipeline failures ───────────────────────────────────────────────────


class MappingError(F1LedgerError):
    """A single upstream field could not be mapped (e.g. non-numeric points)."""

    def __init__(self, field: str, value: object, context: str = "") -> None:
        self.field = field
        self.value = value
        self.context = context
        where = f" ({context})" if context else ""
        super().__init__(f"Cannot map {field}={value!r}{where}")


class AlreadyProcessedError(F1LedgerError):
    """Raised when a race already folded into the counters is ingested again."""

    def __init__(self, season: str, round: str) -> None:
        self.season = season
        self.round = round
        super().__init__(f"Race {season} round {round} is already processed")
