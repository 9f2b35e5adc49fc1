"""Typed failures raised by the market data client."""

from __future__ import annotations

from typing import Optional


class MarketDataError(Exception):
    """Base class for every failure surfaced by the market data layer."""


class ApiError(MarketDataError):
    """Upstream answered with a non-success HTTP status."""

    retryable = False

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"API Error: {status} - {body[:300]}")

    @staticmethod
    def from_status(status: int, body: str = "") -> "ApiError":
        if status == 429:
            return RateLimitedError(status, body)
        if status >= 500:
            return UpstreamServerError(status, body)
        if 400 <= status < 500:
            return UpstreamClientError(status, body)
        return ApiError(status, body)


class RateLimitedError(ApiError):
    retryable = True


class UpstreamServerError(ApiError):
    retryable = True


class UpstreamClientError(ApiError):
    pass


class UpstreamUnavailableError(MarketDataError):
    """No response could be obtained (connection, DNS, timeout) after all retries."""

    def __init__(self, attempts: int, reason: Optional[str] = None):
        self.attempts = attempts
        self.reason = reason
        super().__init__(f"Upstream unreachable after {attempts} attempt(s): {reason}")


class DataError(MarketDataError):
    """Response body did not have the expected shape."""
