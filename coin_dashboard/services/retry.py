# coin_dashboard/services/retry.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from coin_dashboard.services.errors import ApiError, UpstreamUnavailableError

logger = logging.getLogger("coin_dashboard.coingecko")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff: attempt 0 waits base, attempt 1 waits 2*base, ...
    max_retries counts the extra attempts after the first request.
    """

    max_retries: int = 2
    base_delay_s: float = 1.0

    def next_delay(self, attempt: int) -> float:
        return self.base_delay_s * (2 ** attempt)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


def is_retryable_status(status: int) -> bool:
    return status == 429 or status >= 500


async def send_with_retries(
    send: Callable[[], Awaitable[httpx.Response]],
    policy: RetryPolicy,
    sleep: Sleep = asyncio.sleep,
    label: str = "request",
) -> httpx.Response:
    """
    Drive `send` until it yields a 2xx response or the retry budget runs out.

    429/5xx and transport failures are retried with policy.next_delay(attempt);
    anything else non-2xx raises immediately.
    """
    attempt = 0
    while True:
        try:
            response = await send()
        except httpx.TransportError as exc:
            if attempt >= policy.max_retries:
                raise UpstreamUnavailableError(attempt + 1, repr(exc)) from exc
            delay = policy.next_delay(attempt)
            logger.warning(
                "⚠️ %s transport failure | attempt=%d/%d | err=%r | sleep=%.2fs",
                label, attempt + 1, policy.max_attempts, exc, delay,
            )
            await sleep(delay)
            attempt += 1
            continue

        if response.is_success:
            return response

        status = response.status_code
        if is_retryable_status(status) and attempt < policy.max_retries:
            delay = policy.next_delay(attempt)
            logger.warning(
                "⚠️ %s got HTTP %d | attempt=%d/%d | sleep=%.2fs",
                label, status, attempt + 1, policy.max_attempts, delay,
            )
            await sleep(delay)
            attempt += 1
            continue

        raise ApiError.from_status(status, response.text)
