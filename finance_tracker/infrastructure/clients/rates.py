"""Exchange rates API client with exponential backoff retry logic"""

import asyncio
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx
from finance_tracker.config import settings
from finance_tracker.domain.currency import REFERENCE_CURRENCY
from finance_tracker.domain.exceptions import RatesAPIError
from finance_tracker.domain.models import RateSnapshot
from finance_tracker.domain.money import SUPPORTED_CURRENCIES
from finance_tracker.infrastructure.observability.metrics import (
    rates_fetch_failures_counter,
    rates_fetch_latency_histogram,
)

logger = logging.getLogger(__name__)


class RatesClient:
    """Client for a Frankfurter-style rates API (GET /{date}?from=USD)"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.rates_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = max_retries or settings.rates_fetch_max_retries
        self.backoff_base = settings.rates_backoff_base if backoff_base is None else backoff_base
        self.transport = transport

    async def fetch_snapshot(self, on: Optional[date] = None) -> RateSnapshot:
        """
        Fetch the rates published for a date (latest when omitted).

        Retries network failures and 5xx responses with backoff
        base * 2^(attempt-1). Client errors and malformed payloads fail
        immediately.

        Raises:
            RatesAPIError: API unreachable, erroring, or returned bad data
        """
        path = on.isoformat() if on is not None else "latest"
        symbols = ",".join(c for c in SUPPORTED_CURRENCIES if c != REFERENCE_CURRENCY)

        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    with rates_fetch_latency_histogram.time():
                        response = await client.get(
                            f"{self.base_url}/{path}",
                            params={"from": REFERENCE_CURRENCY, "to": symbols},
                        )
                        response.raise_for_status()
                    return self._parse(response)

                except httpx.HTTPStatusError as e:
                    rates_fetch_failures_counter.inc()
                    status = e.response.status_code
                    if status < 500:
                        raise RatesAPIError(f"Rates API error: {status}") from e
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise RatesAPIError(f"Rates API error: {status}") from e

                except httpx.RequestError as e:
                    rates_fetch_failures_counter.inc()
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise RatesAPIError(f"Rates API unreachable after {attempt} attempts") from e

                backoff = self.backoff_base * (2 ** (attempt - 1))
                logger.warning(
                    "Rates fetch failed, retrying",
                    extra={"attempt": attempt, "backoff_seconds": backoff},
                )
                await asyncio.sleep(backoff)

    @staticmethod
    def _parse(response: httpx.Response) -> RateSnapshot:
        try:
            data = response.json()
            effective_date = date.fromisoformat(data["date"])
            rates = {REFERENCE_CURRENCY: Decimal("1")}
            for code, value in data["rates"].items():
                code = code.upper()
                if code not in SUPPORTED_CURRENCIES or code == REFERENCE_CURRENCY:
                    continue
                rate = Decimal(str(value))
                if not rate.is_finite() or rate <= 0:
                    raise ValueError(f"non-positive rate for {code}")
                rates[code] = rate
        except (KeyError, ValueError, TypeError, AttributeError, InvalidOperation) as e:
            rates_fetch_failures_counter.inc()
            raise RatesAPIError(f"Invalid rates data from API: {e}") from e

        return RateSnapshot(effective_date=effective_date, rates=rates)
