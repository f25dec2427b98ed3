"""HTTP client for the report archive backend.

Each call is one ``POST {base_url}{archive_path}`` carrying the report
payload. Attempts are retried with bounded exponential backoff on transport
errors and 5xx responses, and every attempt passes through a circuit breaker
so a failing backend is not hammered. Whatever goes wrong, callers see a single
``ArchiveUnavailableError``.
"""

import asyncio
import time
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from reportflow.context import CorrelationContext
from reportflow.errors.exceptions import ArchiveUnavailableError
from reportflow.metrics import ARCHIVE_CALL_SECONDS, ARCHIVE_CALLS_TOTAL
from reportflow.resilience.circuit_breaker import CircuitBreaker, CircuitOpenError


class _TransientArchiveError(Exception):
    """Attempt failed in a way worth retrying (network error, 5xx)."""


class _ArchiveRejectedError(Exception):
    """Attempt failed in a way retrying will not fix (4xx, malformed body)."""


class ArchiveClient:
    """Resilient client for ``POST /api/v1/archive/reports``."""

    def __init__(
        self,
        base_url: str,
        *,
        path: str = "/api/v1/archive/reports",
        timeout_seconds: float = 10.0,
        retry_attempts: int = 3,
        retry_backoff_ms: int = 200,
        retry_max_backoff_ms: int = 2000,
        breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._path = path
        self._timeout = timeout_seconds
        self._retry_attempts = max(1, retry_attempts)
        self._wait = wait_exponential(
            multiplier=retry_backoff_ms / 1000,
            max=retry_max_backoff_ms / 1000,
        )
        self.breaker = breaker or CircuitBreaker(name="archive")
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds, transport=transport)

    @classmethod
    def from_settings(cls, cfg, transport: httpx.AsyncBaseTransport | None = None) -> "ArchiveClient":
        breaker = CircuitBreaker(
            name="archive",
            window_size=cfg.breaker_window_size,
            minimum_calls=cfg.breaker_minimum_calls,
            failure_rate_threshold=cfg.breaker_failure_rate_threshold,
            open_seconds=cfg.breaker_open_seconds,
            half_open_calls=cfg.breaker_half_open_calls,
        )
        return cls(
            cfg.archive_base_url,
            path=cfg.archive_path,
            timeout_seconds=cfg.archive_timeout_seconds,
            retry_attempts=cfg.archive_retry_attempts,
            retry_backoff_ms=cfg.archive_retry_backoff_ms,
            retry_max_backoff_ms=cfg.archive_retry_max_backoff_ms,
            breaker=breaker,
            transport=transport,
        )

    async def archive(
        self,
        request_id: str,
        payload: dict[str, Any],
        *,
        correlation: CorrelationContext | None = None,
    ) -> str:
        """Store a generated report and return its archive reference."""
        correlation = correlation or CorrelationContext(correlation_id=request_id)
        log = correlation.logger(__name__)
        report_type = str(payload.get("reportType", "UNKNOWN"))
        started = time.perf_counter()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retry_attempts),
                wait=self._wait,
                retry=retry_if_exception_type(_TransientArchiveError),
                reraise=True,
            ):
                with attempt:
                    archive_ref = await self._attempt(payload, correlation)
        except CircuitOpenError as exc:
            ARCHIVE_CALLS_TOTAL.labels(outcome="rejected").inc()
            log.warning("Archive call rejected by open circuit", request_id=request_id, reason=str(exc))
            raise ArchiveUnavailableError(details={"request_id": request_id, "reason": str(exc)}) from exc
        except (_TransientArchiveError, _ArchiveRejectedError) as exc:
            ARCHIVE_CALLS_TOTAL.labels(outcome="failed").inc()
            log.error("Archive call failed", request_id=request_id, reason=str(exc))
            raise ArchiveUnavailableError(details={"request_id": request_id, "reason": str(exc)}) from exc

        ARCHIVE_CALL_SECONDS.labels(report_type=report_type).observe(time.perf_counter() - started)
        ARCHIVE_CALLS_TOTAL.labels(outcome="success").inc()
        log.debug("Report archived", request_id=request_id, archive_ref=archive_ref)
        return archive_ref

    async def _attempt(self, payload: dict[str, Any], correlation: CorrelationContext) -> str:
        """One breaker-guarded call; every outcome is recorded on the breaker."""
        await self.breaker.allow()
        try:
            archive_ref = await self._send(payload, correlation)
        except asyncio.CancelledError:
            await self.breaker.on_failure()
            raise
        except (_TransientArchiveError, _ArchiveRejectedError):
            await self.breaker.on_failure()
            raise
        except Exception as exc:
            await self.breaker.on_failure()
            raise _ArchiveRejectedError(f"Unexpected archive error: {type(exc).__name__}: {exc}") from exc
        await self.breaker.on_success()
        return archive_ref

    async def _send(self, payload: dict[str, Any], correlation: CorrelationContext) -> str:
        try:
            response = await self._client.post(
                self._path,
                json=payload,
                headers=correlation.as_http_headers(),
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise _TransientArchiveError(f"{type(exc).__name__}: {exc}") from exc

        if response.status_code >= 500:
            raise _TransientArchiveError(f"Archive returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise _ArchiveRejectedError(f"Archive returned HTTP {response.status_code}")

        try:
            archive_ref = response.json()["archiveRef"]
        except (ValueError, KeyError, TypeError) as exc:
            raise _ArchiveRejectedError("Malformed archive response") from exc
        if not isinstance(archive_ref, str) or not archive_ref:
            raise _ArchiveRejectedError("Archive response carried no archiveRef")
        return archive_ref

    async def close(self) -> None:
        await self._client.aclose()
