"""
A+ Marketplace Backend — Payment Gateway Client (Moyasar)
===========================================================

What:  Creates hosted-checkout invoices for note purchases and fetches
       invoice status for settlement verification.
How:   httpx.AsyncClient against the Moyasar REST API (HTTP Basic auth with
       the secret key), wrapped in tenacity retries for transient failures
       and a circuit breaker that fails fast while the gateway is down.
Who:   PurchaseService (payment links, optional verification); health route.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter on transport errors
       and 5xx responses
    2. 4xx responses are not retried; they surface as PaymentGatewayError
    3. The circuit breaker counts exhausted retries; while OPEN, calls raise
       CircuitBreakerOpenError immediately
    4. Any answer, 4xx included, shows the gateway is reachable and closes
       the circuit
"""

import logging
import math
import time
from decimal import Decimal
from typing import Any, Callable, Dict, NamedTuple, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from aplus.config import settings
from aplus.exceptions import CircuitBreakerOpenError, PaymentGatewayError
from aplus.services.pricing import to_money

logger = logging.getLogger(__name__)

INVOICE_PAID = "paid"


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class GatewayCircuitBreaker:
    """
    Fails gateway calls fast while Moyasar is unreachable.

    Every call that gets through records one outcome:
        success    2xx reply               → CLOSED, failure count reset
        rejection  4xx reply               → CLOSED, failure count reset
                                             (the gateway is up; the request
                                             itself was refused)
        failure    transport error or 5xx  → counted; OPEN at the threshold,
                   after retries             straight back to OPEN from HALF_OPEN

    States:
        CLOSED     calls pass
        OPEN       calls raise CircuitBreakerOpenError until
                   recovery_timeout has passed since the circuit opened
        HALF_OPEN  one trial call passes; others are refused until it
                   records an outcome or recovery_timeout runs out

    Not shared between processes; each uvicorn worker keeps its own state.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.clock = clock
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at: Optional[float] = None
        self.trial_started_at: Optional[float] = None

    def _seconds_left(self, since: Optional[float]) -> int:
        elapsed = self.clock() - (since or 0)
        return max(0, math.ceil(self.recovery_timeout - elapsed))

    def can_execute(self) -> bool:
        """
        Raises:
            CircuitBreakerOpenError: OPEN, or a HALF_OPEN trial is still running
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            wait = self._seconds_left(self.opened_at)
            if wait:
                raise CircuitBreakerOpenError(recovery_time=wait)
            logger.info("Gateway circuit HALF_OPEN; letting one trial call through")
            self.state = self.HALF_OPEN
            self.trial_started_at = None

        # A trial that never reported back stops blocking after recovery_timeout
        if self.trial_started_at is not None:
            wait = self._seconds_left(self.trial_started_at)
            if wait:
                raise CircuitBreakerOpenError(recovery_time=wait)
        self.trial_started_at = self.clock()
        return True

    def record_success(self) -> None:
        self._close("gateway recovered")

    def record_rejection(self, status_code: int) -> None:
        self._close(f"gateway answered {status_code}")

    def record_failure(self) -> None:
        self.failure_count += 1
        self.trial_started_at = None

        if self.state == self.HALF_OPEN:
            logger.warning("Gateway circuit back to OPEN (trial call failed)")
            self._open()
        elif self.state == self.CLOSED and self.failure_count >= self.failure_threshold:
            logger.warning("Gateway circuit OPEN after %d consecutive failures", self.failure_count)
            self._open()

    def _open(self) -> None:
        self.state = self.OPEN
        self.opened_at = self.clock()

    def _close(self, reason: str) -> None:
        if self.state != self.CLOSED:
            logger.info("Gateway circuit CLOSED (%s)", reason)
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at = None
        self.trial_started_at = None


# ══════════════════════════════════════════════════════════════════════════
# Gateway Client
# ══════════════════════════════════════════════════════════════════════════

class Invoice(NamedTuple):
    id: str
    url: str
    amount: Decimal
    currency: str
    status: str


class _TransientGatewayError(Exception):
    """5xx from the gateway; retried."""


def _to_minor_units(amount: Decimal) -> int:
    return int(to_money(amount) * 100)


def _parse_invoice(data: Dict[str, Any]) -> Invoice:
    return Invoice(
        id=str(data.get("id", "")),
        url=str(data.get("url", "")),
        amount=to_money(Decimal(int(data.get("amount", 0))) / 100),
        currency=str(data.get("currency", settings.payment_currency)),
        status=str(data.get("status", "")),
    )


class PaymentGatewayClient:
    """
    Thin async client for the Moyasar invoices API.

    Args:
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = settings.moyasar_api_url.rstrip("/")
        self.transport = transport
        self.circuit_breaker = GatewayCircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    @property
    def configured(self) -> bool:
        return bool(settings.moyasar_secret_key)

    @property
    def status(self) -> str:
        """Reported by /health: available, circuit_open, unconfigured."""
        if not self.configured:
            return "unconfigured"
        if self.circuit_breaker.state == GatewayCircuitBreaker.OPEN:
            return "circuit_open"
        return "available"

    async def create_invoice(
        self,
        amount: Decimal,
        description: str,
        success_url: str,
        back_url: str,
        callback_url: str,
    ) -> Invoice:
        payload = {
            "amount": _to_minor_units(amount),
            "currency": settings.payment_currency,
            "description": description,
            "success_url": success_url,
            "back_url": back_url,
            "callback_url": callback_url,
        }
        data = await self._call("POST", "/invoices", json=payload)
        return _parse_invoice(data)

    async def fetch_invoice(self, invoice_id: str) -> Invoice:
        data = await self._call("GET", f"/invoices/{invoice_id}")
        return _parse_invoice(data)

    async def _call(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        self.circuit_breaker.can_execute()

        try:
            data = await self._send(method, path, **kwargs)
        except PaymentGatewayError as e:
            self.circuit_breaker.record_rejection(e.context.get("status", 400))
            raise
        except ValueError as e:
            self.circuit_breaker.record_failure()
            logger.error("Payment gateway %s %s returned a malformed body: %s", method, path, e)
            raise PaymentGatewayError(context={"path": path, "error": str(e)})
        except (httpx.TransportError, _TransientGatewayError) as e:
            self.circuit_breaker.record_failure()
            logger.error("Payment gateway %s %s failed after retries: %s", method, path, e)
            raise PaymentGatewayError(
                context={"path": path, "attempts": settings.retry_max_attempts, "error": str(e)}
            )

        self.circuit_breaker.record_success()
        return data

    @retry(
        retry=retry_if_exception_type((httpx.TransportError, _TransientGatewayError)),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _send(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        start_time = time.time()
        async with httpx.AsyncClient(
            base_url=self.base_url,
            auth=(settings.moyasar_secret_key, ""),
            timeout=settings.payment_timeout_seconds,
            transport=self.transport,
        ) as client:
            response = await client.request(method, path, **kwargs)

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code >= 500:
            logger.warning("Gateway %s %s → %d in %.0fms", method, path, response.status_code, duration_ms)
            raise _TransientGatewayError(f"gateway returned {response.status_code}")
        if response.status_code >= 400:
            logger.error("Gateway rejected %s %s: %d %s", method, path, response.status_code, response.text[:500])
            raise PaymentGatewayError(context={"path": path, "status": response.status_code})

        logger.info("Gateway %s %s → %d in %.0fms", method, path, response.status_code, duration_ms)
        return response.json()


# ── Singleton Instance ────────────────────────────────────────────────────
# Holds the circuit breaker state shared by all requests
payment_gateway = PaymentGatewayClient()
