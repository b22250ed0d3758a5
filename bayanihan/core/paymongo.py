"""
PayMongo REST client.

All gateway calls go through this module so we can:
  - Keep the secret key and base URL in one place
  - Convert pesos to integer centavos exactly once
  - Turn transport and API failures into PaymentGatewayException,
    flagging timeouts as retryable

Endpoints used:
  sources          e-wallet checkout (gcash, paymaya, grab_pay)
  payments         charge a chargeable source
  payment_intents  card checkout and status polling
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import httpx

from bayanihan.core.config import settings
from bayanihan.core.exceptions import PaymentGatewayException
from bayanihan.core.logging import get_logger

logger = get_logger(__name__)

MIN_AMOUNT_CENTAVOS = 100  # PHP 1.00


def php_to_centavos(amount: Decimal) -> int:
    """PHP 12.345 -> 1235 (half-up to the nearest centavo)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _error_detail(response: httpx.Response) -> str:
    try:
        errors = response.json().get("errors") or []
    except ValueError:
        errors = []
    if errors and isinstance(errors[0], dict):
        return errors[0].get("detail") or "Payment gateway error"
    return f"Payment gateway returned HTTP {response.status_code}"


class PayMongoClient:
    """Thin async wrapper over the PayMongo v1 API."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.paymongo_secret_key
        self.base_url = (base_url or settings.paymongo_api_base).rstrip("/")
        self.timeout = timeout or settings.paymongo_timeout_seconds
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not self.secret_key:
            raise PaymentGatewayException("Payment gateway is not configured")

        body = {"data": {"attributes": attributes}} if attributes is not None else None
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self.secret_key, ""),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=body)
        except httpx.TimeoutException:
            logger.warning("paymongo_timeout", method=method, path=path)
            raise PaymentGatewayException("Payment gateway timed out", retry=True)
        except httpx.TransportError as exc:
            logger.warning("paymongo_transport_error", method=method, path=path, error=str(exc))
            raise PaymentGatewayException("Payment gateway unreachable", retry=True)

        if response.status_code >= 500:
            logger.warning("paymongo_server_error", path=path, status=response.status_code)
            raise PaymentGatewayException(_error_detail(response), retry=True)
        if response.status_code >= 400:
            logger.warning("paymongo_rejected", path=path, status=response.status_code)
            raise PaymentGatewayException(_error_detail(response), retry=False)
        return response.json()

    async def create_source(
        self,
        *,
        amount_centavos: int,
        source_type: str,
        success_url: str,
        failed_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Create an e-wallet source; the response carries the checkout URL."""
        self._check_amount(amount_centavos)
        return await self._request(
            "POST",
            "/sources",
            {
                "amount": amount_centavos,
                "currency": "PHP",
                "type": source_type,
                "redirect": {"success": success_url, "failed": failed_url},
                "metadata": metadata or {},
            },
        )

    async def create_payment(
        self,
        *,
        source_id: str,
        amount_centavos: int,
        description: str,
    ) -> Dict[str, Any]:
        """Charge a source after PayMongo reports it chargeable."""
        return await self._request(
            "POST",
            "/payments",
            {
                "amount": amount_centavos,
                "currency": "PHP",
                "description": description,
                "source": {"id": source_id, "type": "source"},
            },
        )

    async def create_payment_intent(
        self,
        *,
        amount_centavos: int,
        description: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        self._check_amount(amount_centavos)
        return await self._request(
            "POST",
            "/payment_intents",
            {
                "amount": amount_centavos,
                "currency": "PHP",
                "payment_method_allowed": ["card"],
                "payment_method_options": {"card": {"request_three_d_secure": "automatic"}},
                "description": description,
                "statement_descriptor": "Bayanihan Job Payment",
                "metadata": metadata or {},
            },
        )

    async def get_payment_intent(self, intent_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/payment_intents/{intent_id}")

    async def get_payment(self, payment_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/payments/{payment_id}")

    @staticmethod
    def _check_amount(amount_centavos: int) -> None:
        if amount_centavos < MIN_AMOUNT_CENTAVOS:
            raise PaymentGatewayException("Amount must be at least PHP 1.00", retry=False)
