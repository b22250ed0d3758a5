from decimal import Decimal
from unittest.mock import MagicMock

import httpx
import pytest
from twilio.base.exceptions import TwilioException

from bayanihan.core.exceptions import PaymentGatewayException
from bayanihan.core.paymongo import PayMongoClient, php_to_centavos
from bayanihan.core.sms import SmsSender, to_international


class TestPhoneNumbers:
    def test_local_number_gets_country_code(self):
        assert to_international("09171234567", "+63") == "+639171234567"

    def test_formatting_is_stripped(self):
        assert to_international("0917-123 4567", "+63") == "+639171234567"

    def test_international_number_is_kept(self):
        assert to_international("+639171234567", "+63") == "+639171234567"

    def test_no_digits(self):
        assert to_international("n/a", "+63") is None


class TestSmsSender:
    async def test_send(self):
        client = MagicMock()
        client.messages.create.return_value = MagicMock(sid="SM1")

        assert await SmsSender(client).send("09171234567", "Hello") is True
        assert client.messages.create.call_args.kwargs["to"].endswith("9171234567")

    async def test_twilio_failure_returns_false(self):
        client = MagicMock()
        client.messages.create.side_effect = TwilioException("unreachable")

        assert await SmsSender(client).send("09171234567", "Hello") is False

    async def test_invalid_number_is_not_sent(self):
        client = MagicMock()
        assert await SmsSender(client).send("", "Hello") is False
        client.messages.create.assert_not_called()


def gateway(handler) -> PayMongoClient:
    return PayMongoClient(
        secret_key="sk_test_x",
        base_url="https://paymongo.test/v1",
        transport=httpx.MockTransport(handler),
    )


class TestPayMongoClient:
    def test_centavos(self):
        assert php_to_centavos(Decimal("1100.00")) == 110000
        assert php_to_centavos(Decimal("12.345")) == 1235

    async def test_create_source_posts_attributes(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = request.read()
            return httpx.Response(200, json={"data": {"id": "src_1"}})

        result = await gateway(handler).create_source(
            amount_centavos=110000,
            source_type="gcash",
            success_url="https://app/ok",
            failed_url="https://app/failed",
        )

        assert result["data"]["id"] == "src_1"
        assert seen["path"] == "/v1/sources"
        assert b'"amount":110000' in seen["body"].replace(b" ", b"")

    async def test_server_errors_are_retryable(self):
        client = gateway(lambda request: httpx.Response(503, json={"errors": []}))
        with pytest.raises(PaymentGatewayException) as exc_info:
            await client.get_payment("pay_1")
        assert exc_info.value.retry is True

    async def test_rejections_are_not_retryable(self):
        client = gateway(lambda request: httpx.Response(400, json={"errors": [{"detail": "amount is invalid"}]}))
        with pytest.raises(PaymentGatewayException, match="amount is invalid") as exc_info:
            await client.get_payment_intent("pi_1")
        assert exc_info.value.retry is False

    async def test_minimum_amount(self):
        client = gateway(lambda request: httpx.Response(200, json={}))
        with pytest.raises(PaymentGatewayException):
            await client.create_payment_intent(amount_centavos=50, description="too small")

    async def test_unconfigured_gateway(self):
        client = PayMongoClient(secret_key="", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with pytest.raises(PaymentGatewayException, match="not configured"):
            await client.get_payment("pay_1")
