"""
Tests for the Razorpay and PayPal adapters.

HTTP is mocked at requests.request; the tests check what is sent and
how gateway failures are translated into GatewayError.
"""

import pytest
import requests

from payments.adapters import (
    CreateOrderParams,
    CreatePayoutParams,
    IdempotencyKeyGenerator,
    PayPalAdapter,
    RazorpayAdapter,
    backoff_delay,
    get_adapter,
    is_retryable_gateway_error,
)
from payments.adapters.base import to_major_units
from payments.exceptions import GatewayError


@pytest.fixture
def gateway_settings(settings):
    settings.RAZORPAY_KEY_ID = "rzp_test_key"
    settings.RAZORPAY_KEY_SECRET = "rzp_test_secret"
    settings.RAZORPAY_API_BASE = "https://api.razorpay.test/v1"
    settings.PAYPAL_CLIENT_ID = "paypal-client"
    settings.PAYPAL_CLIENT_SECRET = "paypal-secret"
    settings.PAYPAL_API_BASE = "https://api-m.paypal.test"
    return settings


@pytest.fixture
def http(mocker):
    return mocker.patch("payments.adapters.base.requests.request")


def _response(mocker, payload=None, status_code=200):
    response = mocker.MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
    return response


def _order_params(**overrides):
    return CreateOrderParams(
        **{
            "amount": 9900,
            "currency": "INR",
            "receipt": "rcpt_1",
            "idempotency_key": "order:rcpt_1:1:abcd",
            **overrides,
        }
    )


def _payout_params(**overrides):
    return CreatePayoutParams(
        **{
            "amount": 15000,
            "currency": "INR",
            "destination": "acc_123",
            "idempotency_key": "payout:req:1:abcd",
            "note": "Payout from Mhramyraux",
            **overrides,
        }
    )


class TestRazorpayAdapter:
    def test_create_order(self, gateway_settings, http, mocker):
        http.return_value = _response(
            mocker, {"id": "order_Abc", "status": "created", "amount": 9900, "currency": "INR"}
        )

        order = RazorpayAdapter.create_order(_order_params())

        assert order.id == "order_Abc"
        assert order.approval_url is None
        method, url = http.call_args.args
        kwargs = http.call_args.kwargs
        assert (method, url) == ("POST", "https://api.razorpay.test/v1/orders")
        assert kwargs["auth"] == ("rzp_test_key", "rzp_test_secret")
        assert kwargs["json"]["amount"] == 9900
        assert kwargs["json"]["receipt"] == "rcpt_1"
        assert kwargs["timeout"] == gateway_settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS

    def test_create_payout(self, gateway_settings, http, mocker):
        http.return_value = _response(mocker, {"id": "trf_Xyz", "status": "processed"})

        payout = RazorpayAdapter.create_payout(_payout_params())

        assert payout.id == "trf_Xyz"
        kwargs = http.call_args.kwargs
        assert http.call_args.args[1] == "https://api.razorpay.test/v1/transfers"
        assert kwargs["json"]["account"] == "acc_123"
        assert kwargs["json"]["notes"]["note"] == "Payout from Mhramyraux"
        assert kwargs["headers"]["X-Payout-Idempotency"] == "payout:req:1:abcd"

    def test_not_configured(self, settings, http):
        settings.RAZORPAY_KEY_ID = ""

        with pytest.raises(GatewayError) as exc_info:
            RazorpayAdapter.create_order(_order_params())

        assert exc_info.value.error_code == "GATEWAY_NOT_CONFIGURED"
        http.assert_not_called()

    def test_missing_id_in_response(self, gateway_settings, http, mocker):
        http.return_value = _response(mocker, {"status": "created"})

        with pytest.raises(GatewayError) as exc_info:
            RazorpayAdapter.create_order(_order_params())

        assert exc_info.value.error_code == "GATEWAY_BAD_RESPONSE"


class TestErrorTranslation:
    def test_timeout(self, gateway_settings, http):
        http.side_effect = requests.Timeout()

        with pytest.raises(GatewayError) as exc_info:
            RazorpayAdapter.create_payout(_payout_params())

        assert exc_info.value.error_code == "GATEWAY_TIMEOUT"
        assert exc_info.value.is_retryable is True

    def test_connection_error(self, gateway_settings, http):
        http.side_effect = requests.ConnectionError()

        with pytest.raises(GatewayError) as exc_info:
            RazorpayAdapter.create_payout(_payout_params())

        assert exc_info.value.error_code == "GATEWAY_UNAVAILABLE"
        assert exc_info.value.is_retryable is True

    def test_client_error_not_retryable(self, gateway_settings, http, mocker):
        http.return_value = _response(mocker, {"error": {}}, status_code=400)

        with pytest.raises(GatewayError) as exc_info:
            RazorpayAdapter.create_payout(_payout_params())

        assert exc_info.value.error_code == "GATEWAY_REJECTED"
        assert exc_info.value.is_retryable is False
        assert exc_info.value.http_status == 502

    def test_server_error_retryable(self, gateway_settings, http, mocker):
        http.return_value = _response(mocker, None, status_code=503)

        with pytest.raises(GatewayError) as exc_info:
            RazorpayAdapter.create_payout(_payout_params())

        assert exc_info.value.error_code == "GATEWAY_UNAVAILABLE"
        assert is_retryable_gateway_error(exc_info.value) is True

    def test_non_json_body(self, gateway_settings, http, mocker):
        response = _response(mocker)
        response.json.side_effect = ValueError("Expecting value")
        http.return_value = response

        with pytest.raises(GatewayError) as exc_info:
            RazorpayAdapter.create_order(_order_params())

        assert exc_info.value.error_code == "GATEWAY_BAD_RESPONSE"


class TestPayPalAdapter:
    def test_create_order_returns_approval_url(self, gateway_settings, http, mocker):
        http.side_effect = [
            _response(mocker, {"access_token": "A21AA", "expires_in": 32400}),
            _response(
                mocker,
                {
                    "id": "5O190127TN364715T",
                    "status": "CREATED",
                    "links": [
                        {"rel": "self", "href": "https://api-m.paypal.test/v2/checkout/orders/5O1"},
                        {"rel": "approve", "href": "https://www.paypal.test/checkoutnow?token=5O1"},
                    ],
                },
            ),
        ]

        order = PayPalAdapter.create_order(_order_params(currency="USD", amount=199))

        assert order.id == "5O190127TN364715T"
        assert order.approval_url == "https://www.paypal.test/checkoutnow?token=5O1"
        order_call = http.call_args_list[1]
        assert order_call.args[1] == "https://api-m.paypal.test/v2/checkout/orders"
        assert order_call.kwargs["headers"]["Authorization"] == "Bearer A21AA"
        assert order_call.kwargs["headers"]["PayPal-Request-Id"] == "order:rcpt_1:1:abcd"
        unit = order_call.kwargs["json"]["purchase_units"][0]
        assert unit["amount"] == {"currency_code": "USD", "value": "1.99"}

    def test_token_is_cached(self, gateway_settings, http, mocker):
        http.return_value = _response(mocker, {"access_token": "A21AA", "expires_in": 32400})

        assert PayPalAdapter.get_access_token() == "A21AA"
        assert PayPalAdapter.get_access_token() == "A21AA"

        assert http.call_count == 1

    def test_create_payout(self, gateway_settings, http, mocker):
        http.side_effect = [
            _response(mocker, {"access_token": "A21AA", "expires_in": 32400}),
            _response(
                mocker,
                {"batch_header": {"payout_batch_id": "BATCH-1", "batch_status": "PENDING"}},
            ),
        ]

        payout = PayPalAdapter.create_payout(
            _payout_params(currency="USD", amount=1000, destination="host@example.com")
        )

        assert payout.id == "BATCH-1"
        assert payout.status == "PENDING"
        item = http.call_args_list[1].kwargs["json"]["items"][0]
        assert item["receiver"] == "host@example.com"
        assert item["amount"] == {"currency": "USD", "value": "10.00"}

    def test_not_configured(self, settings, http):
        settings.PAYPAL_CLIENT_SECRET = ""

        with pytest.raises(GatewayError) as exc_info:
            PayPalAdapter.create_payout(_payout_params())

        assert exc_info.value.error_code == "GATEWAY_NOT_CONFIGURED"
        http.assert_not_called()


class TestHelpers:
    @pytest.mark.parametrize(
        "amount,expected",
        [(9900, "99.00"), (199, "1.99"), (5, "0.05"), (100000, "1000.00")],
    )
    def test_to_major_units(self, amount, expected):
        assert to_major_units(amount) == expected

    def test_idempotency_key_is_stable(self):
        first = IdempotencyKeyGenerator.generate("payout", "req-1")

        assert first == IdempotencyKeyGenerator.generate("payout", "req-1")
        assert first != IdempotencyKeyGenerator.generate("payout", "req-1", attempt=2)
        assert first.startswith("payout:req-1:1:")

    def test_backoff_delay_bounds(self):
        for attempt in range(8):
            delay = backoff_delay(attempt, base=1.0, max_delay=60.0)
            base = min(2**attempt, 60.0)
            assert base <= delay <= base * 1.25

    def test_non_gateway_errors_not_retryable(self):
        assert is_retryable_gateway_error(RuntimeError()) is False

    def test_get_adapter(self):
        assert get_adapter("razorpay") is RazorpayAdapter
        assert get_adapter("paypal") is PayPalAdapter
        with pytest.raises(ValueError):
            get_adapter("stripe")

    @pytest.mark.parametrize(
        "overrides",
        [{"amount": 0}, {"currency": ""}, {"idempotency_key": ""}],
    )
    def test_order_params_validated(self, overrides):
        with pytest.raises(ValueError):
            _order_params(**overrides)
