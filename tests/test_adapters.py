"""
Tests for gateway adapters.

Covers the shared adapter lifecycle, transaction id format, per-gateway link
lifetimes, status vocabularies, callback mapping, signature verification
(fail-closed) and payout capabilities.
"""

import hashlib
import hmac
import re
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from urllib.parse import urlencode

import pytest

from paygate.exceptions import (
    AdapterConfigurationError,
    AdapterNotInitializedError,
    CapabilityNotImplementedError,
)
from paygate.models.api import (
    Currency,
    CustomerInfo,
    GatewayId,
    PaymentStatus,
    PayoutRequest,
    RefundRequest,
    Region,
)
from paygate.models.domain import ResolvedPaymentRequest
from paygate.services.fawry_adapter import FawryAdapter
from paygate.services.hyperpay_adapter import HyperPayAdapter, map_result_code
from paygate.services.mada_adapter import MadaAdapter
from paygate.services.payment_adapter import (
    BaseAdapter,
    generate_transaction_id,
    parse_timestamp,
    to_decimal,
)
from paygate.services.paymob_adapter import PAYMOB_HMAC_FIELDS, PaymobAdapter
from paygate.services.paytabs_adapter import PayTabsAdapter
from paygate.services.stc_pay_adapter import StcPayAdapter
from tests.helpers import SECRET_KEY, WEBHOOK_SECRET, make_adapter_config

ADAPTER_CLASSES: list[type[BaseAdapter]] = [
    PaymobAdapter,
    FawryAdapter,
    PayTabsAdapter,
    HyperPayAdapter,
    StcPayAdapter,
    MadaAdapter,
]


def _initialized(adapter_cls: type[BaseAdapter], **overrides) -> BaseAdapter:
    adapter = adapter_cls()
    adapter.initialize(make_adapter_config(adapter_cls.gateway, **overrides))
    return adapter


def _payment_request(region: Region = Region.KSA, currency: Currency = Currency.SAR):
    return ResolvedPaymentRequest(
        amount=Decimal("150.00"),
        currency=currency,
        region=region,
        customer=CustomerInfo(name="Test Customer", phone="0500000000"),
        order_id="order-1",
    )


def _hmac256(message: str) -> str:
    return hmac.new(WEBHOOK_SECRET.encode(), message.encode(), hashlib.sha256).hexdigest()


# ============================================================================
# Shared Lifecycle
# ============================================================================


class TestTransactionIds:
    """Tests for generate_transaction_id."""

    @pytest.mark.parametrize("gateway", list(GatewayId))
    def test_gateway_is_second_segment(self, gateway: GatewayId):
        """Underscores in the gateway are stripped so the id splits cleanly."""
        transaction_id = generate_transaction_id("TX", gateway)
        parts = transaction_id.split("_")
        assert len(parts) == 4
        assert parts[1] == gateway.value.replace("_", "")
        assert re.fullmatch(r"\d{13}", parts[2])
        assert re.fullmatch(r"[0-9a-f]{8}", parts[3])

    def test_ids_are_unique(self):
        ids = {generate_transaction_id("TX", GatewayId.MADA) for _ in range(200)}
        assert len(ids) == 200


class TestAdapterLifecycle:
    """Tests for initialize() and the not-initialized guard."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("adapter_cls", ADAPTER_CLASSES)
    async def test_capabilities_require_initialize(self, adapter_cls: type[BaseAdapter]):
        adapter = adapter_cls()
        with pytest.raises(AdapterNotInitializedError):
            await adapter.create_payment(_payment_request())
        with pytest.raises(AdapterNotInitializedError):
            await adapter.handle_callback({}, {})
        assert await adapter.health_check() is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("adapter_cls", ADAPTER_CLASSES)
    async def test_healthy_after_initialize(self, adapter_cls: type[BaseAdapter]):
        adapter = _initialized(adapter_cls)
        assert await adapter.health_check() is True

    @pytest.mark.parametrize("adapter_cls", ADAPTER_CLASSES)
    def test_production_requires_credentials(self, adapter_cls: type[BaseAdapter]):
        adapter = adapter_cls()
        config = make_adapter_config(
            adapter_cls.gateway,
            environment="production",
            api_key=None,
            secret_key=None,
            merchant_id=None,
            webhook_secret=None,
            iframe_id=None,
            integration_id=None,
        )
        with pytest.raises(AdapterConfigurationError) as exc_info:
            adapter.initialize(config)
        assert exc_info.value.missing == list(adapter_cls.required_credentials)

    @pytest.mark.asyncio
    async def test_sandbox_tolerates_missing_credentials(self):
        adapter = _initialized(MadaAdapter, merchant_id=None, secret_key=None)
        assert await adapter.health_check() is True


class TestCreatePayment:
    """Tests for the shared create_payment flow."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("adapter_cls", "ttl"),
        [
            (PaymobAdapter, timedelta(minutes=60)),
            (FawryAdapter, timedelta(hours=24)),
            (PayTabsAdapter, timedelta(minutes=30)),
            (HyperPayAdapter, timedelta(minutes=45)),
            (StcPayAdapter, timedelta(minutes=15)),
            (MadaAdapter, timedelta(minutes=20)),
        ],
    )
    async def test_pending_with_link_ttl(self, adapter_cls: type[BaseAdapter], ttl: timedelta):
        adapter = _initialized(adapter_cls)
        before = datetime.now(UTC)

        response = await adapter.create_payment(_payment_request())

        after = datetime.now(UTC)
        assert response.status == PaymentStatus.PENDING
        assert response.gateway == adapter_cls.gateway
        assert response.transaction_id.startswith(
            f"TX_{adapter_cls.gateway.value.replace('_', '')}_"
        )
        assert response.transaction_id in response.payment_url
        assert before + ttl <= response.expires_at <= after + ttl
        assert response.amount == Decimal("150.00")
        assert response.currency == Currency.SAR
        assert response.region == Region.KSA

    @pytest.mark.asyncio
    async def test_paytabs_uses_regional_domain(self):
        adapter = _initialized(PayTabsAdapter)
        uae = await adapter.create_payment(_payment_request(Region.UAE, Currency.AED))
        ksa = await adapter.create_payment(_payment_request(Region.KSA, Currency.SAR))
        assert uae.payment_url.startswith("https://secure.paytabs.com/")
        assert ksa.payment_url.startswith("https://secure.paytabs.sa/")

    @pytest.mark.asyncio
    async def test_fawry_sandbox_and_production_hosts(self):
        sandbox = await _initialized(FawryAdapter).create_payment(
            _payment_request(Region.EGYPT, Currency.EGP)
        )
        production = await _initialized(FawryAdapter, environment="production").create_payment(
            _payment_request(Region.EGYPT, Currency.EGP)
        )
        assert "fawrystaging" in sandbox.payment_url
        assert "fawrystaging" not in production.payment_url


class TestRefundAndStatus:
    """Tests for refund() and get_transaction_status()."""

    @pytest.mark.asyncio
    async def test_refund_is_pending_with_refund_id(self):
        adapter = _initialized(PaymobAdapter)
        request = RefundRequest(transaction_id="TX_PAYMOB_1_abcd", amount=Decimal("10.00"))

        response = await adapter.refund(request)

        assert response.refund_id.startswith("RF_PAYMOB_")
        assert response.transaction_id == "TX_PAYMOB_1_abcd"
        assert response.status == PaymentStatus.PENDING
        assert response.currency == Currency.EGP

    @pytest.mark.asyncio
    async def test_status_probe_is_never_final(self):
        adapter = _initialized(HyperPayAdapter)
        result = await adapter.get_transaction_status("TX_HYPERPAY_1_abcd")
        assert result.status == PaymentStatus.PENDING
        assert result.gateway == GatewayId.HYPERPAY


class TestProviderValueParsing:
    """Tests for the amount and timestamp parsers used by every callback."""

    @pytest.mark.parametrize(
        "value", ["NaN", "nan", "Infinity", "-Infinity", float("inf"), "abc", None]
    )
    def test_to_decimal_rejects_non_finite(self, value):
        assert to_decimal(value) == Decimal("0")

    def test_to_decimal_parses_amounts(self):
        assert to_decimal("150.00") == Decimal("150.00")
        assert to_decimal(15000) == Decimal("15000")

    @pytest.mark.parametrize("value", [10**20, -(10**20), 10**400, float("nan"), "not-a-date"])
    def test_parse_timestamp_out_of_range(self, value):
        assert parse_timestamp(value) is None

    def test_parse_timestamp_epoch_ms(self):
        assert parse_timestamp(1767268800000) == datetime(2026, 1, 1, 12, tzinfo=UTC)


# ============================================================================
# Payouts
# ============================================================================


def _payout(destination_type: str, currency: str = "SAR") -> PayoutRequest:
    return PayoutRequest.model_validate(
        {
            "amount": "250.00",
            "currency": currency,
            "destination": {
                "type": destination_type,
                "account": "0500000000",
                "name": "Beneficiary",
            },
        }
    )


class TestPayouts:
    """Tests for payout capability."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "adapter_cls", [FawryAdapter, PayTabsAdapter, HyperPayAdapter, MadaAdapter]
    )
    async def test_not_implemented(self, adapter_cls: type[BaseAdapter]):
        adapter = _initialized(adapter_cls)
        with pytest.raises(CapabilityNotImplementedError) as exc_info:
            await adapter.payout(_payout("wallet"))
        assert exc_info.value.capability == "payout"

    @pytest.mark.asyncio
    async def test_paymob_bank_payout(self):
        adapter = _initialized(PaymobAdapter)
        response = await adapter.payout(_payout("bank_account", "EGP"))
        assert response.payout_id.startswith("PO_PAYMOB_")
        assert response.destination_account == "0500000000"
        assert response.status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_stc_pay_wallet_payout(self):
        adapter = _initialized(StcPayAdapter)
        response = await adapter.payout(_payout("wallet"))
        assert response.payout_id.startswith("PO_STCPAY_")
        assert response.gateway == GatewayId.STC_PAY

    @pytest.mark.asyncio
    async def test_stc_pay_rejects_bank_payout(self):
        adapter = _initialized(StcPayAdapter)
        with pytest.raises(CapabilityNotImplementedError, match="bank_account"):
            await adapter.payout(_payout("bank_account"))


# ============================================================================
# Paymob
# ============================================================================


def _paymob_payload(**obj_overrides) -> dict:
    obj = {
        "id": 192036465,
        "pending": False,
        "amount_cents": 15000,
        "success": True,
        "is_auth": False,
        "is_capture": False,
        "is_standalone_payment": True,
        "is_voided": False,
        "is_refunded": False,
        "is_3d_secure": True,
        "integration_id": 67890,
        "has_parent_transaction": False,
        "order": {"id": 217503754, "merchant_order_id": "TX_PAYMOB_1767268800000_0a1b2c3d"},
        "created_at": "2026-01-01T12:00:00.000000",
        "currency": "EGP",
        "source_data": {"pan": "2346", "type": "card", "sub_type": "MasterCard"},
        "error_occured": False,
        "owner": 302852,
    }
    obj.update(obj_overrides)
    return {"type": "TRANSACTION", "obj": obj}


def _paymob_signature(payload: dict) -> str:
    obj = payload["obj"]
    parts = []
    for name in PAYMOB_HMAC_FIELDS:
        value = obj
        for key in name.split("."):
            value = value[key]
        parts.append(("true" if value else "false") if isinstance(value, bool) else str(value))
    return hmac.new(WEBHOOK_SECRET.encode(), "".join(parts).encode(), hashlib.sha512).hexdigest()


class TestPaymobAdapter:
    """Tests for Paymob callbacks and HMAC."""

    @pytest.mark.asyncio
    async def test_success_callback(self):
        adapter = _initialized(PaymobAdapter)
        result = await adapter.handle_callback(_paymob_payload(), {})
        assert result.status == PaymentStatus.SUCCESS
        assert result.transaction_id == "TX_PAYMOB_1767268800000_0a1b2c3d"
        assert result.amount == Decimal("150")
        assert result.currency == Currency.EGP
        assert result.gateway_reference == "192036465"
        assert result.paid_at is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("overrides", "expected"),
        [
            ({"success": False, "pending": True}, PaymentStatus.PENDING),
            ({"success": False}, PaymentStatus.FAILED),
            ({"is_voided": True}, PaymentStatus.CANCELLED),
            ({"is_refunded": True}, PaymentStatus.CANCELLED),
            ({"success": "true"}, PaymentStatus.SUCCESS),
        ],
    )
    async def test_status_mapping(self, overrides: dict, expected: PaymentStatus):
        adapter = _initialized(PaymobAdapter)
        result = await adapter.handle_callback(_paymob_payload(**overrides), {})
        assert result.status == expected
        if expected != PaymentStatus.SUCCESS:
            assert result.paid_at is None

    def test_valid_signature(self):
        adapter = _initialized(PaymobAdapter)
        payload = _paymob_payload()
        assert adapter.verify_signature(payload, _paymob_signature(payload))

    def test_signature_is_case_insensitive(self):
        adapter = _initialized(PaymobAdapter)
        payload = _paymob_payload()
        assert adapter.verify_signature(payload, _paymob_signature(payload).upper())

    def test_tampered_amount_fails(self):
        adapter = _initialized(PaymobAdapter)
        signature = _paymob_signature(_paymob_payload())
        assert not adapter.verify_signature(_paymob_payload(amount_cents=1), signature)

    def test_malformed_payload_fails_closed(self):
        adapter = _initialized(PaymobAdapter)
        assert not adapter.verify_signature({"obj": {"id": 1}}, "deadbeef")

    def test_no_secret_fails_closed(self):
        adapter = _initialized(PaymobAdapter, webhook_secret=None, secret_key=None)
        payload = _paymob_payload()
        assert not adapter.verify_signature(payload, _paymob_signature(payload))


# ============================================================================
# Fawry
# ============================================================================


def _fawry_payload(status: str = "PAID") -> dict:
    return {
        "requestId": "c72827d084ea4b88949d91dd2db4996e",
        "fawryRefNumber": "970177",
        "merchantRefNumber": "TX_FAWRY_1767268800000_0a1b2c3d",
        "customerMobile": "01000000000",
        "paymentAmount": 150.0,
        "orderAmount": 150.0,
        "fawryFees": 0,
        "orderStatus": status,
        "paymentMethod": "PAYATFAWRY",
        "paymentTime": 1767268800000,
        "paymentRefrenceNumber": "24012",
    }


class TestFawryAdapter:
    """Tests for Fawry notifications."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("PAID", PaymentStatus.SUCCESS),
            ("NEW", PaymentStatus.PENDING),
            ("UNPAID", PaymentStatus.PENDING),
            ("EXPIRED", PaymentStatus.CANCELLED),
            ("REFUNDED", PaymentStatus.CANCELLED),
            ("FAILED", PaymentStatus.FAILED),
            ("SOMETHING_NEW", PaymentStatus.FAILED),
        ],
    )
    async def test_status_mapping(self, raw: str, expected: PaymentStatus):
        adapter = _initialized(FawryAdapter)
        result = await adapter.handle_callback(_fawry_payload(raw), {})
        assert result.status == expected

    @pytest.mark.asyncio
    async def test_callback_fields(self):
        adapter = _initialized(FawryAdapter)
        result = await adapter.handle_callback(_fawry_payload(), {})
        assert result.transaction_id == "TX_FAWRY_1767268800000_0a1b2c3d"
        assert result.gateway_reference == "970177"
        assert result.amount == Decimal("150.0")
        assert result.paid_at == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def test_signature(self):
        """SHA-256 over the fields plus the merchant key, amounts with two decimals."""
        adapter = _initialized(FawryAdapter)
        payload = _fawry_payload()
        message = "970177TX_FAWRY_1767268800000_0a1b2c3d150.00150.00PAIDPAYATFAWRY24012"
        signature = hashlib.sha256((message + WEBHOOK_SECRET).encode()).hexdigest()
        assert adapter.verify_signature(payload, signature)
        assert not adapter.verify_signature(_fawry_payload("NEW"), signature)

    def test_signature_uses_secret_key_without_webhook_secret(self):
        adapter = _initialized(FawryAdapter, webhook_secret=None)
        message = "970177TX_FAWRY_1767268800000_0a1b2c3d150.00150.00PAIDPAYATFAWRY24012"
        signature = hashlib.sha256((message + SECRET_KEY).encode()).hexdigest()
        assert adapter.verify_signature(_fawry_payload(), signature)

    def test_non_numeric_amount_fails_closed(self):
        adapter = _initialized(FawryAdapter)
        payload = _fawry_payload()
        payload["paymentAmount"] = "abc"
        assert not adapter.verify_signature(payload, "0" * 64)


# ============================================================================
# PayTabs
# ============================================================================


class TestPayTabsAdapter:
    """Tests for PayTabs IPN handling."""

    def _payload(self, status: str = "A") -> dict:
        return {
            "tran_ref": "TST2401500000001",
            "cart_id": "TX_PAYTABS_1767268800000_0a1b2c3d",
            "cart_currency": "AED",
            "cart_amount": "150.00",
            "payment_result": {
                "response_status": status,
                "response_message": "Authorised",
                "transaction_time": "2026-01-01T12:00:00Z",
            },
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("A", PaymentStatus.SUCCESS),
            ("H", PaymentStatus.PENDING),
            ("P", PaymentStatus.PENDING),
            ("V", PaymentStatus.CANCELLED),
            ("D", PaymentStatus.FAILED),
            ("E", PaymentStatus.FAILED),
            ("Z", PaymentStatus.FAILED),
        ],
    )
    async def test_status_mapping(self, raw: str, expected: PaymentStatus):
        adapter = _initialized(PayTabsAdapter)
        result = await adapter.handle_callback(self._payload(raw), {})
        assert result.status == expected
        assert result.currency == Currency.AED

    @pytest.mark.asyncio
    async def test_return_page_field_names(self):
        """Return-page posts use camelCase keys."""
        adapter = _initialized(PayTabsAdapter)
        result = await adapter.handle_callback(
            {"cartId": "TX_PAYTABS_1_a", "tranRef": "TST1", "respStatus": "A"}, {}
        )
        assert result.transaction_id == "TX_PAYTABS_1_a"
        assert result.gateway_reference == "TST1"
        assert result.status == PaymentStatus.SUCCESS

    def test_signature_over_sorted_fields(self):
        adapter = _initialized(PayTabsAdapter)
        payload = {
            "cartId": "TX_PAYTABS_1_a",
            "tranRef": "TST1",
            "respStatus": "A",
            "respMessage": "Authorised",
            "customerEmail": "",
        }
        expected = _hmac256(
            urlencode(
                [
                    ("cartId", "TX_PAYTABS_1_a"),
                    ("respMessage", "Authorised"),
                    ("respStatus", "A"),
                    ("tranRef", "TST1"),
                ]
            )
        )
        assert adapter.verify_signature({**payload, "signature": expected}, expected)

    def test_empty_payload_fails_closed(self):
        adapter = _initialized(PayTabsAdapter)
        assert not adapter.verify_signature({}, "abc")


# ============================================================================
# HyperPay
# ============================================================================


class TestHyperPayAdapter:
    """Tests for HyperPay result codes and notifications."""

    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            ("000.000.000", PaymentStatus.SUCCESS),
            ("000.100.110", PaymentStatus.SUCCESS),
            ("000.400.110", PaymentStatus.SUCCESS),
            ("000.400.000", PaymentStatus.PENDING),
            ("000.200.000", PaymentStatus.PENDING),
            ("800.400.500", PaymentStatus.PENDING),
            ("100.396.101", PaymentStatus.CANCELLED),
            ("800.100.151", PaymentStatus.FAILED),
            ("", PaymentStatus.FAILED),
        ],
    )
    def test_result_codes(self, code: str, expected: PaymentStatus):
        assert map_result_code(code) == expected

    def _payload(self, code: str = "000.100.110") -> dict:
        return {
            "type": "PAYMENT",
            "payload": {
                "id": "8ac7a4a18c1d",
                "merchantTransactionId": "TX_HYPERPAY_1767268800000_0a1b2c3d",
                "amount": "150.00",
                "currency": "SAR",
                "result": {"code": code, "description": "Request successfully processed"},
                "timestamp": "2026-01-01 12:00:00+0000",
            },
        }

    @pytest.mark.asyncio
    async def test_wrapped_notification(self):
        adapter = _initialized(HyperPayAdapter)
        result = await adapter.handle_callback(self._payload(), {})
        assert result.transaction_id == "TX_HYPERPAY_1767268800000_0a1b2c3d"
        assert result.status == PaymentStatus.SUCCESS
        assert result.gateway_reference == "8ac7a4a18c1d"

    def test_signature(self):
        adapter = _initialized(HyperPayAdapter)
        expected = _hmac256(
            "8ac7a4a18c1d|TX_HYPERPAY_1767268800000_0a1b2c3d|150.00|SAR|000.100.110"
        )
        assert adapter.verify_signature(self._payload(), expected)
        assert not adapter.verify_signature(self._payload("800.100.151"), expected)


# ============================================================================
# STC Pay
# ============================================================================


class TestStcPayAdapter:
    """Tests for STC Pay notifications."""

    def _payload(self, status) -> dict:
        return {
            "RefNum": "TX_STCPAY_1767268800000_0a1b2c3d",
            "STCPayRefNum": "STC123",
            "Amount": "150.00",
            "PaymentStatus": status,
            "PaymentDate": "2026-01-01T12:00:00",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (1, PaymentStatus.PENDING),
            (2, PaymentStatus.SUCCESS),
            (3, PaymentStatus.CANCELLED),
            (4, PaymentStatus.CANCELLED),
            ("Paid", PaymentStatus.SUCCESS),
            (9, PaymentStatus.FAILED),
        ],
    )
    async def test_status_mapping(self, raw, expected: PaymentStatus):
        adapter = _initialized(StcPayAdapter)
        result = await adapter.handle_callback(self._payload(raw), {})
        assert result.status == expected
        assert result.currency == Currency.SAR

    def test_signature(self):
        adapter = _initialized(StcPayAdapter)
        expected = _hmac256("TX_STCPAY_1767268800000_0a1b2c3dSTC123150.002")
        assert adapter.verify_signature(self._payload(2), expected)


# ============================================================================
# mada
# ============================================================================


class TestMadaAdapter:
    """Tests for mada notifications."""

    def _payload(self, status: str = "APPROVED") -> dict:
        return {
            "merchantId": "merchant_test",
            "orderId": "TX_MADA_1767268800000_0a1b2c3d",
            "transactionId": "MADA-998877",
            "amount": "150.00",
            "currency": "SAR",
            "status": status,
            "timestamp": "2026-01-01T12:00:00Z",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("APPROVED", PaymentStatus.SUCCESS),
            ("captured", PaymentStatus.SUCCESS),
            ("AUTHORIZED", PaymentStatus.PENDING),
            ("REVERSED", PaymentStatus.CANCELLED),
            ("DECLINED", PaymentStatus.FAILED),
            ("UNKNOWN", PaymentStatus.FAILED),
        ],
    )
    async def test_status_mapping(self, raw: str, expected: PaymentStatus):
        adapter = _initialized(MadaAdapter)
        result = await adapter.handle_callback(self._payload(raw), {})
        assert result.status == expected

    def test_signature(self):
        adapter = _initialized(MadaAdapter)
        message = "merchant_testTX_MADA_1767268800000_0a1b2c3d150.00SARAPPROVED"
        expected = hashlib.sha256((message + WEBHOOK_SECRET).encode()).hexdigest()
        assert adapter.verify_signature(self._payload(), expected)
        assert not adapter.verify_signature(self._payload(), "")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["NaN", "Infinity"])
    async def test_non_finite_amount(self, amount: str):
        adapter = _initialized(MadaAdapter)
        result = await adapter.handle_callback({**self._payload(), "amount": amount}, {})
        assert result.status == PaymentStatus.SUCCESS
        assert result.amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_out_of_range_timestamp(self):
        adapter = _initialized(MadaAdapter)
        result = await adapter.handle_callback({**self._payload(), "timestamp": 10**20}, {})
        assert result.status == PaymentStatus.SUCCESS
        assert result.paid_at is None
