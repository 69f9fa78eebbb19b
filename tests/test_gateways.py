"""Tests for payment gateway signing and callback verification"""

import hashlib
import hmac
import json
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from app.errors import GatewayError, UnsupportedPaymentMethod
from app.payments.gateways import (
    CallbackOutcome,
    CashGateway,
    MomoGateway,
    ReconciliationResult,
    VNPayGateway,
    ZaloPayGateway,
    get_payment_gateway,
)
from app.payments.gateways.vnpay import build_query

PAYMENT_ID = "5f0c2a9e-8a57-4a43-9f0e-0c1b2d3e4f50"


def _hmac(key, data, digest=hashlib.sha256):
    return hmac.new(key.encode(), data.encode(), digest).hexdigest()


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# VNPay

@pytest.fixture
def vnpay():
    return VNPayGateway(
        tmn_code="TESTTMN1",
        hash_secret="vnpay-secret",
        payment_url="https://sandbox.vnpay.test/pay",
        return_url="http://localhost:3000/return",
    )


def test_build_query_sorts_and_encodes_spaces_as_plus():
    query = build_query({"vnp_OrderInfo": "Bill payment - 2 orders", "vnp_Amount": 9900000})

    assert query == "vnp_Amount=9900000&vnp_OrderInfo=Bill+payment+-+2+orders"


@pytest.mark.asyncio
async def test_vnpay_payment_url_is_signed(vnpay):
    now = datetime(2026, 1, 1, 3, 0, 0, tzinfo=timezone.utc)
    transaction = await vnpay.create_payment(
        PAYMENT_ID, 99000, {"order_info": "Bill payment - 2 orders", "now": now}
    )

    assert transaction.transaction_id == PAYMENT_ID
    url = urlsplit(transaction.payment_url)
    assert f"{url.scheme}://{url.netloc}{url.path}" == "https://sandbox.vnpay.test/pay"

    signed_part, secure_hash = url.query.rsplit("&vnp_SecureHash=", 1)
    assert secure_hash == _hmac("vnpay-secret", signed_part, hashlib.sha512)
    assert "vnp_OrderInfo=Bill+payment+-+2+orders" in signed_part

    params = {key: values[0] for key, values in parse_qs(url.query).items()}
    assert params["vnp_Amount"] == "9900000"
    assert params["vnp_TxnRef"] == PAYMENT_ID
    assert params["vnp_TmnCode"] == "TESTTMN1"
    # GMT+7 local time, 15 minute expiry
    assert params["vnp_CreateDate"] == "20260101100000"
    assert params["vnp_ExpireDate"] == "20260101101500"


def _vnpay_callback(gateway, **overrides):
    params = {
        "vnp_Amount": "9900000",
        "vnp_BankCode": "NCB",
        "vnp_OrderInfo": "Bill payment - 2 orders",
        "vnp_ResponseCode": "00",
        "vnp_TmnCode": "TESTTMN1",
        "vnp_TransactionNo": "14000001",
        "vnp_TxnRef": PAYMENT_ID,
    }
    params.update(overrides)
    params["vnp_SecureHash"] = gateway.sign(params)
    params["vnp_SecureHashType"] = "HmacSHA512"
    return params


def test_vnpay_verify_callback(vnpay):
    payload = _vnpay_callback(vnpay)

    assert vnpay.verify_callback(payload)
    # verification works on a copy
    assert "vnp_SecureHash" in payload


def test_vnpay_verify_is_case_insensitive_on_hash(vnpay):
    payload = _vnpay_callback(vnpay)
    payload["vnp_SecureHash"] = payload["vnp_SecureHash"].upper()

    assert vnpay.verify_callback(payload)


def test_vnpay_tampered_callback_fails(vnpay):
    payload = _vnpay_callback(vnpay)
    payload["vnp_Amount"] = "100"

    assert not vnpay.verify_callback(payload)


def test_vnpay_missing_hash_fails(vnpay):
    payload = _vnpay_callback(vnpay)
    del payload["vnp_SecureHash"]

    assert not vnpay.verify_callback(payload)


def test_vnpay_wrong_secret_fails(vnpay):
    other = VNPayGateway(tmn_code="TESTTMN1", hash_secret="other-secret")

    assert not other.verify_callback(_vnpay_callback(vnpay))


def test_vnpay_non_vnp_fields_are_not_signed(vnpay):
    payload = _vnpay_callback(vnpay)
    payload["utm_source"] = "email"

    assert vnpay.verify_callback(payload)


def test_vnpay_parse_callback(vnpay):
    result = vnpay.parse_callback(_vnpay_callback(vnpay))
    assert result.status == "completed"
    assert result.gateway_trans_id == "14000001"
    assert result.amount == 99000

    failed = vnpay.parse_callback(_vnpay_callback(vnpay, vnp_ResponseCode="24"))
    assert failed.status == "failed"
    assert "24" in failed.failed_reason


@pytest.mark.parametrize(
    "outcome, code",
    [
        (CallbackOutcome.SUCCESS, "00"),
        (CallbackOutcome.FAILED, "00"),
        (CallbackOutcome.DUPLICATE, "00"),
        (CallbackOutcome.BAD_SIGNATURE, "97"),
        (CallbackOutcome.NOT_FOUND, "01"),
        (CallbackOutcome.AMOUNT_MISMATCH, "04"),
    ],
)
def test_vnpay_acknowledgement_codes(vnpay, outcome, code):
    ack = vnpay.acknowledge(ReconciliationResult(outcome=outcome))

    assert ack.status_code == 200
    assert ack.body["RspCode"] == code


# MoMo

MOMO_KEYS = {"partner_code": "MOMOTEST", "access_key": "momo-access", "secret_key": "momo-secret"}


@pytest.mark.asyncio
async def test_momo_create_payment_signs_request():
    captured = {}

    def handler(request):
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "resultCode": 0,
                "message": "Success",
                "payUrl": "https://test-payment.momo.vn/pay/abc",
                "qrCodeUrl": "momo://qr/abc",
            },
        )

    async with _client(handler) as http_client:
        gateway = MomoGateway(endpoint="https://momo.test/create", http_client=http_client, **MOMO_KEYS)
        transaction = await gateway.create_payment(PAYMENT_ID, 120000, {"order_info": "Bill"})

    body = captured["body"]
    raw = (
        f"accessKey=momo-access&amount=120000&extraData={body['extraData']}"
        f"&ipnUrl={body['ipnUrl']}&orderId={PAYMENT_ID}&orderInfo=Bill"
        f"&partnerCode=MOMOTEST&redirectUrl={body['redirectUrl']}"
        f"&requestId={PAYMENT_ID}&requestType=captureWallet"
    )
    assert body["signature"] == _hmac("momo-secret", raw)
    assert body["orderId"] == PAYMENT_ID
    assert transaction.payment_url == "https://test-payment.momo.vn/pay/abc"
    assert transaction.qr_code == "momo://qr/abc"


@pytest.mark.asyncio
async def test_momo_rejected_create_raises():
    def handler(request):
        return httpx.Response(200, json={"resultCode": 13, "message": "Merchant authentication failed"})

    async with _client(handler) as http_client:
        gateway = MomoGateway(http_client=http_client, **MOMO_KEYS)
        with pytest.raises(GatewayError) as exc_info:
            await gateway.create_payment(PAYMENT_ID, 120000)

    assert exc_info.value.result_code == "13"
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_momo_http_error_raises():
    def handler(request):
        return httpx.Response(503, text="unavailable")

    async with _client(handler) as http_client:
        gateway = MomoGateway(http_client=http_client, **MOMO_KEYS)
        with pytest.raises(GatewayError):
            await gateway.create_payment(PAYMENT_ID, 120000)


def _momo_ipn(secret="momo-secret", **overrides):
    payload = {
        "partnerCode": "MOMOTEST",
        "orderId": PAYMENT_ID,
        "requestId": PAYMENT_ID,
        "amount": 120000,
        "orderInfo": "Bill",
        "orderType": "momo_wallet",
        "transId": 4088878653,
        "resultCode": 0,
        "message": "Successful.",
        "payType": "qr",
        "responseTime": 1767225600000,
        "extraData": "",
    }
    payload.update(overrides)
    raw = (
        f"accessKey=momo-access&amount={payload['amount']}&extraData={payload['extraData']}"
        f"&message={payload['message']}&orderId={payload['orderId']}&orderInfo={payload['orderInfo']}"
        f"&orderType={payload['orderType']}&partnerCode={payload['partnerCode']}"
        f"&payType={payload['payType']}&requestId={payload['requestId']}"
        f"&responseTime={payload['responseTime']}&resultCode={payload['resultCode']}"
        f"&transId={payload['transId']}"
    )
    payload["signature"] = _hmac(secret, raw)
    return payload


def test_momo_verify_ipn():
    gateway = MomoGateway(**MOMO_KEYS)

    assert gateway.verify_callback(_momo_ipn())
    assert not gateway.verify_callback(_momo_ipn(secret="wrong"))

    tampered = _momo_ipn()
    tampered["amount"] = 1000
    assert not gateway.verify_callback(tampered)


def test_momo_parse_and_correlate():
    gateway = MomoGateway(**MOMO_KEYS)

    assert gateway.correlation_id(_momo_ipn()) == PAYMENT_ID
    result = gateway.parse_callback(_momo_ipn())
    assert result.status == "completed"
    assert result.gateway_trans_id == "4088878653"

    failed = gateway.parse_callback(_momo_ipn(resultCode=1006, message="Transaction denied by user."))
    assert failed.status == "failed"
    assert failed.failed_reason == "Transaction denied by user."


def test_momo_acknowledgements():
    gateway = MomoGateway(**MOMO_KEYS)

    assert gateway.acknowledge(ReconciliationResult(CallbackOutcome.BAD_SIGNATURE)).status_code == 400
    assert gateway.acknowledge(ReconciliationResult(CallbackOutcome.NOT_FOUND)).status_code == 404
    ack = gateway.acknowledge(
        ReconciliationResult(CallbackOutcome.SUCCESS, payment_id=PAYMENT_ID, payment_status="completed")
    )
    assert ack.body == {"status": "completed", "payment_id": PAYMENT_ID}


# ZaloPay

ZALOPAY_KEYS = {"app_id": "2553", "key1": "zalo-key1", "key2": "zalo-key2"}


@pytest.mark.asyncio
async def test_zalopay_create_order_mac():
    captured = {}

    def handler(request):
        captured["form"] = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        return httpx.Response(
            200,
            json={
                "return_code": 1,
                "return_message": "Giao dịch thành công",
                "order_url": "https://qcgateway.zalopay.vn/openinapp?order=abc",
                "qr_code": "00020101021226520010vn.zalopay",
            },
        )

    now = datetime(2026, 1, 1, 18, 0, 0, tzinfo=timezone.utc)  # already Jan 2 in GMT+7
    async with _client(handler) as http_client:
        gateway = ZaloPayGateway(http_client=http_client, **ZALOPAY_KEYS)
        transaction = await gateway.create_payment(PAYMENT_ID, 150000, {"now": now})

    form = captured["form"]
    assert form["app_trans_id"] == "260102_" + PAYMENT_ID.replace("-", "")
    raw = "|".join(
        [form["app_id"], form["app_trans_id"], form["app_user"], form["amount"],
         form["app_time"], form["embed_data"], form["item"]]
    )
    assert form["mac"] == _hmac("zalo-key1", raw)
    assert json.loads(form["embed_data"])["payment_id"] == PAYMENT_ID
    assert transaction.transaction_id == form["app_trans_id"]
    assert transaction.payment_url.startswith("https://qcgateway.zalopay.vn")
    assert transaction.qr_code


@pytest.mark.asyncio
async def test_zalopay_rejected_create_raises():
    def handler(request):
        return httpx.Response(200, json={"return_code": 2, "return_message": "Giao dịch thất bại"})

    async with _client(handler) as http_client:
        gateway = ZaloPayGateway(http_client=http_client, **ZALOPAY_KEYS)
        with pytest.raises(GatewayError):
            await gateway.create_payment(PAYMENT_ID, 150000)


def _zalopay_callback(key="zalo-key2", **data_overrides):
    data = {
        "app_id": 2553,
        "app_trans_id": "260101_" + PAYMENT_ID.replace("-", ""),
        "amount": 150000,
        "embed_data": json.dumps({"payment_id": PAYMENT_ID, "redirecturl": "http://localhost"}),
        "zp_trans_id": 260101000000123,
    }
    data.update(data_overrides)
    encoded = json.dumps(data)
    return {"data": encoded, "mac": _hmac(key, encoded), "type": 1}


def test_zalopay_verify_callback():
    gateway = ZaloPayGateway(**ZALOPAY_KEYS)

    assert gateway.verify_callback(_zalopay_callback())
    assert not gateway.verify_callback(_zalopay_callback(key="zalo-key1"))
    assert not gateway.verify_callback({"data": None, "mac": "abc"})


def test_zalopay_parse_and_correlate():
    gateway = ZaloPayGateway(**ZALOPAY_KEYS)
    payload = _zalopay_callback()

    assert gateway.correlation_id(payload) == PAYMENT_ID
    result = gateway.parse_callback(payload)
    assert result.status == "completed"
    assert result.gateway_trans_id == "260101000000123"

    assert gateway.parse_callback(_zalopay_callback(status=2)).status == "failed"


def test_zalopay_acknowledgements():
    gateway = ZaloPayGateway(**ZALOPAY_KEYS)

    assert gateway.acknowledge(ReconciliationResult(CallbackOutcome.BAD_SIGNATURE)).body == {
        "return_code": -1,
        "return_message": "mac not equal",
    }
    assert gateway.acknowledge(ReconciliationResult(CallbackOutcome.SUCCESS)).body["return_code"] == 1
    assert gateway.acknowledge(ReconciliationResult(CallbackOutcome.DUPLICATE)).body["return_code"] == 1


# Cash and factory

@pytest.mark.asyncio
async def test_cash_gateway():
    gateway = CashGateway()
    transaction = await gateway.create_payment(PAYMENT_ID, 50000)

    assert transaction.transaction_id.startswith("CASH-")
    assert transaction.transaction_id[5:].isdigit()
    assert transaction.payment_url is None
    assert gateway.verify_callback({"payment_id": PAYMENT_ID})


@pytest.mark.parametrize(
    "code, gateway_class",
    [("vnpay", VNPayGateway), ("MoMo", MomoGateway), ("ZALOPAY", ZaloPayGateway), ("cash", CashGateway)],
)
def test_factory_is_case_insensitive(code, gateway_class):
    assert isinstance(get_payment_gateway(code), gateway_class)


def test_factory_rejects_unknown_method():
    with pytest.raises(UnsupportedPaymentMethod):
        get_payment_gateway("paypal")


@pytest.mark.parametrize(
    "data",
    [
        "[1, 2, 3]",
        "42",
        json.dumps({"embed_data": "[\"not\", \"an\", \"object\"]"}),
        json.dumps({"embed_data": 7}),
    ],
)
def test_zalopay_callback_data_that_is_not_an_object(data):
    gateway = ZaloPayGateway(**ZALOPAY_KEYS)
    payload = {"data": data, "mac": _hmac("zalo-key2", data), "type": 1}

    assert gateway.verify_callback(payload)
    assert gateway.correlation_id(payload) is None
