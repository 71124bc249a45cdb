"""Tests for eSewa signing/verification and payment reconciliation onto orders."""

import base64
import hashlib
import hmac
import json
from decimal import Decimal

import httpx
import pytest

from digital_menu.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from digital_menu.models import Order, Payment
from digital_menu.services.esewa_gateway import EsewaGateway, format_amount
from digital_menu.services.order_service import OrderService
from digital_menu.services.payment_service import PaymentService

API = "/api/v1"

CALLBACK_FIELDS = "transaction_code,status,total_amount,transaction_uuid,product_code,signed_field_names"


def _callback(gateway: EsewaGateway, transaction_uuid: str, status: str = "COMPLETE", **overrides) -> str:
    """Build a ``?data=`` value the way eSewa signs its redirect."""
    payload = {
        "transaction_code": "000AWEO",
        "status": status,
        "total_amount": "540.0",
        "transaction_uuid": transaction_uuid,
        "product_code": gateway.product_code,
        "signed_field_names": CALLBACK_FIELDS,
    }
    message = ",".join(f"{name}={payload[name]}" for name in CALLBACK_FIELDS.split(","))
    payload["signature"] = gateway.sign(message)
    payload.update(overrides)
    return base64.b64encode(json.dumps(payload).encode()).decode()


@pytest.fixture
def esewa():
    return EsewaGateway(product_code="EPAYTEST", secret_key="8gBm/:&EnhH.1/q", verify_status=False)


# ============== Gateway ==============

class TestEsewaGateway:
    def test_signature_is_base64_hmac_sha256(self, esewa):
        message = "total_amount=100,transaction_uuid=11-201-13,product_code=EPAYTEST"
        digest = hmac.new(b"8gBm/:&EnhH.1/q", message.encode(), hashlib.sha256).digest()
        assert esewa.sign(message) == base64.b64encode(digest).decode()

    def test_signed_payload(self, esewa):
        payload = esewa.build_signed_payload(Decimal("540"), "12")
        assert payload["total_amount"] == "540.00"
        assert payload["transaction_uuid"] == "12"
        assert payload["signed_field_names"] == "total_amount,transaction_uuid,product_code"
        assert payload["signature"] == esewa.sign(
            "total_amount=540.00,transaction_uuid=12,product_code=EPAYTEST"
        )

    def test_format_amount(self):
        assert format_amount(Decimal("10")) == "10.00"
        assert format_amount("99.999") == "100.00"

    def test_verify_valid_callback(self, esewa):
        result = esewa.verify(_callback(esewa, "12"))
        assert result.response["transaction_uuid"] == "12"
        assert result.response["status"] == "COMPLETE"
        assert result.decoded_data["transaction_code"] == "000AWEO"

    def test_tampered_callback_rejected(self, esewa):
        with pytest.raises(ValidationError, match="signature"):
            esewa.verify(_callback(esewa, "12", total_amount="1.0"))

    def test_incomplete_callback_rejected(self, esewa):
        with pytest.raises(ValidationError, match="not completed"):
            esewa.verify(_callback(esewa, "12", status="PENDING"))

    @pytest.mark.parametrize("data", ["not base64!", base64.b64encode(b"[1, 2]").decode()])
    def test_malformed_data_rejected(self, esewa, data):
        with pytest.raises(ValidationError):
            esewa.verify(data)

    def test_status_check_confirms_payment(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["transaction_uuid"] == "12"
            return httpx.Response(200, json={"status": "COMPLETE", "ref_id": "000AWEO", "transaction_uuid": "12"})

        gateway = EsewaGateway(
            secret_key="8gBm/:&EnhH.1/q",
            verify_status=True,
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        assert gateway.verify(_callback(gateway, "12")).response["ref_id"] == "000AWEO"

    def test_status_check_not_complete(self):
        gateway = EsewaGateway(
            secret_key="8gBm/:&EnhH.1/q",
            verify_status=True,
            http_client=httpx.Client(transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"status": "PENDING"})
            )),
        )
        with pytest.raises(ValidationError):
            gateway.verify(_callback(gateway, "12"))

    def test_status_check_unreachable(self):
        gateway = EsewaGateway(
            secret_key="8gBm/:&EnhH.1/q",
            verify_status=True,
            http_client=httpx.Client(transport=httpx.MockTransport(
                lambda request: httpx.Response(503)
            )),
        )
        with pytest.raises(ExternalServiceError):
            gateway.verify(_callback(gateway, "12"))


# ============== Coordinator ==============

class TestPaymentService:
    def test_initiate_creates_pending_payment(self, db_session, gateway, test_order):
        initiated = PaymentService(db_session, gateway).initiate(test_order.id)
        assert initiated.payment.status == "pending"
        assert initiated.payment.method == "esewa"
        assert initiated.payment.amount == Decimal("540.00")
        assert initiated.signed_payload["transaction_uuid"] == str(test_order.id)

    def test_initiate_requires_order(self, db_session, gateway):
        service = PaymentService(db_session, gateway)
        with pytest.raises(ValidationError, match="orderId"):
            service.initiate(None)
        with pytest.raises(NotFoundError):
            service.initiate(404)

    def test_verify_marks_order_paid(self, db_session, gateway, test_order):
        service = PaymentService(db_session, gateway)
        service.initiate(test_order.id)
        payment = service.verify(str(test_order.id))

        assert payment.status == "paid"
        assert payment.ref_id == f"REF-{test_order.id}"
        assert payment.payment_data["response"]["status"] == "COMPLETE"

        order = db_session.get(Order, test_order.id)
        assert order.payment_status == "paid"
        assert order.payment_method == "online_payment"
        assert order.payment_transaction_id == f"REF-{test_order.id}"
        assert order.payment_date is not None

    def test_repeated_callback_is_idempotent(self, db_session, gateway, test_order):
        service = PaymentService(db_session, gateway)
        service.initiate(test_order.id)
        first = service.verify(str(test_order.id))
        second = service.verify(str(test_order.id))
        assert first.id == second.id
        assert db_session.query(Payment).count() == 1

    def test_verify_without_initiate_records_payment(self, db_session, gateway, test_order):
        payment = PaymentService(db_session, gateway).verify(str(test_order.id))
        assert payment.amount == Decimal("540.00")
        assert payment.order_id == test_order.id

    def test_failed_verification_changes_nothing(self, db_session, gateway, test_order):
        gateway.failing.add(str(test_order.id))
        service = PaymentService(db_session, gateway)
        service.initiate(test_order.id)
        with pytest.raises(ValidationError):
            service.verify(str(test_order.id))
        assert db_session.get(Order, test_order.id).payment_status == "pending"
        assert db_session.query(Payment).one().status == "pending"

    def test_verify_requires_data(self, db_session, gateway):
        with pytest.raises(ValidationError):
            PaymentService(db_session, gateway).verify(None)

    @pytest.mark.parametrize("reference", [str(10**20), "0", "abc"])
    def test_verify_rejects_unusable_reference(self, db_session, gateway, reference):
        with pytest.raises(ValidationError, match="Invalid transaction reference"):
            PaymentService(db_session, gateway).verify(reference)

    def test_status_reports_latest_payment(self, db_session, gateway, test_order):
        service = PaymentService(db_session, gateway)
        assert service.status(test_order.id).payment_status == "pending"

        service.cash(test_order.id)
        service.initiate(test_order.id)
        status = service.status(test_order.id)
        assert status.payment_method == "esewa"
        assert status.payment_id == str(test_order.id)

    def test_cash_payment(self, db_session, test_order):
        payment = PaymentService(db_session).cash(test_order.id)
        assert payment.method == "cash"
        assert payment.status == "pending"
        assert db_session.get(Order, test_order.id).payment_method == "cash"

    def test_payments_outlive_deleted_order(self, db_session, gateway, test_order):
        payment = PaymentService(db_session, gateway).initiate(test_order.id).payment
        OrderService(db_session).delete(test_order.id)
        db_session.expire_all()
        assert db_session.get(Payment, payment.id).order_id is None


# ============== HTTP ==============

class TestPaymentRoutes:
    def test_initiate(self, client, test_order):
        res = client.post(f"{API}/payments/initiate", json={"orderId": test_order.id})
        assert res.status_code == 200
        data = res.json()
        assert data["success"] is True
        assert data["orderId"] == test_order.id
        assert data["payment"]["total_amount"] == "540.00"
        assert data["payment"]["signature"] == f"signed-{test_order.id}"

    def test_initiate_missing_order_id(self, client):
        res = client.post(f"{API}/payments/initiate", json={})
        assert res.status_code == 400
        assert res.json() == {"success": False, "msg": "Please provide orderId"}

    def test_verify_and_status(self, client, test_order):
        client.post(f"{API}/payments/initiate", json={"orderId": test_order.id})

        res = client.get(f"{API}/payments/verify", params={"data": str(test_order.id)})
        assert res.status_code == 200
        data = res.json()
        assert data["order"]["payment_status"] == "paid"
        assert data["payment"]["status"] == "paid"

        res = client.get(f"{API}/payments/status/{test_order.id}")
        assert res.status_code == 200
        assert res.json() == {
            "success": True,
            "paymentStatus": "paid",
            "paymentMethod": "esewa",
            "paymentId": f"REF-{test_order.id}",
            "paymentDate": res.json()["paymentDate"],
        }
        assert res.json()["paymentDate"] is not None

    def test_verify_missing_data(self, client):
        assert client.get(f"{API}/payments/verify").status_code == 400

    def test_verify_oversized_reference(self, client):
        res = client.get(f"{API}/payments/verify", params={"data": str(10**20)})
        assert res.status_code == 400
        assert res.json() == {"success": False, "msg": "Invalid transaction reference"}

    def test_status_unknown_order(self, client):
        assert client.get(f"{API}/payments/status/999").status_code == 404

    def test_cash(self, client, test_order):
        res = client.post(f"{API}/payments/cash", json={"order_id": test_order.id})
        assert res.status_code == 200
        assert res.json()["payment"]["method"] == "cash"
        assert res.json()["payment"]["amount"] == 540.0
