"""
eSewa ePay v2 gateway integration.

Outbound: the client posts a signed form to eSewa. The signature is
base64(HMAC-SHA256(secret, "total_amount=..,transaction_uuid=..,product_code=..")).

Inbound: eSewa redirects back with ``?data=<base64 JSON>``. The JSON carries
its own ``signed_field_names`` and ``signature``; both are recomputed and
compared in constant time, then the transaction status is confirmed against
eSewa's status-check API.
"""
import base64
import binascii
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

import httpx

from digital_menu.core.config import settings
from digital_menu.core.exceptions import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

SIGNED_FIELD_NAMES = "total_amount,transaction_uuid,product_code"
STATUS_COMPLETE = "COMPLETE"


@dataclass
class GatewayVerification:
    """Result of a verified gateway callback.

    ``response`` carries at least ``transaction_uuid`` and ``status``;
    ``decoded_data`` is the decoded callback payload (``total_amount``,
    ``transaction_code``, ...).
    """
    response: Dict[str, Any]
    decoded_data: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {"response": self.response, "decoded_data": self.decoded_data}


class PaymentGateway(Protocol):
    product_code: str

    def build_signed_payload(self, amount: Decimal, transaction_uuid: str) -> Dict[str, str]:
        ...

    def verify(self, data: str) -> GatewayVerification:
        ...


def format_amount(amount: Any) -> str:
    """Render an amount the way it is signed and posted: two decimal places."""
    return str(Decimal(str(amount)).quantize(Decimal("0.01")))


class EsewaGateway:
    """Signs payment requests for and verifies callbacks from eSewa."""

    def __init__(
        self,
        product_code: Optional[str] = None,
        secret_key: Optional[str] = None,
        payment_url: Optional[str] = None,
        status_url: Optional[str] = None,
        success_url: Optional[str] = None,
        failure_url: Optional[str] = None,
        verify_status: Optional[bool] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.product_code = product_code or settings.esewa_product_code
        self.secret_key = secret_key or settings.esewa_secret_key
        self.payment_url = payment_url or settings.esewa_payment_url
        self.status_url = status_url or settings.esewa_status_url
        self.success_url = success_url or settings.esewa_success_url
        self.failure_url = failure_url or settings.esewa_failure_url
        self.verify_status = settings.esewa_verify_status if verify_status is None else verify_status
        self._http = http_client

    def sign(self, message: str) -> str:
        digest = hmac.new(
            self.secret_key.encode(),
            message.encode(),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode()

    def build_signed_payload(self, amount: Decimal, transaction_uuid: str) -> Dict[str, str]:
        """Form fields for the eSewa checkout page."""
        total = format_amount(amount)
        message = (
            f"total_amount={total},transaction_uuid={transaction_uuid},"
            f"product_code={self.product_code}"
        )
        return {
            "amount": total,
            "tax_amount": "0",
            "product_service_charge": "0",
            "product_delivery_charge": "0",
            "total_amount": total,
            "transaction_uuid": str(transaction_uuid),
            "product_code": self.product_code,
            "success_url": self.success_url,
            "failure_url": self.failure_url,
            "signed_field_names": SIGNED_FIELD_NAMES,
            "signature": self.sign(message),
            "payment_url": self.payment_url,
        }

    def _decode(self, data: str) -> Dict[str, Any]:
        try:
            decoded = json.loads(base64.b64decode(data, validate=True).decode("utf-8"))
        except (binascii.Error, ValueError, UnicodeDecodeError):
            raise ValidationError("Invalid payment data")
        if not isinstance(decoded, dict):
            raise ValidationError("Invalid payment data")
        return decoded

    def _verify_signature(self, decoded: Dict[str, Any]) -> None:
        signed_fields = decoded.get("signed_field_names")
        signature = decoded.get("signature")
        if not signed_fields or not signature:
            raise ValidationError("Payment data is not signed")
        message = ",".join(
            f"{name}={decoded.get(name, '')}" for name in str(signed_fields).split(",")
        )
        if not hmac.compare_digest(self.sign(message), str(signature)):
            logger.warning(f"eSewa signature mismatch for {decoded.get('transaction_uuid')}")
            raise ValidationError("Invalid payment signature")

    def _check_status(self, decoded: Dict[str, Any]) -> Dict[str, Any]:
        params = {
            "product_code": self.product_code,
            "total_amount": decoded.get("total_amount"),
            "transaction_uuid": decoded.get("transaction_uuid"),
        }
        try:
            if self._http is not None:
                resp = self._http.get(self.status_url, params=params)
            else:
                resp = httpx.get(self.status_url, params=params, timeout=settings.esewa_timeout_seconds)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as e:
            logger.error(f"eSewa status check failed: {e}")
            raise ExternalServiceError("eSewa", "status check failed")
        except ValueError:
            raise ExternalServiceError("eSewa", "malformed status response")
        if not isinstance(body, dict):
            raise ExternalServiceError("eSewa", "malformed status response")
        return body

    def verify(self, data: str) -> GatewayVerification:
        decoded = self._decode(data)
        self._verify_signature(decoded)

        if decoded.get("status") != STATUS_COMPLETE:
            raise ValidationError(f"Payment not completed (status {decoded.get('status')})")

        if self.verify_status:
            response = self._check_status(decoded)
            if response.get("status") != STATUS_COMPLETE:
                raise ValidationError(f"Payment not completed (status {response.get('status')})")
        else:
            response = {
                "transaction_uuid": decoded.get("transaction_uuid"),
                "status": decoded.get("status"),
                "total_amount": decoded.get("total_amount"),
                "ref_id": decoded.get("transaction_code"),
            }
        response.setdefault("transaction_uuid", decoded.get("transaction_uuid"))
        return GatewayVerification(response=response, decoded_data=decoded)


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency; overridden in tests."""
    return EsewaGateway()
