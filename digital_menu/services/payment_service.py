"""Payment Coordinator - payment records and their reconciliation onto orders.

Initiation is not idempotent: each call writes a new pending Payment. The
latest Payment (highest id) is the one reported by ``status``. Verification
updates the Payment and mirrors the result onto the Order in a single
transaction, and re-delivering the same callback is a no-op.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from digital_menu.core.exceptions import NotFoundError, ValidationError
from digital_menu.db.session import transaction
from digital_menu.models.payment import Payment, PaymentMethod
from digital_menu.models.restaurant import Order, OrderPaymentMethod, PaymentStatus
from digital_menu.schemas.common import MAX_DB_INT
from digital_menu.schemas.payment import PaymentStatusOut
from digital_menu.services.esewa_gateway import PaymentGateway

logger = logging.getLogger(__name__)


@dataclass
class InitiatedPayment:
    payment: Payment
    signed_payload: Dict[str, str]


class PaymentService:
    def __init__(self, db: Session, gateway: Optional[PaymentGateway] = None):
        self.db = db
        self.gateway = gateway

    def _get_order(self, order_id: Optional[int]) -> Order:
        if order_id is None:
            raise ValidationError("Please provide orderId")
        order = self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _latest_payment(self, order_id: int, method: Optional[str] = None) -> Optional[Payment]:
        stmt = select(Payment).where(Payment.order_id == order_id)
        if method is not None:
            stmt = stmt.where(Payment.method == method)
        return self.db.scalars(stmt.order_by(Payment.id.desc()).limit(1)).first()

    def initiate(self, order_id: Optional[int]) -> InitiatedPayment:
        order = self._get_order(order_id)
        transaction_uuid = str(order.id)
        signed_payload = self.gateway.build_signed_payload(order.total_amount, transaction_uuid)

        payment = Payment(
            order_id=order.id,
            amount=order.total_amount,
            method=PaymentMethod.ESEWA.value,
            status=PaymentStatus.PENDING.value,
            transaction_id=transaction_uuid,
        )
        with transaction(self.db):
            self.db.add(payment)
        self.db.refresh(payment)
        logger.info(f"eSewa payment {payment.id} initiated for order {order.id} ({order.total_amount})")
        return InitiatedPayment(payment=payment, signed_payload=signed_payload)

    def verify(self, data: Optional[str]) -> Payment:
        if not data:
            raise ValidationError("Missing payment data")

        verification = self.gateway.verify(data)
        transaction_uuid = verification.response.get("transaction_uuid")
        try:
            order_id = int(str(transaction_uuid))
        except ValueError:
            raise ValidationError("Invalid transaction reference")
        if not 0 < order_id <= MAX_DB_INT:
            raise ValidationError("Invalid transaction reference")
        order = self._get_order(order_id)

        decoded = verification.decoded_data
        transaction_code = decoded.get("transaction_code") or verification.response.get("ref_id")

        payment = self._latest_payment(order.id, PaymentMethod.ESEWA.value)
        if (
            payment is not None
            and payment.status == PaymentStatus.PAID.value
            and payment.ref_id == transaction_code
        ):
            logger.info(f"eSewa callback for order {order.id} already recorded")
            return payment

        now = datetime.now(timezone.utc)
        with transaction(self.db):
            if payment is None:
                amount = decoded.get("total_amount")
                payment = Payment(
                    order_id=order.id,
                    amount=Decimal(str(amount).replace(",", "")) if amount is not None else order.total_amount,
                    method=PaymentMethod.ESEWA.value,
                    transaction_id=str(order.id),
                )
                self.db.add(payment)
            payment.status = PaymentStatus.PAID.value
            payment.ref_id = transaction_code
            payment.payment_data = verification.as_dict()
            payment.payment_date = now

            order.payment_status = PaymentStatus.PAID.value
            order.payment_method = OrderPaymentMethod.ONLINE_PAYMENT.value
            order.payment_transaction_id = transaction_code
            order.payment_date = now

        self.db.refresh(payment)
        logger.info(f"eSewa payment verified for order {order.id} (ref {transaction_code})")
        return payment

    def status(self, order_id: int) -> PaymentStatusOut:
        order = self._get_order(order_id)
        payment = self._latest_payment(order.id)
        if payment is None:
            return PaymentStatusOut(
                payment_status=order.payment_status or PaymentStatus.PENDING.value,
                payment_method=order.payment_method,
            )
        return PaymentStatusOut(
            payment_status=payment.status,
            payment_method=payment.method,
            payment_id=payment.ref_id or payment.transaction_id,
            payment_date=payment.payment_date,
        )

    def cash(self, order_id: Optional[int]) -> Payment:
        """Record a cash payment. It stays pending until staff mark the order paid."""
        order = self._get_order(order_id)
        payment = Payment(
            order_id=order.id,
            amount=order.total_amount,
            method=PaymentMethod.CASH.value,
            status=PaymentStatus.PENDING.value,
        )
        with transaction(self.db):
            self.db.add(payment)
            order.payment_method = OrderPaymentMethod.CASH.value
        self.db.refresh(payment)
        logger.info(f"Cash payment {payment.id} recorded for order {order.id}")
        return payment
