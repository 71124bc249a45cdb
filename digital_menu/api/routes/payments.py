"""Payment routes - eSewa checkout, callback verification and cash."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request

from digital_menu.core.config import settings
from digital_menu.core.rate_limit import limiter
from digital_menu.db.session import DbSession
from digital_menu.schemas.common import IdPath
from digital_menu.schemas.payment import PaymentOut, PaymentRequest
from digital_menu.services.esewa_gateway import PaymentGateway, get_payment_gateway
from digital_menu.services.order_service import OrderService
from digital_menu.services.payment_service import PaymentService

router = APIRouter()

Gateway = Annotated[PaymentGateway, Depends(get_payment_gateway)]


def _payment(payment) -> dict:
    return PaymentOut.model_validate(payment).model_dump(mode="json")


@router.post("/initiate")
@limiter.limit(settings.payment_rate_limit)
def initiate_payment(request: Request, body: PaymentRequest, db: DbSession, gateway: Gateway):
    """Create a pending eSewa payment and return the signed checkout form."""
    initiated = PaymentService(db, gateway).initiate(body.order_id)
    return {
        "success": True,
        "payment": {
            "id": initiated.payment.id,
            **initiated.signed_payload,
        },
        "orderId": body.order_id,
    }


@router.get("/verify")
def verify_payment(db: DbSession, gateway: Gateway, data: Optional[str] = Query(default=None)):
    """eSewa success redirect target; ``data`` is the base64 callback payload."""
    payment = PaymentService(db, gateway).verify(data)
    order = OrderService(db).get_by_id(payment.order_id)
    return {
        "success": True,
        "msg": "Payment verified successfully",
        "order": order.model_dump(mode="json"),
        "payment": _payment(payment),
    }


@router.get("/status/{order_id}")
def get_payment_status(order_id: IdPath, db: DbSession):
    result = PaymentService(db).status(order_id)
    return {"success": True, **result.model_dump(mode="json", by_alias=True)}


@router.post("/cash")
@limiter.limit(settings.payment_rate_limit)
def process_cash_payment(request: Request, body: PaymentRequest, db: DbSession):
    payment = PaymentService(db).cash(body.order_id)
    return {
        "success": True,
        "msg": "Cash payment recorded, awaiting confirmation",
        "payment": _payment(payment),
    }
