# zomatify/api/routers/payments.py
import json

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from zomatify.data.database import get_db
from zomatify.domain.schemas import (
    DebugCredentialsOut,
    PaymentOrderIn,
    PaymentOrderOut,
    RefundEnvelope,
    RefundIn,
    VerifyPaymentIn,
    VerifyPaymentOut,
)
from zomatify.exceptions import (
    GatewayConfigError,
    InvalidAmountError,
    OrderNotFoundError,
    PaymentError,
    PaymentNotRefundableError,
)
from zomatify.services.order_service import OrderService
from zomatify.services.payment_service import PaymentService
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def get_service() -> PaymentService:
    return PaymentService()


def server_error(message: str, details: str | None = None) -> JSONResponse:
    body = {"error": message}
    if details:
        body["details"] = details
    return JSONResponse(body, status_code=500, headers=CORS_HEADERS)


@router.options("/order")
@router.options("/verify")
@router.options("/debug-credentials")
@router.options("/webhook")
@router.options("/refund")
def preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/order", response_model=PaymentOrderOut)
def create_payment_order(
    response: Response,
    payload: PaymentOrderIn | None = None,
    service: PaymentService = Depends(get_service),
):
    response.headers.update(CORS_HEADERS)
    try:
        return service.create_order(payload or PaymentOrderIn())
    except InvalidAmountError as e:
        raise HTTPException(status_code=400, detail=e.message, headers=CORS_HEADERS)
    except PaymentError as e:
        logger.error(f"Error creating Razorpay order: {e.message} ({e.code})")
        return server_error(e.message, e.code or "Unknown error")
    except Exception as e:
        logger.exception("Unexpected error creating Razorpay order")
        return server_error(str(e) or "Failed to create Razorpay order", type(e).__name__)


@router.post("/verify", response_model=VerifyPaymentOut)
def verify_payment(
    response: Response,
    payload: VerifyPaymentIn | None = None,
    service: PaymentService = Depends(get_service),
):
    response.headers.update(CORS_HEADERS)
    try:
        verified = service.verify_payment(payload or VerifyPaymentIn())
        return VerifyPaymentOut(verified=verified)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e), headers=CORS_HEADERS)
    except GatewayConfigError as e:
        return server_error(e.message)
    except Exception as e:
        logger.exception("Unexpected error verifying Razorpay payment")
        return server_error(str(e) or "Payment verification failed")


@router.get("/debug-credentials", response_model=DebugCredentialsOut)
def debug_credentials(
    response: Response,
    service: PaymentService = Depends(get_service),
):
    response.headers.update(CORS_HEADERS)
    try:
        return service.debug_credentials()
    except Exception as e:
        logger.exception("Error in debug-credentials")
        return server_error(str(e) or "Internal server error")


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_service),
):
    body = await request.body()

    try:
        verified = service.verify_webhook(body, request.headers.get("X-Razorpay-Signature"))
    except GatewayConfigError as e:
        return server_error(e.message)

    if not verified:
        logger.warning("Invalid Razorpay webhook signature")
        raise HTTPException(status_code=400, detail="Invalid webhook signature", headers=CORS_HEADERS)

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload", headers=CORS_HEADERS)

    try:
        OrderService(db).apply_payment_event(event)
    except Exception:
        logger.exception("Webhook processing failed")
        return server_error("Webhook processing failed")

    return JSONResponse({"status": "ok"}, headers=CORS_HEADERS)


@router.post("/refund", response_model=RefundEnvelope)
def refund_payment(
    response: Response,
    payload: RefundIn | None = None,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_service),
):
    """
    Refunds a captured payment and marks the order refunded.
    The order must exist before the gateway is asked for anything.
    """
    response.headers.update(CORS_HEADERS)
    payload = payload or RefundIn()
    orders = OrderService(db)
    try:
        if payload.payment_id and payload.order_id:
            orders.get_order(payload.order_id)
        refund = service.refund(payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e), headers=CORS_HEADERS)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message, headers=CORS_HEADERS)
    except PaymentNotRefundableError as e:
        raise HTTPException(status_code=400, detail=e.message, headers=CORS_HEADERS)
    except PaymentError as e:
        logger.error(f"Refund processing error: {e.message} ({e.code})")
        return server_error(e.message or "Failed to process refund")
    except Exception as e:
        logger.exception("Unexpected error processing refund")
        return server_error(str(e) or "Failed to process refund")

    orders.mark_refunded(payload.order_id, refund.id, refund.amount, payload.reason)
    return RefundEnvelope(refund=refund)
