"""Payment router: initialisation, outcomes and provider webhooks."""

import hashlib
import hmac
import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db
from ..core.dependencies import get_current_principal, require_role
from ..core.exceptions import AuthenticationError, ValidationError
from ..core.principal import Principal, UserRole
from ..core.result import Err
from ..models.booking import BookingStatus
from ..models.payment import PaymentProvider, PaymentStatus
from ..schemas.payment import InitializePaymentRequest, Payment, PaymentOutcome, PaymentOutcomeRequest
from ..services.notification_service import NotificationService
from ..services.payment_service import AppliedOutcome, PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/payment", tags=["payment"])

DB_DEPENDENCY = Depends(get_db)
PRINCIPAL_DEPENDENCY = Depends(get_current_principal)
STAFF_DEPENDENCY = Depends(require_role(UserRole.STAFF))


def _convert_payment_to_schema(payment_model) -> Payment:
    """Convert payment model to schema."""
    return Payment(
        id=str(payment_model.id),
        booking_id=str(payment_model.booking_id),
        amount=payment_model.amount,
        currency=payment_model.currency,
        method=payment_model.method,
        provider=payment_model.provider,
        status=payment_model.status,
        provider_transaction_id=payment_model.provider_transaction_id,
        checkout_url=PaymentService.checkout_url(payment_model),
        created_at=payment_model.created_at,
    )


def _convert_outcome_to_schema(outcome: AppliedOutcome) -> PaymentOutcome:
    error_code = None
    error_detail = None
    if isinstance(outcome.confirmation, Err):
        error_code = outcome.confirmation.kind.value
        error_detail = outcome.confirmation.message

    return PaymentOutcome(
        payment=_convert_payment_to_schema(outcome.payment),
        booking_status=BookingStatus(outcome.booking.status).value,
        error_code=error_code,
        error_detail=error_detail,
    )


def _payment_id(value: Any) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def parse_stripe_webhook(body: Dict[str, Any]) -> Optional[PaymentOutcomeRequest]:
    """Stripe charge object: ``metadata.paymentId``, ``status`` and ``id``."""
    metadata = body.get("metadata") or {}
    payment_id = _payment_id(metadata.get("paymentId"))
    if payment_id is None:
        return None

    return PaymentOutcomeRequest(
        payment_id=payment_id,
        status=PaymentStatus.SUCCESS if body.get("status") == "succeeded" else PaymentStatus.FAILED,
        provider=PaymentProvider.STRIPE,
        provider_transaction_id=body.get("id"),
    )


def parse_paystack_webhook(body: Dict[str, Any]) -> Optional[PaymentOutcomeRequest]:
    """Paystack event: ``event`` plus ``data.metadata.paymentId`` and ``data.reference``."""
    data = body.get("data") or {}
    metadata = data.get("metadata") or {}
    payment_id = _payment_id(metadata.get("paymentId"))
    if payment_id is None:
        return None

    return PaymentOutcomeRequest(
        payment_id=payment_id,
        status=PaymentStatus.SUCCESS if body.get("event") == "charge.success" else PaymentStatus.FAILED,
        provider=PaymentProvider.PAYSTACK,
        provider_transaction_id=data.get("reference"),
    )


def parse_flutterwave_webhook(body: Dict[str, Any]) -> Optional[PaymentOutcomeRequest]:
    """Flutterwave event: ``event`` plus ``data.meta.paymentId`` and ``data.flw_ref``."""
    data = body.get("data") or {}
    meta = data.get("meta") or {}
    payment_id = _payment_id(meta.get("paymentId"))
    if payment_id is None:
        return None

    return PaymentOutcomeRequest(
        payment_id=payment_id,
        status=PaymentStatus.SUCCESS if body.get("event") == "charge.completed" else PaymentStatus.FAILED,
        provider=PaymentProvider.FLUTTERWAVE,
        provider_transaction_id=data.get("flw_ref"),
    )


WEBHOOK_PARSERS: Dict[PaymentProvider, Callable[[Dict[str, Any]], Optional[PaymentOutcomeRequest]]] = {
    PaymentProvider.STRIPE: parse_stripe_webhook,
    PaymentProvider.PAYSTACK: parse_paystack_webhook,
    PaymentProvider.FLUTTERWAVE: parse_flutterwave_webhook,
}


# Header carrying the hex HMAC of the raw request body, per provider
WEBHOOK_SIGNATURES: Dict[PaymentProvider, Tuple[str, Callable[..., Any]]] = {
    PaymentProvider.STRIPE: ("Stripe-Signature", hashlib.sha256),
    PaymentProvider.PAYSTACK: ("X-Paystack-Signature", hashlib.sha512),
    PaymentProvider.FLUTTERWAVE: ("Flutterwave-Signature", hashlib.sha256),
}


def webhook_signature(provider: PaymentProvider, payload: bytes) -> str:
    """Hex HMAC of ``payload`` under the shared webhook secret."""
    _, digestmod = WEBHOOK_SIGNATURES[provider]
    return hmac.new(settings.webhook_secret.encode(), payload, digestmod).hexdigest()


def verify_webhook_signature(provider: PaymentProvider, payload: bytes, signature: Optional[str]) -> None:
    """
    Check a provider callback against its signature header.

    Raises:
        AuthenticationError: If the signature is missing or does not match
    """
    if not signature or not hmac.compare_digest(webhook_signature(provider, payload), signature.strip()):
        logger.warning("Webhook signature rejected", extra={"provider": provider.value})
        raise AuthenticationError("Invalid webhook signature")


async def _apply_outcome(request: PaymentOutcomeRequest, db: AsyncSession) -> JSONResponse:
    payment_service = PaymentService(db)
    outcome = await payment_service.record_outcome(
        request.payment_id,
        request.status,
        provider=request.provider,
        provider_transaction_id=request.provider_transaction_id,
    )
    if outcome.confirmation is not None and outcome.confirmation.ok:
        await NotificationService().booking_confirmed(outcome.booking)

    return JSONResponse(
        status_code=200,
        content=_convert_outcome_to_schema(outcome).model_dump(mode="json")
    )


@router.post("/initialize", response_model=Payment)
async def initialize_payment(
    request: InitializePaymentRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Start a payment for a PENDING booking owned by the caller."""
    payment_service = PaymentService(db)
    payment = await payment_service.initialize_payment(principal, request)
    return JSONResponse(
        status_code=201,
        content=_convert_payment_to_schema(payment).model_dump(mode="json")
    )


@router.post("/outcome", response_model=PaymentOutcome)
async def record_payment_outcome(
    request: PaymentOutcomeRequest,
    principal: Principal = STAFF_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Apply a payment outcome reported out of band. Staff only.

    SUCCESS confirms the booking. When the booking can no longer be
    confirmed the payment is still recorded and the failure is reported in
    ``error_code``.
    """
    logger.info(
        "Manual payment outcome",
        extra={"payment_id": str(request.payment_id), "status": request.status.value, "by": principal.user_id}
    )
    return await _apply_outcome(request, db)


@router.post("/webhook", response_model=PaymentOutcome)
async def payment_webhook(
    request: Request,
    provider: str = Query(..., description="STRIPE, PAYSTACK or FLUTTERWAVE"),
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Receive a signed provider callback and apply it as a payment outcome."""
    try:
        provider_enum = PaymentProvider(provider.upper())
    except ValueError as e:
        raise ValidationError("Unsupported payment provider", errors={"provider": provider}) from e

    payload = await request.body()
    header, _ = WEBHOOK_SIGNATURES[provider_enum]
    verify_webhook_signature(provider_enum, payload, request.headers.get(header))

    try:
        body = json.loads(payload)
    except ValueError as e:
        raise ValidationError("Webhook body is not valid JSON", errors={"provider": provider_enum.value}) from e

    outcome = WEBHOOK_PARSERS[provider_enum](body) if isinstance(body, dict) else None
    if outcome is None:
        logger.warning("Invalid webhook data", extra={"provider": provider_enum.value})
        raise ValidationError("Invalid webhook data", errors={"provider": provider_enum.value})

    return await _apply_outcome(outcome, db)
