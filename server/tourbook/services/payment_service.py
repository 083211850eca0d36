"""Payment service: payment initialisation and provider outcomes."""

import logging
from typing import NamedTuple, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BusinessRuleViolationError, ErrorKind, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..core.principal import Principal
from ..core.result import Ok, Result, capture
from ..models.booking import Booking, BookingStatus
from ..models.payment import Payment, PaymentProvider, PaymentStatus
from ..schemas.payment import InitializePaymentRequest
from ..validation.business_rules import validate_payment
from .booking_service import BookingService

logger = logging.getLogger(__name__)


class AppliedOutcome(NamedTuple):
    """Payment after an outcome was applied, with the booking it settles."""

    payment: Payment
    booking: Booking
    confirmation: Optional[Result[Booking]] = None


CHECKOUT_URLS = {
    PaymentProvider.STRIPE: "https://checkout.stripe.com/pay/{payment_id}",
    PaymentProvider.PAYSTACK: "https://checkout.paystack.com/pay/{payment_id}",
    PaymentProvider.FLUTTERWAVE: "https://checkout.flutterwave.com/pay/{payment_id}",
}


class PaymentService:
    """Service for payment operations."""

    @staticmethod
    def checkout_url(payment: Payment) -> Optional[str]:
        """Hosted checkout page for a payment still awaiting its outcome."""
        if PaymentStatus(payment.status) is not PaymentStatus.PENDING:
            return None
        return CHECKOUT_URLS[PaymentProvider(payment.provider)].format(payment_id=payment.id)

    def __init__(self, db: AsyncSession):
        self.db = db
        self.booking_service = BookingService(db)

    async def initialize_payment(self, principal: Principal, request: InitializePaymentRequest) -> Payment:
        """
        Start a payment for the full price of a PENDING booking.

        Args:
            principal: Caller, must own the booking or be an administrator
            request: Payment initialisation request

        Returns:
            Created payment entity in PENDING state

        Raises:
            NotFoundError: If booking not found
            PermissionDeniedError: If the caller may not see the booking
            BusinessRuleViolationError: If the booking is not PENDING
            ValidationError: If currency or method/provider pairing is unsupported
        """
        booking = await self.booking_service.get_booking(request.booking_id, principal)

        if BookingStatus(booking.status) is not BookingStatus.PENDING:
            raise BusinessRuleViolationError(
                f"Booking {booking.id} is {BookingStatus(booking.status).value} and cannot be paid",
                rule="payment_pending_booking",
            )

        currency = request.currency.upper()
        validate_payment(booking.total_price, currency, request.method, request.provider)

        payment = Payment(
            booking_id=booking.id,
            amount=booking.total_price,
            currency=currency,
            method=request.method.value,
            provider=request.provider.value,
            status=PaymentStatus.PENDING.value,
        )

        self.db.add(payment)
        await self.db.commit()
        await self.db.refresh(payment)

        logger.info(
            "Payment initialized",
            extra={
                "payment_id": str(payment.id),
                "booking_id": str(booking.id),
                "amount": str(payment.amount),
                "currency": payment.currency,
                "provider": payment.provider,
            }
        )

        return payment

    async def record_outcome(
        self,
        payment_id: UUID,
        status: PaymentStatus,
        provider: Optional[PaymentProvider] = None,
        provider_transaction_id: Optional[str] = None,
    ) -> AppliedOutcome:
        """
        Apply a provider's verdict to a payment and its booking.

        SUCCESS confirms the booking; FAILED leaves it PENDING. A payment that
        already left PENDING is returned unchanged so redelivered callbacks
        have no effect. A failed confirmation does not undo the recorded
        payment status; it is reported through ``AppliedOutcome.confirmation``.

        Raises:
            NotFoundError: If the payment or its booking is missing
            ValidationError: If ``status`` is PENDING or ``provider`` does not match
        """
        status = PaymentStatus(status)
        if status is PaymentStatus.PENDING:
            raise ValidationError("Payment outcome must be SUCCESS or FAILED", errors={"status": status.value})

        payment = await self.get_payment_by_id_or_raise(payment_id)

        if provider is not None and PaymentProvider(provider) is not PaymentProvider(payment.provider):
            logger.warning(
                "Payment outcome rejected - provider mismatch",
                extra={
                    "payment_id": str(payment_id),
                    "expected_provider": payment.provider,
                    "reported_provider": PaymentProvider(provider).value,
                }
            )
            raise ValidationError(
                "Provider mismatch",
                errors={"provider": PaymentProvider(provider).value, "expected": payment.provider},
            )

        if PaymentStatus(payment.status) is not PaymentStatus.PENDING:
            logger.info(
                "Payment outcome already applied",
                extra={"payment_id": str(payment_id), "status": payment.status}
            )
            booking = await self.booking_service.get_booking_by_id_or_raise(payment.booking_id)
            return AppliedOutcome(payment=payment, booking=booking)

        payment.status = status.value
        if provider_transaction_id:
            payment.provider_transaction_id = provider_transaction_id
        self.db.add(payment)
        await self.db.commit()

        metrics_collector.record_payment_outcome(payment.provider, status.value)
        booking_id = payment.booking_id

        confirmation: Optional[Result[Booking]] = None
        if status is PaymentStatus.SUCCESS:
            confirmation = await capture(self.booking_service.confirm_booking(booking_id))
            self._log_confirmation(payment_id, booking_id, confirmation)
        else:
            logger.info(
                "Payment failed - booking left pending",
                extra={"payment_id": str(payment_id), "booking_id": str(booking_id)}
            )

        payment = await self.get_payment_by_id_or_raise(payment_id)
        booking = await self.booking_service.get_booking_by_id_or_raise(booking_id)
        return AppliedOutcome(payment=payment, booking=booking, confirmation=confirmation)

    def _log_confirmation(self, payment_id: UUID, booking_id: UUID, confirmation: Result[Booking]) -> None:
        context = {"payment_id": str(payment_id), "booking_id": str(booking_id)}

        if isinstance(confirmation, Ok):
            logger.info("Booking confirmed by payment", extra=context)
            return

        context["error"] = confirmation.message

        if confirmation.kind is ErrorKind.CAPACITY_EXCEEDED:
            # Paid but no slots left: booking stays PENDING for a refund or manual move
            logger.error("Paid booking could not be confirmed - capacity exceeded", extra=context)
        elif confirmation.kind is ErrorKind.IDEMPOTENCY_VIOLATION:
            logger.info("Paid booking was already confirmed", extra=context)
        else:
            logger.warning(
                "Paid booking could not be confirmed",
                extra={**context, "kind": confirmation.kind.value}
            )

    async def get_payment_by_id(self, payment_id: UUID) -> Payment | None:
        """Get payment by ID."""
        stmt = (
            select(Payment)
            .where(Payment.id == payment_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_payment_by_id_or_raise(self, payment_id: UUID) -> Payment:
        """Get payment by ID or raise NotFoundError."""
        payment = await self.get_payment_by_id(payment_id)
        if not payment:
            logger.warning(
                "Payment not found",
                extra={"payment_id": str(payment_id)}
            )
            raise NotFoundError(
                resource_type="payment",
                resource_id=str(payment_id)
            )
        return payment
