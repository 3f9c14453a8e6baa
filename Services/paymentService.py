import hashlib
import hmac
import logging
import re
from datetime import datetime

from bson import ObjectId

from Models.orderModel import Order, OrderStatus, OrderPaymentStatus, PaymentDetails
from Models.paymentModel import Payment, PaymentMethod, PaymentStatus, CardDetails
from Services.orderService import append_status, load_order
from Utils.appError import NotFoundError, ValidationError, InvalidStateError, AuthInvalidError
from Utils.db import find_by_id
from Utils.identifiers import generate_transaction_id, save_with_unique_identifier
from Utils.identity import Caller, require_admin, require_owner, require_owner_or_admin
from Utils.validators import parse_enum

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("orders")

WEBHOOK_SIGNATURE_HEADER = "X-Webhook-Signature"


def _parse_card_details(raw):
    """Reduce client card data to a {last4, brand} snapshot."""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("card_details must be an object")

    last4 = raw.get("last4")
    if raw.get("number"):
        # Derive last4 from a full number, which is then dropped
        digits = re.sub(r"\D", "", str(raw["number"]))
        last4 = digits[-4:]
    if last4 is not None and not re.fullmatch(r"\d{4}", str(last4)):
        raise ValidationError("card_details.last4 must be exactly 4 digits")

    return CardDetails(
        last4=str(last4) if last4 is not None else None,
        brand=raw.get("brand")
    )


def load_payment(payment_id) -> Payment:
    payment = find_by_id(Payment, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


class PaymentService:
    """
    Payment settlement against orders.

    Payment and order are separate documents written one after the other;
    there is no transaction around the pair, so a failure between the two
    writes leaves the payment updated and the order not.
    """

    def __init__(self, webhook_secret=None):
        self.webhook_secret = webhook_secret

    # ============================
    # Settlement
    # ============================
    def process_payment(self, caller: Caller, order_id, method, card_details=None):
        """
        Settle an order in full. The charged amount is the order's current
        total; settlement is simulated and always succeeds.
        """
        payment_method = parse_enum(PaymentMethod, method, "method")
        card = _parse_card_details(card_details)

        order = load_order(order_id)
        require_owner(caller, order.user_id)

        payment = Payment(
            order_id=order.id,
            user_id=caller.user_id,
            amount=order.total_amount,
            method=payment_method,
            card_details=card,
            status=PaymentStatus.COMPLETED
        )
        save_with_unique_identifier(payment, "transaction_id", generate_transaction_id)

        order = append_status(
            order, OrderStatus.PROCESSING, "Payment received, order is being processed",
            payment_status=OrderPaymentStatus.PAID,
            payment_details=PaymentDetails(
                transaction_id=payment.transaction_id,
                payment_date=datetime.utcnow()
            )
        )

        audit_logger.info(
            f"Payment {payment.transaction_id} completed for {order.order_number} "
            f"({payment.amount:.2f} via {payment_method.value})"
        )
        return payment, order

    def retry_payment(self, caller: Caller, payment_id):
        """Re-run a failed payment. The linked order is updated only if it still exists."""
        payment = load_payment(payment_id)
        require_owner(caller, payment.user_id)

        if payment.status != PaymentStatus.FAILED:
            raise InvalidStateError("Can only retry failed payments")

        # Conditional on the status so concurrent retries count once
        updated = Payment.objects(id=payment.id, status=PaymentStatus.FAILED).update_one(
            set__status=PaymentStatus.COMPLETED,
            inc__retry_count=1,
            set__updated_at=datetime.utcnow()
        )
        if not updated:
            raise InvalidStateError("Can only retry failed payments")
        payment.reload()

        order = find_by_id(Order, payment.order_id)
        if order:
            order = append_status(
                order, OrderStatus.PROCESSING, "Payment retry successful",
                payment_status=OrderPaymentStatus.PAID
            )
        else:
            logger.warning(f"Retried payment {payment.transaction_id} has no order {payment.order_id}")

        audit_logger.info(f"Payment {payment.transaction_id} retry #{payment.retry_count} completed")
        return payment, order

    def refund_payment(self, caller: Caller, payment_id):
        """Refund a completed payment; the order keeps its fulfilment status."""
        require_admin(caller)
        payment = load_payment(payment_id)

        if payment.status != PaymentStatus.COMPLETED:
            raise InvalidStateError("Can only refund completed payments")

        updated = Payment.objects(id=payment.id, status=PaymentStatus.COMPLETED).update_one(
            set__status=PaymentStatus.REFUNDED,
            set__updated_at=datetime.utcnow()
        )
        if not updated:
            raise InvalidStateError("Can only refund completed payments")
        payment.reload()

        order = find_by_id(Order, payment.order_id)
        if order:
            order = append_status(
                order, order.status, "Payment refunded",
                payment_status=OrderPaymentStatus.REFUNDED
            )

        audit_logger.info(f"Payment {payment.transaction_id} refunded by {caller.user_id}")
        return payment, order

    # ============================
    # Webhook (trusted external callback)
    # ============================
    def verify_webhook_signature(self, payload: bytes, signature):
        """
        Check an HMAC-SHA256 hex signature of the raw body. Without a
        configured secret the callback is accepted unauthenticated.
        """
        if not self.webhook_secret:
            return
        expected = hmac.new(self.webhook_secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
        if not signature or not hmac.compare_digest(expected, str(signature)):
            raise AuthInvalidError("Invalid webhook signature")

    def webhook_update(self, transaction_id, status, failure_reason=None) -> Payment:
        """Overwrite a payment's status by transaction id. No precondition, no order update."""
        if not transaction_id:
            raise ValidationError("transaction_id is required")
        if not status:
            raise ValidationError("status is required")
        new_status = parse_enum(PaymentStatus, status, "status")

        payment = Payment.objects(transaction_id=str(transaction_id)).first()
        if not payment:
            raise NotFoundError("Payment not found")

        previous = payment.status
        payment.status = new_status
        if failure_reason is not None:
            payment.failure_reason = str(failure_reason)
        payment.save()

        audit_logger.warning(
            f"Webhook set payment {payment.transaction_id} {previous.value} → {new_status.value}"
        )
        return payment

    # ============================
    # Reads
    # ============================
    def get_payment(self, caller: Caller, payment_id) -> Payment:
        payment = load_payment(payment_id)
        require_owner_or_admin(caller, payment.user_id)
        return payment

    def list_payments_for_order(self, caller: Caller, order_id):
        """
        Payments recorded against an order, in insertion order. Access is
        decided by the payer of the first payment only, not checked per row.
        """
        if not order_id or not ObjectId.is_valid(str(order_id)):
            return []
        payments = list(Payment.objects(order_id=str(order_id)))
        if payments:
            require_owner_or_admin(caller, payments[0].user_id)
        return payments

    def payment_history(self, caller: Caller):
        return list(Payment.objects(user_id=caller.user_id).order_by("-created_at"))

    # ============================
    # Statistics
    # ============================
    def payment_statistics(self, caller: Caller) -> dict:
        require_admin(caller)
        completed = Payment.objects(status=PaymentStatus.COMPLETED)
        breakdown = Payment.objects.aggregate([
            {"$match": {"status": PaymentStatus.COMPLETED.value}},
            {"$group": {"_id": "$method", "count": {"$sum": 1}, "total": {"$sum": "$amount"}}},
            {"$sort": {"_id": 1}}
        ])
        return {
            "total_payments": Payment.objects.count(),
            "payments_by_status": {
                status.value: Payment.objects(status=status).count() for status in PaymentStatus
            },
            "total_revenue": completed.sum("amount"),
            "payment_method_breakdown": [
                {"method": row["_id"], "count": row["count"], "total": row["total"]}
                for row in breakdown
            ],
        }
