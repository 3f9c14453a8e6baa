"""Tests for the payment settlement service."""

import hashlib
import hmac

import pytest
from bson import ObjectId

from Models.orderModel import Order, OrderStatus, OrderPaymentStatus
from Models.paymentModel import Payment, PaymentStatus, PaymentMethod
from Services.paymentService import PaymentService
from Utils.appError import (
    ValidationError, InvalidStateError, NotFoundError, ForbiddenError, AuthInvalidError
)


@pytest.fixture
def paid(payment_service, make_order, customer):
    """Scenario B: an order settled by process_payment."""
    order = make_order()
    return payment_service.process_payment(customer, order.id, "credit_card")


def _fail(payment_service, payment):
    return payment_service.webhook_update(payment.transaction_id, "failed", failure_reason="card declined")


class TestProcessPayment:
    def test_settles_order(self, paid):
        payment, order = paid
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.amount == 115
        assert payment.method == PaymentMethod.CREDIT_CARD
        assert order.payment_status == OrderPaymentStatus.PAID
        assert order.status == OrderStatus.PROCESSING
        assert len(order.status_history) == 2
        assert order.status_history[-1].note == "Payment received, order is being processed"
        assert order.payment_details.transaction_id == payment.transaction_id
        assert order.payment_details.payment_date is not None

    def test_persisted_state_consistent(self, paid):
        payment, order = paid
        stored_payment = Payment.objects.get(id=payment.id)
        stored_order = Order.objects.get(id=order.id)
        assert stored_payment.order_id == stored_order.id
        assert stored_payment.status == PaymentStatus.COMPLETED
        assert stored_order.payment_status == OrderPaymentStatus.PAID

    def test_transaction_id_format(self, paid):
        prefix, timestamp, suffix = paid[0].transaction_id.split("-")
        assert prefix == "TXN"
        assert timestamp.isdigit()
        assert suffix.isdigit() and 0 <= int(suffix) <= 9999

    def test_amount_tracks_current_total(self, payment_service, make_order, customer):
        order = make_order(subtotal=40, tax=4, shipping_fee=6, discount=10)
        payment, _ = payment_service.process_payment(customer, order.id, "gcash")
        assert payment.amount == 40

    def test_advances_from_any_status(self, payment_service, order_service, make_order, customer, admin):
        order = order_service.update_status(admin, make_order().id, "shipped")
        _, order = payment_service.process_payment(customer, order.id, "paypal")
        assert order.status == OrderStatus.PROCESSING

    def test_card_snapshot_only(self, payment_service, make_order, customer):
        payment, _ = payment_service.process_payment(
            customer, make_order().id, "debit_card",
            card_details={"number": "4111 1111 1111 1234", "brand": "visa"}
        )
        assert payment.card_details.to_json() == {"last4": "1234", "brand": "visa"}
        stored = Payment.objects.get(id=payment.id).to_mongo()
        assert dict(stored["card_details"]) == {"last4": "1234", "brand": "visa"}

    def test_bad_last4(self, payment_service, make_order, customer):
        with pytest.raises(ValidationError):
            payment_service.process_payment(
                customer, make_order().id, "credit_card", card_details={"last4": "12a"}
            )

    def test_unknown_method(self, payment_service, make_order, customer):
        with pytest.raises(ValidationError):
            payment_service.process_payment(customer, make_order().id, "bitcoin")
        assert Payment.objects.count() == 0

    def test_owner_only(self, payment_service, make_order, other_customer, admin):
        order = make_order()
        with pytest.raises(ForbiddenError):
            payment_service.process_payment(other_customer, order.id, "paypal")
        with pytest.raises(ForbiddenError):
            payment_service.process_payment(admin, order.id, "paypal")
        assert Payment.objects.count() == 0

    def test_unknown_order(self, payment_service, customer):
        with pytest.raises(NotFoundError):
            payment_service.process_payment(customer, str(ObjectId()), "paypal")


class TestRetryPayment:
    def test_retry_failed_payment(self, payment_service, paid, customer):
        payment, order = paid
        _fail(payment_service, payment)
        Order.objects(id=order.id).update_one(set__payment_status=OrderPaymentStatus.FAILED)
        history_before = len(Order.objects.get(id=order.id).status_history)

        retried, order = payment_service.retry_payment(customer, payment.id)

        assert retried.status == PaymentStatus.COMPLETED
        assert retried.retry_count == 1
        assert order.payment_status == OrderPaymentStatus.PAID
        assert order.status == OrderStatus.PROCESSING
        assert len(order.status_history) == history_before + 1
        assert order.status_history[-1].note == "Payment retry successful"

    def test_retry_count_increments_by_one_each_time(self, payment_service, paid, customer):
        payment, _ = paid
        for expected in (1, 2):
            _fail(payment_service, payment)
            retried, _ = payment_service.retry_payment(customer, payment.id)
            assert retried.retry_count == expected

    @pytest.mark.parametrize("status", ["pending", "processing", "completed", "refunded"])
    def test_only_failed_can_retry(self, payment_service, paid, customer, status):
        payment, _ = paid
        payment_service.webhook_update(payment.transaction_id, status)
        with pytest.raises(InvalidStateError):
            payment_service.retry_payment(customer, payment.id)
        assert Payment.objects.get(id=payment.id).retry_count == 0

    def test_missing_order_still_succeeds(self, payment_service, paid, customer):
        payment, order = paid
        _fail(payment_service, payment)
        Order.objects(id=order.id).delete()

        retried, linked = payment_service.retry_payment(customer, payment.id)

        assert retried.status == PaymentStatus.COMPLETED
        assert linked is None

    def test_payer_only(self, payment_service, paid, other_customer, admin):
        payment, _ = paid
        _fail(payment_service, payment)
        with pytest.raises(ForbiddenError):
            payment_service.retry_payment(other_customer, payment.id)
        with pytest.raises(ForbiddenError):
            payment_service.retry_payment(admin, payment.id)

    def test_unknown_payment(self, payment_service, customer):
        with pytest.raises(NotFoundError):
            payment_service.retry_payment(customer, str(ObjectId()))


class TestRefundPayment:
    def test_refund_keeps_fulfilment_status(self, payment_service, order_service, paid, admin):
        payment, order = paid
        order = order_service.update_status(admin, order.id, "shipped")
        history_before = len(order.status_history)

        refunded, order = payment_service.refund_payment(admin, payment.id)

        assert refunded.status == PaymentStatus.REFUNDED
        assert order.payment_status == OrderPaymentStatus.REFUNDED
        assert order.status == OrderStatus.SHIPPED
        assert len(order.status_history) == history_before + 1
        assert order.status_history[-1].status == OrderStatus.SHIPPED
        assert order.status_history[-1].note == "Payment refunded"

    @pytest.mark.parametrize("status", ["pending", "processing", "failed", "refunded"])
    def test_only_completed_can_refund(self, payment_service, paid, admin, status):
        payment, _ = paid
        payment_service.webhook_update(payment.transaction_id, status)
        with pytest.raises(InvalidStateError):
            payment_service.refund_payment(admin, payment.id)

    def test_requires_admin(self, payment_service, paid, customer):
        with pytest.raises(ForbiddenError):
            payment_service.refund_payment(customer, paid[0].id)

    def test_missing_order_tolerated(self, payment_service, paid, admin):
        payment, order = paid
        Order.objects(id=order.id).delete()
        refunded, linked = payment_service.refund_payment(admin, payment.id)
        assert refunded.status == PaymentStatus.REFUNDED
        assert linked is None


class TestWebhook:
    def test_overwrites_status_without_touching_order(self, payment_service, paid):
        payment, order = paid
        updated = payment_service.webhook_update(payment.transaction_id, "failed", failure_reason="declined")

        assert updated.status == PaymentStatus.FAILED
        assert updated.failure_reason == "declined"
        stored_order = Order.objects.get(id=order.id)
        assert stored_order.payment_status == OrderPaymentStatus.PAID
        assert len(stored_order.status_history) == len(order.status_history)

    def test_no_precondition(self, payment_service, paid):
        payment, _ = paid
        payment_service.webhook_update(payment.transaction_id, "refunded")
        assert payment_service.webhook_update(payment.transaction_id, "pending").status == PaymentStatus.PENDING

    def test_unknown_transaction(self, payment_service):
        with pytest.raises(NotFoundError):
            payment_service.webhook_update("TXN-0-0", "failed")

    def test_invalid_status(self, payment_service, paid):
        with pytest.raises(ValidationError):
            payment_service.webhook_update(paid[0].transaction_id, "paid")

    def test_signature_ignored_without_secret(self, payment_service):
        payment_service.verify_webhook_signature(b"{}", None)

    def test_signature_checked_with_secret(self):
        service = PaymentService(webhook_secret="shh")
        body = b'{"transaction_id": "TXN-1-1", "status": "failed"}'
        good = hmac.new(b"shh", body, hashlib.sha256).hexdigest()

        service.verify_webhook_signature(body, good)
        with pytest.raises(AuthInvalidError):
            service.verify_webhook_signature(body, "deadbeef")
        with pytest.raises(AuthInvalidError):
            service.verify_webhook_signature(body, None)


class TestPaymentReads:
    def test_get_payment_access(self, payment_service, paid, customer, other_customer, admin):
        payment, _ = paid
        assert payment_service.get_payment(customer, payment.id).id == payment.id
        assert payment_service.get_payment(admin, payment.id).id == payment.id
        with pytest.raises(ForbiddenError):
            payment_service.get_payment(other_customer, payment.id)

    def test_list_for_order(self, payment_service, paid, customer, other_customer, admin):
        payment, order = paid
        assert [p.id for p in payment_service.list_payments_for_order(customer, order.id)] == [payment.id]
        assert len(payment_service.list_payments_for_order(admin, str(order.id))) == 1
        with pytest.raises(ForbiddenError):
            payment_service.list_payments_for_order(other_customer, order.id)

    def test_list_for_order_gated_by_first_payment(self, payment_service, paid, customer, other_customer):
        payment, order = paid
        later = Payment(
            order_id=order.id, user_id=other_customer.user_id, amount=1,
            method=PaymentMethod.GCASH, transaction_id="TXN-1-2"
        )
        later.save()

        listed = payment_service.list_payments_for_order(customer, order.id)

        assert [p.id for p in listed] == [payment.id, later.id]
        with pytest.raises(ForbiddenError):
            payment_service.list_payments_for_order(other_customer, order.id)

    def test_list_for_order_without_payments(self, payment_service, make_order, other_customer):
        assert payment_service.list_payments_for_order(other_customer, make_order().id) == []
        assert payment_service.list_payments_for_order(other_customer, "not-an-id") == []

    def test_history_is_own_payments(self, payment_service, make_order, customer, other_customer):
        payment_service.process_payment(customer, make_order().id, "paypal")
        payment_service.process_payment(customer, make_order().id, "gcash")
        payment_service.process_payment(other_customer, make_order(caller=other_customer).id, "paypal")
        assert len(payment_service.payment_history(customer)) == 2
        assert len(payment_service.payment_history(other_customer)) == 1


class TestPaymentStatistics:
    def test_statistics(self, payment_service, make_order, customer, admin):
        first, _ = payment_service.process_payment(customer, make_order().id, "paypal")
        payment_service.process_payment(customer, make_order(subtotal=185).id, "paypal")
        payment_service.process_payment(customer, make_order(subtotal=35).id, "gcash")
        failed, _ = payment_service.process_payment(customer, make_order().id, "credit_card")
        refunded, _ = payment_service.process_payment(customer, make_order().id, "credit_card")
        payment_service.webhook_update(failed.transaction_id, "failed")
        payment_service.refund_payment(admin, refunded.id)

        stats = payment_service.payment_statistics(admin)

        assert stats["total_payments"] == 5
        assert stats["payments_by_status"] == {
            "pending": 0, "processing": 0, "completed": 3, "failed": 1, "refunded": 1
        }
        assert stats["total_revenue"] == 115 + 200 + 50
        breakdown = {row["method"]: row for row in stats["payment_method_breakdown"]}
        assert set(breakdown) == {"paypal", "gcash"}
        assert breakdown["paypal"]["count"] == 2
        assert breakdown["paypal"]["total"] == 315
        assert breakdown["gcash"] == {"method": "gcash", "count": 1, "total": 50}

    def test_requires_admin(self, payment_service, customer):
        with pytest.raises(ForbiddenError):
            payment_service.payment_statistics(customer)
