import logging
from flask import request, jsonify, current_app
from Services.paymentService import WEBHOOK_SIGNATURE_HEADER
from mongoengine.errors import ValidationError as DocumentValidationError
from Utils.appError import AppError
from Utils.auth_decorator import token_required, roles_required

logger = logging.getLogger(__name__)


def _payments():
    return current_app.extensions["payment_service"]


def _internal_error(action, e):
    logger.exception(f"Error {action}: {str(e)}")
    return AppError(f"Error {action}", 500)


@token_required
def process_payment(caller):
    """Settle one of the caller's orders. Any client-supplied amount is ignored."""
    try:
        data = request.get_json(silent=True) or {}
        payment, order = _payments().process_payment(
            caller,
            data.get("order_id"),
            data.get("method"),
            card_details=data.get("card_details")
        )
        logger.info(f"✅ Payment {payment.transaction_id} by {caller.user_id} for {order.order_number}")
        return jsonify({
            "success": True,
            "message": "Payment processed successfully",
            "data": {"payment": payment.to_json(), "order": order.to_json()}
        })
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("processing payment", e)


@token_required
def retry_payment(caller, payment_id):
    try:
        payment, order = _payments().retry_payment(caller, payment_id)
        return jsonify({
            "success": True,
            "message": "Payment retry successful",
            "data": {
                "payment": payment.to_json(),
                "order": order.to_json() if order else None
            }
        })
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("retrying payment", e)


@token_required
def get_payment(caller, payment_id):
    try:
        payment = _payments().get_payment(caller, payment_id)
        return jsonify({"success": True, "data": payment.to_json()})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("fetching payment", e)


@token_required
def get_order_payments(caller, order_id):
    try:
        payments = _payments().list_payments_for_order(caller, order_id)
        return jsonify({"success": True, "data": [p.to_json() for p in payments]})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("fetching order payments", e)


@token_required
def get_payment_history(caller):
    try:
        payments = _payments().payment_history(caller)
        return jsonify({"success": True, "data": [p.to_json() for p in payments]})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("fetching payment history", e)


@roles_required("admin")
def refund_payment(caller, payment_id):
    try:
        payment, _ = _payments().refund_payment(caller, payment_id)
        logger.info(f"Payment {payment.transaction_id} refunded by {caller.user_id}")
        return jsonify({"success": True, "message": "Payment refunded", "data": payment.to_json()})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("refunding payment", e)


@roles_required("admin")
def admin_payment_stats(caller):
    try:
        return jsonify({"success": True, "data": _payments().payment_statistics(caller)})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("computing payment statistics", e)


# ============================
# Payment provider callback
# ============================
def payment_webhook():
    """
    Unauthenticated callback from the (simulated) payment provider.

    Only guarded by an HMAC signature when PAYMENT_WEBHOOK_SECRET is set.
    """
    try:
        service = _payments()
        service.verify_webhook_signature(
            request.get_data(), request.headers.get(WEBHOOK_SIGNATURE_HEADER)
        )
        data = request.get_json(silent=True) or {}
        service.webhook_update(
            data.get("transaction_id"),
            data.get("status"),
            failure_reason=data.get("failure_reason")
        )
        return jsonify({"success": True, "message": "Webhook processed"})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("processing webhook", e)
