import logging
from flask import request, jsonify, current_app
from mongoengine.errors import ValidationError as DocumentValidationError
from Utils.appError import AppError
from Utils.auth_decorator import token_required, roles_required

logger = logging.getLogger(__name__)


def _orders():
    return current_app.extensions["order_service"]


def _internal_error(action, e):
    logger.exception(f"Error {action}: {str(e)}")
    return AppError(f"Error {action}", 500)


# ----------------------------------------
# Customer endpoints
# ----------------------------------------
@token_required
def create_order(caller):
    """Create a new order for the caller."""
    try:
        data = request.get_json(silent=True) or {}
        order = _orders().create_order(caller, data)

        logger.info(f"✅ Order created by {caller.user_id}: {order.order_number}")

        return jsonify({
            "success": True,
            "message": "Order created successfully",
            "data": order.to_json()
        }), 201

    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("creating order", e)


@token_required
def get_user_orders(caller):
    try:
        orders = _orders().list_orders(caller)
        return jsonify({"success": True, "data": [o.to_json() for o in orders]})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("fetching orders", e)


@token_required
def get_orders_by_status(caller, status):
    try:
        orders = _orders().list_orders_by_status(caller, status)
        return jsonify({"success": True, "data": [o.to_json() for o in orders]})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("fetching orders by status", e)


@token_required
def filter_orders(caller):
    """Filter the caller's orders by date range, amount range and status."""
    try:
        args = request.args
        orders = _orders().filter_orders(
            caller,
            start_date=args.get("start_date"),
            end_date=args.get("end_date"),
            min_amount=args.get("min_amount"),
            max_amount=args.get("max_amount"),
            status=args.get("status")
        )
        return jsonify({"success": True, "data": [o.to_json() for o in orders]})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("filtering orders", e)


@token_required
def get_order_by_id(caller, order_id):
    try:
        order = _orders().get_order(caller, order_id)
        return jsonify({"success": True, "data": order.to_json()})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("fetching order", e)


@token_required
def get_order_by_number(caller, order_number):
    try:
        order = _orders().get_order_by_number(caller, order_number)
        return jsonify({"success": True, "data": order.to_json()})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("fetching order", e)


@token_required
def get_order_timeline(caller, order_id):
    try:
        return jsonify({"success": True, "data": _orders().get_timeline(caller, order_id)})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("fetching order timeline", e)


@token_required
def get_order_receipt(caller, order_id):
    try:
        return jsonify({"success": True, "data": _orders().get_receipt(caller, order_id)})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("fetching order receipt", e)


@token_required
def reorder(caller, order_id):
    try:
        order = _orders().reorder(caller, order_id)
        logger.info(f"✅ Reorder by {caller.user_id}: {order.order_number}")
        return jsonify({
            "success": True,
            "message": "Order created successfully",
            "data": order.to_json()
        }), 201
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("reordering", e)


@token_required
def cancel_order(caller, order_id):
    try:
        order = _orders().cancel_order(caller, order_id)
        logger.info(f"Order {order.order_number} cancelled by {caller.user_id}")
        return jsonify({"success": True, "message": "Order cancelled", "data": order.to_json()})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("cancelling order", e)


# ----------------------------------------
# Admin endpoints
# ----------------------------------------
@roles_required("admin")
def update_order_status(caller, order_id):
    try:
        data = request.get_json(silent=True) or {}
        order = _orders().update_status(
            caller,
            order_id,
            data.get("status"),
            note=data.get("note"),
            tracking_number=data.get("tracking_number"),
            estimated_delivery=data.get("estimated_delivery")
        )
        return jsonify({"success": True, "message": "Order status updated", "data": order.to_json()})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("updating order status", e)


@roles_required("admin")
def bulk_update_status(caller):
    try:
        data = request.get_json(silent=True) or {}
        orders = _orders().bulk_update_status(
            caller, data.get("order_ids"), data.get("status"), note=data.get("note")
        )
        logger.info(f"Bulk status update by {caller.user_id}: {len(orders)} orders")
        return jsonify({
            "success": True,
            "message": f"{len(orders)} orders updated",
            "data": [o.to_json() for o in orders]
        })
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("bulk updating orders", e)


@roles_required("admin")
def admin_list_orders(caller):
    try:
        orders = _orders().list_all_orders(caller)
        return jsonify({"success": True, "data": [o.to_json() for o in orders]})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("fetching all orders", e)


@roles_required("admin")
def admin_order_stats(caller):
    try:
        return jsonify({"success": True, "data": _orders().order_statistics(caller)})
    except (AppError, DocumentValidationError) as e:
        raise e
    except Exception as e:
        raise _internal_error("computing order statistics", e)
