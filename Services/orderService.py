import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from Models.orderModel import (
    Order, OrderItem, Address, StatusHistoryEntry,
    OrderStatus, OrderPaymentStatus, CANCELLABLE_STATUSES
)
from Models.paymentModel import PaymentMethod
from Utils.appError import NotFoundError, ValidationError, InvalidStateError
from Utils.db import find_by_id
from Utils.identifiers import generate_order_number, save_with_unique_identifier
from Utils.identity import Caller, require_admin, require_owner, require_owner_or_admin
from Utils.validators import require_number, parse_number, parse_enum, parse_datetime

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("orders")

ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")


# ----------------------------------------
# Status history
# ----------------------------------------
def append_status(order: Order, status: OrderStatus, note: str, **changes) -> Order:
    """
    Record a status transition on ``order``.

    The history entry is pushed atomically together with the new status and
    any extra field ``changes``, so concurrent transitions on the same order
    each land exactly one entry. The in-memory document is reloaded after.
    """
    now = datetime.utcnow()
    entry = StatusHistoryEntry(status=status, timestamp=now, note=note)
    updates = {f"set__{field}": value for field, value in changes.items()}
    order.update(
        push__status_history=entry,
        set__status=status,
        set__updated_at=now,
        **updates
    )
    order.reload()
    audit_logger.info(f"Order {order.order_number} → {status.value}: {note}")
    return order


def load_order(order_id) -> Order:
    order = find_by_id(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


# ----------------------------------------
# Request parsing
# ----------------------------------------
def _parse_items(raw_items):
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if not raw.get("product_id"):
            raise ValidationError(f"items[{index}].product_id is required")

        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")

        unit_price = require_number(raw, "unit_price")
        if unit_price < 0:
            raise ValidationError(f"items[{index}].unit_price cannot be negative")

        items.append(OrderItem(
            product_id=str(raw["product_id"]),
            sku=raw.get("sku"),
            name=raw.get("name"),
            quantity=quantity,
            unit_price=unit_price,
            total_price=quantity * unit_price
        ))
    return items


def _parse_address(raw, field):
    if not isinstance(raw, dict):
        raise ValidationError(f"{field} must be an object")
    return Address(**{
        key: str(raw[key]) for key in ADDRESS_FIELDS if raw.get(key) is not None
    })


def _copy_address(address):
    return Address(**address.to_json()) if address else None


def _parse_amounts(data):
    amounts = {
        "subtotal": require_number(data, "subtotal"),
        "tax": require_number(data, "tax"),
        "shipping_fee": require_number(data, "shipping_fee"),
        "discount": parse_number(data["discount"], "discount") if data.get("discount") is not None else 0.0,
    }
    for field, value in amounts.items():
        if value < 0:
            raise ValidationError(f"{field} cannot be negative")
    return amounts


class OrderService:
    """Order lifecycle: creation, status transitions, reads and statistics."""

    def __init__(self, bulk_workers: int = 4):
        self.bulk_workers = max(1, int(bulk_workers))

    # ============================
    # Creation
    # ============================
    def create_order(self, caller: Caller, data: dict) -> Order:
        """Create a pending order; the total is always computed here, never taken from input."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        items = _parse_items(data.get("items"))
        if data.get("shipping_address") is None:
            raise ValidationError("shipping_address is required")
        shipping_address = _parse_address(data["shipping_address"], "shipping_address")
        billing_address = (
            _parse_address(data["billing_address"], "billing_address")
            if data.get("billing_address") is not None else shipping_address
        )
        amounts = _parse_amounts(data)
        payment_method = (
            parse_enum(PaymentMethod, data["payment_method"], "payment_method")
            if data.get("payment_method") is not None else None
        )

        total_amount = amounts["subtotal"] + amounts["tax"] + amounts["shipping_fee"] - amounts["discount"]

        order = Order(
            user_id=caller.user_id,
            items=items,
            shipping_address=shipping_address,
            billing_address=billing_address,
            total_amount=total_amount,
            payment_method=payment_method,
            status=OrderStatus.PENDING,
            status_history=[StatusHistoryEntry(
                status=OrderStatus.PENDING,
                timestamp=datetime.utcnow(),
                note="Order created"
            )],
            **amounts
        )
        save_with_unique_identifier(order, "order_number", generate_order_number)

        audit_logger.info(f"Order {order.order_number} created by {caller.user_id} (total {total_amount:.2f})")
        return order

    def reorder(self, caller: Caller, order_id) -> Order:
        """Place a fresh order from one of the caller's own orders, dropping its discount."""
        source = load_order(order_id)
        # Owner only: admins cannot reorder on a customer's behalf
        require_owner(caller, source.user_id)

        order = Order(
            user_id=caller.user_id,
            items=[OrderItem(**item.to_json()) for item in source.items],
            shipping_address=_copy_address(source.shipping_address),
            billing_address=_copy_address(source.billing_address),
            subtotal=source.subtotal,
            tax=source.tax,
            shipping_fee=source.shipping_fee,
            discount=0.0,
            total_amount=source.subtotal + source.tax + source.shipping_fee,
            payment_method=source.payment_method,
            status=OrderStatus.PENDING,
            status_history=[StatusHistoryEntry(
                status=OrderStatus.PENDING,
                timestamp=datetime.utcnow(),
                note=f"Reordered from {source.order_number}"
            )]
        )
        save_with_unique_identifier(order, "order_number", generate_order_number)

        audit_logger.info(f"Order {order.order_number} reordered from {source.order_number} by {caller.user_id}")
        return order

    # ============================
    # Transitions
    # ============================
    def cancel_order(self, caller: Caller, order_id) -> Order:
        order = load_order(order_id)
        require_owner(caller, order.user_id)

        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidStateError(f"Cannot cancel order in current status ({order.status.value})")

        return append_status(order, OrderStatus.CANCELLED, "Order cancelled by customer")

    def update_status(self, caller: Caller, order_id, status, note=None,
                      tracking_number=None, estimated_delivery=None) -> Order:
        """
        Admin override: set any status regardless of the current one.

        Tracking number and estimated delivery are only touched when supplied;
        one history entry is written per call however many fields change.
        """
        require_admin(caller)
        new_status = parse_enum(OrderStatus, status, "status")
        changes = {}
        if tracking_number:
            changes["tracking_number"] = str(tracking_number)
        if estimated_delivery:
            changes["estimated_delivery"] = parse_datetime(estimated_delivery, "estimated_delivery")

        order = load_order(order_id)
        return append_status(order, new_status, note or f"Status updated to {new_status.value}", **changes)

    def bulk_update_status(self, caller: Caller, order_ids, status, note=None):
        """
        Apply an admin status update to many orders.

        Ids that do not resolve are skipped. Each id is an independent
        fetch-then-update, run concurrently, so a failure part way leaves
        an arbitrary subset updated.
        """
        require_admin(caller)
        if not isinstance(order_ids, list):
            raise ValidationError("order_ids must be a list")
        new_status = parse_enum(OrderStatus, status, "status")
        entry_note = note or f"Bulk status update to {new_status.value}"

        def update_one(order_id):
            order = find_by_id(Order, order_id)
            if not order:
                logger.info(f"Bulk status update skipped unknown order {order_id}")
                return None
            return append_status(order, new_status, entry_note)

        with ThreadPoolExecutor(max_workers=self.bulk_workers) as pool:
            results = list(pool.map(update_one, order_ids))

        return [order for order in results if order is not None]

    # ============================
    # Reads
    # ============================
    def get_order(self, caller: Caller, order_id) -> Order:
        order = load_order(order_id)
        require_owner_or_admin(caller, order.user_id)
        return order

    def get_order_by_number(self, caller: Caller, order_number) -> Order:
        order = Order.objects(order_number=order_number).first()
        if not order:
            raise NotFoundError("Order not found")
        require_owner_or_admin(caller, order.user_id)
        return order

    def get_timeline(self, caller: Caller, order_id) -> dict:
        return self.get_order(caller, order_id).timeline_json()

    def get_receipt(self, caller: Caller, order_id) -> dict:
        return self.get_order(caller, order_id).receipt_json()

    def list_orders(self, caller: Caller):
        return list(Order.objects(user_id=caller.user_id).order_by("-created_at"))

    def list_orders_by_status(self, caller: Caller, status):
        order_status = parse_enum(OrderStatus, status, "status")
        return list(Order.objects(user_id=caller.user_id, status=order_status).order_by("-created_at"))

    def filter_orders(self, caller: Caller, start_date=None, end_date=None,
                      min_amount=None, max_amount=None, status=None):
        """The caller's orders matching every supplied predicate."""
        query = {"user_id": caller.user_id}

        start = parse_datetime(start_date, "start_date")
        end = parse_datetime(end_date, "end_date")
        if start:
            query["created_at__gte"] = start
        if end:
            query["created_at__lte"] = end

        if min_amount not in (None, ""):
            query["total_amount__gte"] = parse_number(min_amount, "min_amount")
        if max_amount not in (None, ""):
            query["total_amount__lte"] = parse_number(max_amount, "max_amount")

        if status:
            query["status"] = parse_enum(OrderStatus, status, "status")

        return list(Order.objects(**query).order_by("-created_at"))

    def list_all_orders(self, caller: Caller):
        require_admin(caller)
        return list(Order.objects.order_by("-created_at"))

    # ============================
    # Statistics
    # ============================
    def order_statistics(self, caller: Caller) -> dict:
        require_admin(caller)
        return {
            "total_orders": Order.objects.count(),
            "orders_by_status": {
                status.value: Order.objects(status=status).count() for status in OrderStatus
            },
            "total_revenue": Order.objects(payment_status=OrderPaymentStatus.PAID).sum("total_amount"),
            "average_order_value": Order.objects.average("total_amount"),
        }
