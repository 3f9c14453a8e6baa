from mongoengine import (
    Document, EmbeddedDocument, StringField, IntField, FloatField,
    DateTimeField, ListField, EmbeddedDocumentField, EnumField
)
from datetime import datetime
from enum import Enum

from Models.paymentModel import PaymentMethod


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderPaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# Statuses a customer may still cancel from
CANCELLABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING)


def _iso(value):
    return value.isoformat() if value else None


class OrderItem(EmbeddedDocument):
    product_id = StringField(required=True)
    sku = StringField()
    name = StringField()
    quantity = IntField(required=True, min_value=1)
    unit_price = FloatField(required=True)
    total_price = FloatField(required=True)  # quantity * unit_price

    def to_json(self):
        return {
            'product_id': self.product_id,
            'sku': self.sku,
            'name': self.name,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'total_price': self.total_price
        }


class Address(EmbeddedDocument):
    street = StringField(max_length=200)
    city = StringField(max_length=100)
    state = StringField(max_length=100)
    zip_code = StringField(max_length=20)
    country = StringField(max_length=100)

    def to_json(self):
        return {
            'street': self.street,
            'city': self.city,
            'state': self.state,
            'zip_code': self.zip_code,
            'country': self.country
        }


class StatusHistoryEntry(EmbeddedDocument):
    status = EnumField(OrderStatus, required=True)
    timestamp = DateTimeField(default=datetime.utcnow)
    note = StringField()

    def to_json(self):
        return {
            'status': self.status.value,
            'timestamp': _iso(self.timestamp),
            'note': self.note
        }


class PaymentDetails(EmbeddedDocument):
    transaction_id = StringField()
    payment_date = DateTimeField()

    def to_json(self):
        return {
            'transaction_id': self.transaction_id,
            'payment_date': _iso(self.payment_date)
        }


class Order(Document):
    # Identity
    order_number = StringField(required=True, unique=True)
    user_id = StringField(required=True)

    # Contents
    items = ListField(EmbeddedDocumentField(OrderItem))
    shipping_address = EmbeddedDocumentField(Address)
    billing_address = EmbeddedDocumentField(Address)

    # Money
    subtotal = FloatField(required=True)
    tax = FloatField(default=0)
    shipping_fee = FloatField(default=0)
    discount = FloatField(default=0)
    total_amount = FloatField(required=True)

    # Lifecycle
    status = EnumField(OrderStatus, default=OrderStatus.PENDING, required=True)
    status_history = ListField(EmbeddedDocumentField(StatusHistoryEntry))

    # Settlement
    payment_status = EnumField(OrderPaymentStatus, default=OrderPaymentStatus.PENDING, required=True)
    payment_method = EnumField(PaymentMethod)
    payment_details = EmbeddedDocumentField(PaymentDetails)

    # Fulfilment (admin only)
    tracking_number = StringField()
    estimated_delivery = DateTimeField()

    # Timestamps
    created_at = DateTimeField(default=datetime.utcnow)
    updated_at = DateTimeField(default=datetime.utcnow)

    meta = {
        'collection': 'orders',
        'indexes': [
            'user_id',
            'status',
            'payment_status',
            'created_at'
        ]
    }

    def save(self, *args, **kwargs):
        """Custom save method to refresh the update timestamp."""
        self.updated_at = datetime.utcnow()
        return super(Order, self).save(*args, **kwargs)

    def to_json(self):
        """Convert order document to JSON-friendly dict."""
        return {
            'id': str(self.id),
            'order_number': self.order_number,
            'user_id': self.user_id,
            'items': [item.to_json() for item in self.items],
            'shipping_address': self.shipping_address.to_json() if self.shipping_address else None,
            'billing_address': self.billing_address.to_json() if self.billing_address else None,
            'subtotal': self.subtotal,
            'tax': self.tax,
            'shipping_fee': self.shipping_fee,
            'discount': self.discount,
            'total_amount': self.total_amount,
            'status': self.status.value,
            'status_history': [entry.to_json() for entry in self.status_history],
            'payment_status': self.payment_status.value,
            'payment_method': self.payment_method.value if self.payment_method else None,
            'payment_details': self.payment_details.to_json() if self.payment_details else None,
            'tracking_number': self.tracking_number,
            'estimated_delivery': _iso(self.estimated_delivery),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }

    def timeline_json(self):
        return {
            'order_number': self.order_number,
            'current_status': self.status.value,
            'tracking_number': self.tracking_number,
            'estimated_delivery': _iso(self.estimated_delivery),
            'timeline': [entry.to_json() for entry in self.status_history]
        }

    def receipt_json(self):
        return {
            'order_number': self.order_number,
            'order_date': _iso(self.created_at),
            'items': [item.to_json() for item in self.items],
            'subtotal': self.subtotal,
            'tax': self.tax,
            'shipping_fee': self.shipping_fee,
            'discount': self.discount,
            'total_amount': self.total_amount,
            'payment_method': self.payment_method.value if self.payment_method else None,
            'payment_status': self.payment_status.value,
            'shipping_address': self.shipping_address.to_json() if self.shipping_address else None,
            'billing_address': self.billing_address.to_json() if self.billing_address else None
        }
