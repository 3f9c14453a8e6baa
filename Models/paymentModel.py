from mongoengine import (
    Document, EmbeddedDocument, StringField, IntField, FloatField,
    DateTimeField, ObjectIdField, EmbeddedDocumentField, EnumField
)
from datetime import datetime
from enum import Enum


class PaymentMethod(Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    GCASH = "gcash"
    CASH_ON_DELIVERY = "cash_on_delivery"


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class CardDetails(EmbeddedDocument):
    # Snapshot only; the full card number is never stored
    last4 = StringField(max_length=4, regex=r"^\d{4}$")
    brand = StringField(max_length=30)

    def to_json(self):
        return {'last4': self.last4, 'brand': self.brand}


class Payment(Document):
    order_id = ObjectIdField(required=True)
    user_id = StringField(required=True)
    amount = FloatField(required=True)  # copied from the order total
    method = EnumField(PaymentMethod, required=True)
    status = EnumField(PaymentStatus, default=PaymentStatus.PENDING, required=True)
    transaction_id = StringField(unique=True)
    card_details = EmbeddedDocumentField(CardDetails)
    failure_reason = StringField()
    retry_count = IntField(default=0, min_value=0)
    created_at = DateTimeField(default=datetime.utcnow)
    updated_at = DateTimeField(default=datetime.utcnow)

    meta = {
        'collection': 'payments',
        'indexes': ['order_id', 'user_id', 'status', 'method', 'created_at']
    }

    def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        return super(Payment, self).save(*args, **kwargs)

    def to_json(self):
        """Convert payment document to JSON-friendly dict."""
        return {
            'id': str(self.id),
            'order_id': str(self.order_id),
            'user_id': self.user_id,
            'amount': self.amount,
            'method': self.method.value,
            'status': self.status.value,
            'transaction_id': self.transaction_id,
            'card_details': self.card_details.to_json() if self.card_details else None,
            'failure_reason': self.failure_reason,
            'retry_count': self.retry_count,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
