import logging
import random
import time

from mongoengine.errors import NotUniqueError

from Utils.appError import AppError

logger = logging.getLogger(__name__)


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def generate_order_number() -> str:
    """Human-facing order number: ORD-<ms timestamp>-<3 digits>."""
    return f"ORD-{_timestamp_ms()}-{random.randint(0, 999):03d}"


def generate_transaction_id() -> str:
    """Simulated gateway reference: TXN-<ms timestamp>-<0..9999>."""
    return f"TXN-{_timestamp_ms()}-{random.randint(0, 9999)}"


def save_with_unique_identifier(document, field, generate, attempts=5):
    """
    Assign ``generate()`` to ``field`` and save, drawing a fresh value
    whenever the unique index rejects it.
    """
    for _ in range(attempts):
        setattr(document, field, generate())
        try:
            return document.save()
        except NotUniqueError:
            logger.warning(f"Duplicate {field} {getattr(document, field)}, regenerating")
    raise AppError(f"Could not allocate a unique {field}", 500)
