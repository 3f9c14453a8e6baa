import logging
from urllib.parse import urlparse

from bson import ObjectId
from mongoengine import connect

logger = logging.getLogger(__name__)


def init_db(mongo_uri: str, **connect_kwargs):
    """Connect the default mongoengine alias to ``mongo_uri``."""
    # Auto-detect DB name from URI
    parsed = urlparse(mongo_uri)
    db_name = (parsed.path or "").lstrip("/") or "orders_db"

    try:
        connect(
            db=db_name,
            host=mongo_uri,
            alias="default",
            **connect_kwargs
        )
        logger.info(f"✅ MongoDB connected successfully → {db_name}")
    except Exception as e:
        logger.error(f"❌ MongoDB connection error: {e}")
        raise
    return db_name


def find_by_id(model, doc_id):
    """Return the document with primary key ``doc_id``, or None (malformed ids included)."""
    if not doc_id or not ObjectId.is_valid(str(doc_id)):
        return None
    return model.objects(id=str(doc_id)).first()
