"""Custom SQLAlchemy types and id helpers shared by the models"""
from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import TypeDecorator, String


def generate_uuid() -> str:
    """Generate a UUID string"""
    return str(uuid.uuid4())


def is_valid_uuid(value: Optional[str]) -> bool:
    """True when value parses as a UUID (any version)"""
    if not value:
        return False
    try:
        uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        return False
    return True


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.utcnow()


class GUID(TypeDecorator):
    """Platform-independent GUID type that stores UUIDs as VARCHAR(36)"""
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        # Normalise "ABC..." / UUID objects to the canonical lowercase form
        return str(uuid.UUID(str(value))) if is_valid_uuid(value) else str(value)

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value
