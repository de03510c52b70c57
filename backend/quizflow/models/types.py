"""
Portable column types shared by the models.
"""
import uuid

from sqlalchemy import String, TypeDecorator


class UuidType(TypeDecorator):
    """
    UUID kept as its canonical 36-char string, so SQLite and PostgreSQL behave the same.
    Bound values may be UUID objects or strings in any accepted spelling (upper case,
    braces, no hyphens); they are normalized before hitting the database so lookups by
    id match regardless of how the client wrote it.
    """
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return uuid.UUID(value)
