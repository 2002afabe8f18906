"""Mixins for SQLAlchemy models."""

from sqlalchemy import Column, DateTime, String, func


class CreatedAtMixin:
    """Mixin to add a server-stamped created_at column."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class TimestampMixin(CreatedAtMixin):
    """Mixin to add created_at and updated_at columns.

    updated_at is written by the application as an ISO 8601 string.
    """

    updated_at = Column(String, server_default=func.now(), nullable=False)
