"""Client error log model."""

from sqlalchemy import Boolean, Column, Index, String, Text

from pantry_store.database import Base
from pantry_store.models.mixins import CreatedAtMixin


class ClientErrorRecord(Base, CreatedAtMixin):
    """Error reported by a client application."""

    __tablename__ = "client_errors"
    __table_args__ = (
        Index("idx_client_errors_resolved", "resolved"),
        Index("idx_client_errors_created", "created_at"),
    )

    id = Column(String, primary_key=True)  # UUID
    user_id = Column(String, nullable=True)
    error_type = Column(String, nullable=False)
    error_message = Column(Text, nullable=False)
    error_stack = Column(Text, nullable=True)
    component = Column(String, nullable=True)
    url = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    resolved = Column(Boolean, default=False)
