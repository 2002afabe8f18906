"""Applied-migrations ledger."""

from sqlalchemy import Column, Integer, String

from pantry_store.database import Base


class MigrationRecord(Base):
    """One applied migration file. Entries are never removed."""

    __tablename__ = "migrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    filename = Column(String, unique=True, nullable=False)
    applied_at = Column(String, nullable=False)  # ISO 8601
