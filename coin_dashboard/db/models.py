from sqlalchemy import Column, DateTime, String, Text

from coin_dashboard.db.session import Base
from coin_dashboard.utils.time import utcnow


class KeyValueEntry(Base):
    """One durable key holding a serialized value (e.g. the watchlist)."""

    __tablename__ = "kv_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
