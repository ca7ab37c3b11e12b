"""
Per-user preferences document.

Updated read-modify-write under a row lock, see services/settings_service.py.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Uuid
from sqlalchemy.sql import func
from zena.api.db.base import Base, JSONDocument


class UserSettings(Base):
    __tablename__ = "user_settings"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    preferences = Column(JSONDocument, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
