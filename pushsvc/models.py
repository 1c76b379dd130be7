"""
SQLAlchemy models
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index, text
from sqlalchemy.sql import func
from pushsvc.database import Base


DEVICE_TYPES = ("android", "ios", "web")


class Subscriber(Base):
    """
    Platform user account. Owned by the main platform schema, read here
    only to check that a user exists.
    """
    __tablename__ = "subscribers"

    sId = Column("sId", Integer, primary_key=True, index=True)

    def __repr__(self):
        return f"<Subscriber(sId={self.sId})>"


class UserDevice(Base):
    """
    FCM token of one installed app instance, owned by one user.

    A token may appear in several rows (history of owners), but only one of
    them is active at a time.
    """
    __tablename__ = "user_devices"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("subscribers.sId"), nullable=False, index=True)
    fcm_token = Column(String(255), nullable=False, index=True)
    device_type = Column(String(16), nullable=False, default="android")  # android | ios | web
    device_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_used = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_user_devices_user_token', 'user_id', 'fcm_token'),
        # One active owner per token. MySQL has no partial indexes, there the
        # registry lock is the only guard.
        Index(
            'uq_user_devices_active_token',
            'fcm_token',
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ).ddl_if(dialect=("sqlite", "postgresql")),
    )

    def __repr__(self):
        return (
            f"<UserDevice(id={self.id}, user_id={self.user_id}, "
            f"type={self.device_type}, active={self.is_active})>"
        )
