"""
Modèle SQLAlchemy pour les inscriptions (un utilisateur ↔ un événement).
"""

import uuid
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, Uuid, func, text

from app.database import Base

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
INSCRIPTION_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED)


class Inscription(Base):
    __tablename__ = "inscriptions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')", name="ck_inscriptions_status"
        ),
        # Une seule inscription active (non annulée) par couple (user_id, event_id)
        Index(
            "uq_inscriptions_active_user_event",
            "user_id",
            "event_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=STATUS_CONFIRMED)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
