"""
Modèle SQLAlchemy pour les paiements.
Le prestataire de paiement est externe : seules ses références sont conservées.
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, Uuid, func

from app.database import Base

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"
PAYMENT_REFUNDED = "refunded"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    inscription_id = Column(Uuid, ForeignKey("inscriptions.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=PAYMENT_PENDING)  # pending, completed, failed, refunded
    payment_method = Column(String(20), nullable=True)  # card, bank_transfer, paypal
    external_reference = Column(String(255), unique=True, nullable=True)
    failure_message = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
