"""
Schémas Pydantic pour les paiements (bouchon local, sans prestataire).
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class PaymentIntentCreate(BaseModel):
    event_id: uuid.UUID


class PaymentResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    event_id: uuid.UUID
    inscription_id: Optional[uuid.UUID]
    amount: Decimal
    status: str  # pending, completed, failed, refunded
    failure_message: Optional[str] = None
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class PaymentIntentResponse(BaseModel):
    payment: PaymentResponse
    warning: str = "Aucun prestataire de paiement configuré. Paiement local de test."
