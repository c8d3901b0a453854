"""
Schémas Pydantic pour les inscriptions aux événements.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class InscriptionCreate(BaseModel):
    """Corps de requête POST /api/inscriptions."""
    event_id: uuid.UUID


class InscriptionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    event_id: uuid.UUID
    status: str  # pending, confirmed, cancelled
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class InscriptionWithEvent(InscriptionResponse):
    """Historique de l'utilisateur connecté : inscription + résumé de l'événement."""
    event_title: str
    event_location: Optional[str]
    event_date: Optional[datetime]
    event_price: Decimal
    event_category: str
    event_image_url: Optional[str]


class Participant(BaseModel):
    """Ligne de la liste des participants d'un événement (vue organisateur)."""
    inscription_id: uuid.UUID
    user_id: uuid.UUID
    name: str
    email: str
    status: str
    registered_at: Optional[datetime]


class CancellationResponse(BaseModel):
    message: str
    inscription_id: uuid.UUID
    status: str
