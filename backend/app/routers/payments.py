"""
Router des paiements (paiement local de test, aucun prestataire configuré).
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.deps import get_current_identity, require_roles
from app.models.user import ROLE_ADMIN
from app.schemas.payment import PaymentIntentCreate, PaymentIntentResponse, PaymentResponse
from app.services import payment_service
from app.services.token_service import TokenIdentity

router = APIRouter(prefix="/api/payments", tags=["Paiements"])


@router.post("", response_model=PaymentIntentResponse, status_code=201, summary="Créer un paiement")
def create_payment(
    data: PaymentIntentCreate,
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Réserve une inscription en attente, confirmée à la validation du paiement."""
    return payment_service.create_payment_intent(db, identity.user_id, data.event_id)


@router.post("/{payment_id}/complete", response_model=PaymentResponse, summary="Valider un paiement")
def complete_payment(
    payment_id: uuid.UUID,
    identity: TokenIdentity = Depends(require_roles(ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    """Tient lieu de retour du prestataire de paiement."""
    return payment_service.complete_payment(db, payment_id)
