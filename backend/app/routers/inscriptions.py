"""
Router des inscriptions : s'inscrire, annuler, consulter son historique et son billet.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.deps import get_current_identity
from app.schemas.inscription import (
    CancellationResponse,
    InscriptionCreate,
    InscriptionResponse,
    InscriptionWithEvent,
)
from app.services import inscription_service
from app.services.token_service import TokenIdentity

router = APIRouter(prefix="/api/inscriptions", tags=["Inscriptions"])


@router.post("", response_model=InscriptionResponse, status_code=201, summary="S'inscrire à un événement")
def register(
    data: InscriptionCreate,
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Inscription confirmée immédiatement.
    409 si l'appelant est déjà inscrit ou si l'événement est complet.
    """
    return inscription_service.register(db, identity.user_id, data.event_id)


@router.get("/me", response_model=List[InscriptionWithEvent], summary="Mes inscriptions")
def my_inscriptions(identity: TokenIdentity = Depends(get_current_identity), db: Session = Depends(get_db)):
    return inscription_service.list_for_user(db, identity.user_id)


@router.delete("/{inscription_id}", response_model=CancellationResponse, summary="Annuler une inscription")
def cancel(
    inscription_id: uuid.UUID,
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Annulation logique (statut cancelled). Annuler deux fois réussit sans effet."""
    return inscription_service.cancel(db, inscription_id, identity)


@router.get(
    "/{inscription_id}/ticket",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
    summary="Télécharger le billet (QR code)",
)
def get_ticket(
    inscription_id: uuid.UUID,
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    png = inscription_service.ticket_qr(db, inscription_id, identity)
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="billet-{inscription_id}.png"'},
    )
