"""
Service métier des inscriptions aux événements.
Orchestre le registre de capacité (app.services.ledger) et les contrôles d'accès.
"""

import io
import logging
import uuid

import qrcode
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import EventNotFound, Forbidden, NotFound
from app.models.event import Event
from app.models.inscription import STATUS_CONFIRMED, Inscription
from app.models.user import User
from app.schemas.inscription import (
    CancellationResponse,
    InscriptionResponse,
    InscriptionWithEvent,
    Participant,
)
from app.services import ledger
from app.services.policy import ensure_owner_or_admin
from app.services.token_service import TokenIdentity

logger = logging.getLogger(__name__)


def register(db: Session, user_id: uuid.UUID, event_id: uuid.UUID) -> InscriptionResponse:
    """
    Inscrit un utilisateur à un événement (inscription confirmée immédiatement).
    Lève EventNotFound, AlreadyRegistered ou SoldOut.
    """
    if db.get(Event, event_id) is None:
        raise EventNotFound()

    inscription = ledger.try_reserve(db, event_id, user_id)
    return InscriptionResponse.model_validate(inscription)


def cancel(db: Session, inscription_id: uuid.UUID, identity: TokenIdentity) -> CancellationResponse:
    """
    Annule une inscription (titulaire ou administrateur).
    Lève NotFound ou Forbidden. Une double annulation réussit sans effet.
    """
    inscription = ledger.release(db, inscription_id, identity)
    return CancellationResponse(
        message="Inscription annulée.",
        inscription_id=inscription.id,
        status=inscription.status,
    )


def list_for_user(db: Session, user_id: uuid.UUID) -> list[InscriptionWithEvent]:
    """Historique des inscriptions de l'utilisateur, de la plus récente à la plus ancienne."""
    rows = db.execute(
        select(Inscription, Event)
        .join(Event, Event.id == Inscription.event_id)
        .where(Inscription.user_id == user_id)
        .order_by(Inscription.created_at.desc())
    ).all()

    return [
        InscriptionWithEvent(
            id=inscription.id,
            user_id=inscription.user_id,
            event_id=inscription.event_id,
            status=inscription.status,
            created_at=inscription.created_at,
            updated_at=inscription.updated_at,
            event_title=event.title,
            event_location=event.location,
            event_date=event.event_date,
            event_price=event.price,
            event_category=event.category,
            event_image_url=event.image_url,
        )
        for inscription, event in rows
    ]


def list_for_event(db: Session, event_id: uuid.UUID, identity: TokenIdentity) -> list[Participant]:
    """Participants d'un événement, réservé à son organisateur ou à un administrateur."""
    event = db.get(Event, event_id)
    if event is None:
        raise EventNotFound()
    ensure_owner_or_admin(identity, event.organizer_id)

    rows = db.execute(
        select(Inscription, User)
        .join(User, User.id == Inscription.user_id)
        .where(Inscription.event_id == event_id)
        .order_by(Inscription.created_at)
    ).all()

    return [
        Participant(
            inscription_id=inscription.id,
            user_id=user.id,
            name=user.name,
            email=user.email,
            status=inscription.status,
            registered_at=inscription.created_at,
        )
        for inscription, user in rows
    ]


def generate_ticket_qr(inscription_id: uuid.UUID) -> bytes:
    """Génère l'image PNG du QR code encodant l'identifiant du billet."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(f"TICKET-{inscription_id}")
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def ticket_qr(db: Session, inscription_id: uuid.UUID, identity: TokenIdentity) -> bytes:
    """
    Retourne le billet (QR code PNG) d'une inscription confirmée.
    Lève NotFound, Forbidden si l'inscription n'est pas confirmée ou pas à l'appelant.
    """
    inscription = db.get(Inscription, inscription_id)
    if inscription is None:
        raise NotFound("Inscription introuvable.")
    ensure_owner_or_admin(identity, inscription.user_id)
    if inscription.status != STATUS_CONFIRMED:
        raise Forbidden("Seule une inscription confirmée donne droit à un billet.")

    logger.info("Billet généré pour l'inscription %s", inscription_id)
    return generate_ticket_qr(inscription.id)
