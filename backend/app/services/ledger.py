"""
Registre de capacité des événements.

Deux invariants, pour tout événement E :
  A. Au plus une inscription non annulée par couple (utilisateur, E).
  B. Nombre d'inscriptions confirmées ≤ E.max_tickets (si défini).

B repose sur un incrément conditionnel et atomique de events.confirmed_count :

    UPDATE events SET confirmed_count = confirmed_count + 1
    WHERE id = :e AND (max_tickets IS NULL OR confirmed_count < max_tickets)

Deux requêtes concurrentes ne peuvent pas toutes deux « voir » la dernière place :
la base sérialise les UPDATE sur la ligne de l'événement. A est garanti par l'index
unique partiel uq_inscriptions_active_user_event, B en dernier recours par la
contrainte ck_events_capacity.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import AlreadyRegistered, InternalError, NotFound, SoldOut
from app.models.event import Event
from app.models.inscription import (
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    Inscription,
)
from app.models.payment import PAYMENT_FAILED, PAYMENT_PENDING, Payment
from app.services.policy import ensure_owner_or_admin
from app.services.token_service import TokenIdentity

logger = logging.getLogger(__name__)

CANCELLED_PAYMENT_MESSAGE = "Inscription annulée avant le paiement."


def _claim_seat(db: Session, event_id: uuid.UUID) -> bool:
    """Incrémente confirmed_count s'il reste une place. Retourne False si l'événement est complet."""
    result = db.execute(
        update(Event)
        .where(
            Event.id == event_id,
            or_(Event.max_tickets.is_(None), Event.confirmed_count < Event.max_tickets),
        )
        .values(confirmed_count=Event.confirmed_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _free_seat(db: Session, event_id: uuid.UUID) -> None:
    db.execute(
        update(Event)
        .where(Event.id == event_id, Event.confirmed_count > 0)
        .values(confirmed_count=Event.confirmed_count - 1)
        .execution_options(synchronize_session=False)
    )


def _fail_pending_payments(db: Session, inscription_id: uuid.UUID) -> None:
    """Un paiement en attente ne peut plus aboutir une fois son inscription annulée."""
    db.execute(
        update(Payment)
        .where(Payment.inscription_id == inscription_id, Payment.status == PAYMENT_PENDING)
        .values(status=PAYMENT_FAILED, failure_message=CANCELLED_PAYMENT_MESSAGE)
        .execution_options(synchronize_session=False)
    )


def _with_retries(operation, description: str):
    """
    Rejoue une opération sur verrou / conflit de sérialisation transitoire
    (au plus RESERVATION_MAX_ATTEMPTS tentatives), puis lève InternalError.
    """
    attempts = settings.RESERVATION_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except OperationalError as exc:
            logger.warning("%s : conflit transitoire (tentative %d/%d) : %s",
                           description, attempt, attempts, exc)
    raise InternalError()


def try_reserve(
    db: Session,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    status: str = STATUS_CONFIRMED,
) -> Inscription:
    """
    Crée une inscription en garantissant les invariants A et B.

    Une inscription confirmée consomme une place ; une inscription en attente
    (paiement) n'en consomme pas tant qu'elle n'est pas confirmée.
    Lève AlreadyRegistered ou SoldOut.
    """
    def attempt() -> Inscription:
        try:
            return _reserve_once(db, event_id, user_id, status)
        except OperationalError:
            db.rollback()
            raise

    return _with_retries(attempt, f"Inscription {user_id} → {event_id}")


def _reserve_once(db: Session, event_id: uuid.UUID, user_id: uuid.UUID, status: str) -> Inscription:
    active = db.execute(
        select(Inscription.id).where(
            Inscription.user_id == user_id,
            Inscription.event_id == event_id,
            Inscription.status != STATUS_CANCELLED,
        )
    ).first()
    if active is not None:
        db.rollback()
        raise AlreadyRegistered()

    if status == STATUS_CONFIRMED and not _claim_seat(db, event_id):
        db.rollback()
        logger.info("Événement %s complet : inscription de %s refusée", event_id, user_id)
        raise SoldOut()

    inscription = Inscription(user_id=user_id, event_id=event_id, status=status)
    db.add(inscription)
    try:
        db.flush()
    except IntegrityError:
        # Course perdue sur l'index unique partiel : la place réservée est annulée avec le rollback
        db.rollback()
        raise AlreadyRegistered()

    db.commit()
    db.refresh(inscription)
    logger.info("Inscription %s créée (%s) : utilisateur %s, événement %s",
                inscription.id, status, user_id, event_id)
    return inscription


def confirm_pending(db: Session, inscription: Inscription) -> Inscription:
    """
    Passe une inscription en attente à confirmée, en consommant une place.
    Ne commit pas : l'appelant (paiement) valide la transaction.
    Lève SoldOut si l'événement est complet.
    """
    if inscription.status == STATUS_CONFIRMED:
        return inscription
    if inscription.status != STATUS_PENDING:
        raise NotFound("Inscription introuvable ou annulée.")

    if not _claim_seat(db, inscription.event_id):
        raise SoldOut()

    result = db.execute(
        update(Inscription)
        .where(Inscription.id == inscription.id, Inscription.status == STATUS_PENDING)
        .values(status=STATUS_CONFIRMED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Annulée entre-temps : la place reprise est rendue avec le rollback de l'appelant
        raise NotFound("Inscription introuvable ou annulée.")
    db.expire(inscription)
    return inscription


def release(db: Session, inscription_id: uuid.UUID, identity: TokenIdentity) -> Inscription:
    """
    Annule une inscription (passage au statut cancelled, jamais de suppression).

    Seul le titulaire ou un administrateur peut annuler (sinon Forbidden).
    Annuler une inscription déjà annulée est une opération neutre qui réussit.
    """
    def attempt() -> Inscription:
        try:
            return _release_once(db, inscription_id, identity)
        except OperationalError:
            db.rollback()
            raise

    return _with_retries(attempt, f"Annulation {inscription_id}")


def _release_once(db: Session, inscription_id: uuid.UUID, identity: TokenIdentity) -> Inscription:
    inscription = db.get(Inscription, inscription_id, populate_existing=True)
    if inscription is None:
        raise NotFound("Inscription introuvable.")

    ensure_owner_or_admin(identity, inscription.user_id)

    if inscription.status == STATUS_CANCELLED:
        logger.info("Inscription %s déjà annulée : aucune action", inscription_id)
        return inscription

    previous_status = inscription.status
    # Condition sur le statut lu : une seule annulation concurrente libère la place
    result = db.execute(
        update(Inscription)
        .where(Inscription.id == inscription_id, Inscription.status == previous_status)
        .values(status=STATUS_CANCELLED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # Statut modifié entre-temps (pending → confirmed ou annulation concurrente) : on relit
        db.rollback()
        return _release_once(db, inscription_id, identity)
    if previous_status == STATUS_CONFIRMED:
        _free_seat(db, inscription.event_id)
    elif previous_status == STATUS_PENDING:
        _fail_pending_payments(db, inscription_id)
    db.commit()

    db.refresh(inscription)
    logger.info("Inscription %s annulée par %s", inscription_id, identity.user_id)
    return inscription


def cancel_all_for_user(db: Session, user_id: uuid.UUID) -> int:
    """
    Annule toutes les inscriptions actives d'un utilisateur en libérant leurs places.
    Ne commit pas. Retourne le nombre d'inscriptions annulées.
    """
    active = db.execute(
        select(Inscription).where(
            Inscription.user_id == user_id,
            Inscription.status != STATUS_CANCELLED,
        )
    ).scalars().all()

    for inscription in active:
        if inscription.status == STATUS_CONFIRMED:
            _free_seat(db, inscription.event_id)
        inscription.status = STATUS_CANCELLED
    db.flush()
    return len(active)


def confirmed_count(db: Session, event_id: uuid.UUID) -> int:
    """Nombre d'inscriptions confirmées, recompté depuis la table inscriptions."""
    return db.execute(
        select(func.count())
        .select_from(Inscription)
        .where(Inscription.event_id == event_id, Inscription.status == STATUS_CONFIRMED)
    ).scalar() or 0


def remaining_for(event: Event) -> Optional[int]:
    if event.max_tickets is None:
        return None
    return max(event.max_tickets - (event.confirmed_count or 0), 0)


def remaining(db: Session, event_id: uuid.UUID) -> Optional[int]:
    """Places restantes (jamais négatif), ou None si l'événement est illimité."""
    event = db.get(Event, event_id, populate_existing=True)
    if event is None:
        raise NotFound("Événement introuvable.")
    return remaining_for(event)
