"""
Paiement local de test : aucun prestataire n'est appelé.

create_payment_intent réserve une inscription en attente (sans consommer de place)
et un paiement en attente. complete_payment joue le rôle du retour du prestataire :
l'inscription est confirmée via le registre de capacité, ou le paiement échoue si
l'événement est complet entre-temps.
"""

import logging
import uuid

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.errors import EventNotFound, NotFound, SoldOut
from app.models.event import Event
from app.models.inscription import STATUS_CANCELLED, STATUS_PENDING, Inscription
from app.models.payment import PAYMENT_COMPLETED, PAYMENT_FAILED, PAYMENT_PENDING, Payment
from app.schemas.payment import PaymentIntentResponse, PaymentResponse
from app.services import ledger

logger = logging.getLogger(__name__)


def create_payment_intent(db: Session, user_id: uuid.UUID, event_id: uuid.UUID) -> PaymentIntentResponse:
    """
    Crée une inscription en attente et le paiement correspondant au prix de l'événement.
    Lève EventNotFound ou AlreadyRegistered.
    """
    event = db.get(Event, event_id)
    if event is None:
        raise EventNotFound()
    amount = event.price

    inscription = ledger.try_reserve(db, event_id, user_id, status=STATUS_PENDING)

    payment = Payment(
        user_id=user_id,
        event_id=event_id,
        inscription_id=inscription.id,
        amount=amount,
        status=PAYMENT_PENDING,
        external_reference=f"local_{uuid.uuid4().hex}",
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    logger.info("Paiement %s créé (%s) pour l'inscription %s", payment.id, payment.amount, inscription.id)
    return PaymentIntentResponse(payment=PaymentResponse.model_validate(payment))


def complete_payment(db: Session, payment_id: uuid.UUID) -> PaymentResponse:
    """
    Valide un paiement en attente et confirme l'inscription associée.
    Si l'événement est complet, le paiement passe à failed avec un message d'échec.
    Un paiement déjà traité est retourné tel quel.
    """
    payment = db.get(Payment, payment_id)
    if payment is None:
        raise NotFound("Paiement introuvable.")
    if payment.status != PAYMENT_PENDING:
        return PaymentResponse.model_validate(payment)

    inscription = db.get(Inscription, payment.inscription_id) if payment.inscription_id else None
    if inscription is None:
        raise NotFound("Inscription introuvable ou annulée.")

    try:
        ledger.confirm_pending(db, inscription)
    except SoldOut:
        db.rollback()
        # L'inscription en attente est libérée avec l'échec : l'utilisateur peut réessayer
        db.execute(
            update(Inscription)
            .where(Inscription.id == inscription.id, Inscription.status == STATUS_PENDING)
            .values(status=STATUS_CANCELLED)
        )
        payment = db.get(Payment, payment_id)
        payment.status = PAYMENT_FAILED
        payment.failure_message = SoldOut.message
        db.commit()
        db.refresh(payment)
        logger.info("Paiement %s échoué : événement complet", payment_id)
        return PaymentResponse.model_validate(payment)
    except NotFound:
        db.rollback()
        raise

    payment.status = PAYMENT_COMPLETED
    db.commit()
    db.refresh(payment)

    logger.info("Paiement %s validé, inscription %s confirmée", payment.id, inscription.id)
    return PaymentResponse.model_validate(payment)
