"""
Tests du paiement local : inscription en attente puis confirmation via le registre.
"""

import uuid
from decimal import Decimal

import pytest

from app.errors import AlreadyRegistered, EventNotFound, NotFound
from app.models.inscription import Inscription
from app.models.payment import Payment
from app.models.user import ROLE_ORGANIZER
from app.services import event_service, ledger, payment_service


def test_create_payment_intent(db, make_user, make_event):
    organizer = make_user(role=ROLE_ORGANIZER)
    participant = make_user()
    event = make_event(organizer, max_tickets=1, price=Decimal("35.00"))

    result = payment_service.create_payment_intent(db, participant.id, event.id)

    assert result.payment.status == "pending"
    assert result.payment.amount == Decimal("35.00")
    assert db.get(Inscription, result.payment.inscription_id).status == "pending"
    assert ledger.remaining(db, event.id) == 1
    assert result.warning


def test_create_payment_intent_deja_inscrit(db, make_user, make_event):
    organizer = make_user(role=ROLE_ORGANIZER)
    participant = make_user()
    event = make_event(organizer)
    ledger.try_reserve(db, event.id, participant.id)

    with pytest.raises(AlreadyRegistered):
        payment_service.create_payment_intent(db, participant.id, event.id)


def test_create_payment_intent_evenement_inconnu(db, make_user):
    with pytest.raises(EventNotFound):
        payment_service.create_payment_intent(db, make_user().id, uuid.uuid4())


def test_complete_payment_confirme_l_inscription(db, make_user, make_event):
    organizer = make_user(role=ROLE_ORGANIZER)
    event = make_event(organizer, max_tickets=1, price=Decimal("10"))
    intent = payment_service.create_payment_intent(db, make_user().id, event.id)

    result = payment_service.complete_payment(db, intent.payment.id)

    assert result.status == "completed"
    assert db.get(Inscription, intent.payment.inscription_id).status == "confirmed"
    assert ledger.remaining(db, event.id) == 0


def test_complete_payment_evenement_complet(db, make_user, make_event):
    """L'événement s'est rempli entre l'intention et le paiement : le paiement échoue."""
    organizer = make_user(role=ROLE_ORGANIZER)
    event = make_event(organizer, max_tickets=1, price=Decimal("10"))
    intent = payment_service.create_payment_intent(db, make_user().id, event.id)
    ledger.try_reserve(db, event.id, make_user().id)

    result = payment_service.complete_payment(db, intent.payment.id)

    assert result.status == "failed"
    assert result.failure_message
    assert db.get(Inscription, intent.payment.inscription_id).status == "cancelled"
    assert ledger.confirmed_count(db, event.id) == 1


def test_paiement_echoue_l_acheteur_peut_reessayer(db, make_user, make_event, identity_for):
    """Après un paiement échoué puis une place libérée, l'acheteur peut s'inscrire à nouveau."""
    organizer = make_user(role=ROLE_ORGANIZER)
    buyer = make_user()
    other = make_user()
    event = make_event(organizer, max_tickets=1, price=Decimal("10"))
    intent = payment_service.create_payment_intent(db, buyer.id, event.id)
    seat = ledger.try_reserve(db, event.id, other.id)
    payment_service.complete_payment(db, intent.payment.id)

    ledger.release(db, seat.id, identity_for(other))
    retry = payment_service.create_payment_intent(db, buyer.id, event.id)
    completed = payment_service.complete_payment(db, retry.payment.id)

    assert completed.status == "completed"
    assert ledger.remaining(db, event.id) == 0


def test_annulation_inscription_en_attente_fait_echouer_le_paiement(db, make_user, make_event, identity_for):
    organizer = make_user(role=ROLE_ORGANIZER)
    buyer = make_user()
    event = make_event(organizer, max_tickets=1, price=Decimal("10"))
    intent = payment_service.create_payment_intent(db, buyer.id, event.id)

    ledger.release(db, intent.payment.inscription_id, identity_for(buyer))
    result = payment_service.complete_payment(db, intent.payment.id)

    assert result.status == "failed"
    assert result.failure_message == ledger.CANCELLED_PAYMENT_MESSAGE
    assert ledger.remaining(db, event.id) == 1


def test_complete_payment_deja_traite_inchange(db, make_user, make_event):
    organizer = make_user(role=ROLE_ORGANIZER)
    event = make_event(organizer, price=Decimal("10"))
    intent = payment_service.create_payment_intent(db, make_user().id, event.id)
    payment_service.complete_payment(db, intent.payment.id)

    again = payment_service.complete_payment(db, intent.payment.id)

    assert again.status == "completed"
    assert ledger.confirmed_count(db, event.id) == 1


def test_complete_payment_inconnu(db):
    with pytest.raises(NotFound):
        payment_service.complete_payment(db, uuid.uuid4())


def test_payment_supprime_avec_l_evenement(db, make_user, make_event, identity_for):
    organizer = make_user(role=ROLE_ORGANIZER)
    event = make_event(organizer, price=Decimal("10"), days=-1)
    intent = payment_service.create_payment_intent(db, make_user().id, event.id)

    event_service.delete_event(db, event.id, identity_for(organizer))

    assert db.get(Payment, intent.payment.id) is None
