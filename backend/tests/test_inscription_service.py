"""
Tests du workflow d'inscription : inscription, annulation, historique,
liste des participants et billet QR code (base SQLite de test).
"""

import uuid

import pytest

from app.errors import EventNotFound, Forbidden, NotFound, SoldOut
from app.models.inscription import STATUS_PENDING
from app.models.user import ROLE_ADMIN, ROLE_ORGANIZER
from app.services import inscription_service, ledger

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def test_register_evenement_inconnu(db, make_user):
    with pytest.raises(EventNotFound):
        inscription_service.register(db, make_user().id, uuid.uuid4())


def test_register_et_annulation(db, make_user, make_event, identity_for):
    organizer = make_user(role=ROLE_ORGANIZER)
    participant = make_user()
    event = make_event(organizer, max_tickets=1)

    inscription = inscription_service.register(db, participant.id, event.id)
    with pytest.raises(SoldOut):
        inscription_service.register(db, make_user().id, event.id)

    result = inscription_service.cancel(db, inscription.id, identity_for(participant))

    assert result.status == "cancelled"
    assert result.inscription_id == inscription.id
    assert ledger.remaining(db, event.id) == 1


def test_list_for_user_avec_resume_evenement(db, make_user, make_event):
    organizer = make_user(role=ROLE_ORGANIZER)
    participant = make_user()
    event = make_event(organizer, title="Conférence IA", category="conference")
    inscription_service.register(db, participant.id, event.id)

    history = inscription_service.list_for_user(db, participant.id)

    assert len(history) == 1
    assert history[0].event_title == "Conférence IA"
    assert history[0].status == "confirmed"


def test_list_for_event_reserve_a_l_organisateur(db, make_user, make_event, identity_for):
    organizer = make_user(role=ROLE_ORGANIZER)
    participant = make_user(name="Luc Bernard")
    event = make_event(organizer)
    inscription_service.register(db, participant.id, event.id)

    participants = inscription_service.list_for_event(db, event.id, identity_for(organizer))
    assert [p.name for p in participants] == ["Luc Bernard"]

    with pytest.raises(Forbidden):
        inscription_service.list_for_event(db, event.id, identity_for(participant))


def test_ticket_qr_png(db, make_user, make_event, identity_for):
    organizer = make_user(role=ROLE_ORGANIZER)
    participant = make_user()
    inscription = inscription_service.register(db, participant.id, make_event(organizer).id)

    png = inscription_service.ticket_qr(db, inscription.id, identity_for(participant))

    assert png.startswith(PNG_SIGNATURE)


def test_ticket_qr_inscription_en_attente_refusee(db, make_user, make_event, identity_for):
    organizer = make_user(role=ROLE_ORGANIZER)
    participant = make_user()
    pending = ledger.try_reserve(db, make_event(organizer).id, participant.id, status=STATUS_PENDING)

    with pytest.raises(Forbidden):
        inscription_service.ticket_qr(db, pending.id, identity_for(participant))


def test_ticket_qr_autre_utilisateur_refuse(db, make_user, make_event, identity_for):
    organizer = make_user(role=ROLE_ORGANIZER)
    inscription = inscription_service.register(db, make_user().id, make_event(organizer).id)

    with pytest.raises(Forbidden):
        inscription_service.ticket_qr(db, inscription.id, identity_for(make_user()))

    png = inscription_service.ticket_qr(db, inscription.id, identity_for(make_user(role=ROLE_ADMIN)))
    assert png.startswith(PNG_SIGNATURE)


def test_ticket_qr_inconnu(db, make_user, identity_for):
    with pytest.raises(NotFound):
        inscription_service.ticket_qr(db, uuid.uuid4(), identity_for(make_user()))
