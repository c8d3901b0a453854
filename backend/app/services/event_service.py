"""
Service métier pour les événements.
Gère la création, la consultation, la modification et la suppression des événements.

confirmed_count n'est jamais écrit ici : seul app.services.ledger le fait évoluer.
"""

import logging
import math
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, delete, func, or_, select, true, update
from sqlalchemy.orm import Session

from app.clock import utcnow
from app.errors import EventHasRegistrants, EventNotFound, Forbidden, ValidationFailed
from app.models.event import CATEGORIES, Event
from app.models.inscription import STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_PENDING, Inscription
from app.models.payment import Payment
from app.models.user import ROLE_ADMIN, ROLE_ORGANIZER, User
from app.schemas.event import (
    Category,
    EventCreate,
    EventDetails,
    EventFilters,
    EventListResponse,
    EventResponse,
    EventStatistics,
    EventUpdate,
    OrganizerEvent,
    OrganizerSummary,
    ParticipantStats,
    UserRegistration,
)
from app.schemas.user import Pagination
from app.services import ledger
from app.services.policy import ensure_allowed, ensure_owner_or_admin
from app.services.token_service import TokenIdentity

logger = logging.getLogger(__name__)

EVENT_MANAGERS = (ROLE_ORGANIZER, ROLE_ADMIN)
MIN_SEARCH_LENGTH = 2

CATEGORY_LABELS = {
    "musique": "Musique",
    "sport": "Sport",
    "conference": "Conférence",
    "theatre": "Théâtre",
    "cinema": "Cinéma",
    "exposition": "Exposition",
    "festival": "Festival",
    "atelier": "Atelier",
    "networking": "Networking",
    "gastronomie": "Gastronomie",
    "autre": "Autre",
}


def create_event(db: Session, data: EventCreate, identity: TokenIdentity) -> EventResponse:
    """
    Crée un événement dont l'appelant devient l'organisateur.
    Réservé aux organisateurs et administrateurs (Forbidden sinon).
    """
    ensure_allowed(identity.role, EVENT_MANAGERS, "Seuls les organisateurs peuvent créer des événements.")

    organizer = db.get(User, identity.user_id)
    if organizer is None or organizer.role not in EVENT_MANAGERS:
        raise Forbidden("Seuls les organisateurs peuvent créer des événements.")

    event = Event(
        title=data.title,
        description=data.description,
        category=data.category,
        location=data.location,
        event_date=data.event_date,
        price=data.price,
        max_tickets=data.max_tickets,
        confirmed_count=0,
        organizer_id=organizer.id,
        image_url=str(data.image_url) if data.image_url else None,
        photos=[str(p) for p in data.photos] if data.photos else None,
    )
    db.add(event)
    db.commit()
    db.refresh(event)

    logger.info("Événement créé : %s (%s) par %s", event.title, event.id, organizer.id)
    return _to_response(event)


def update_event(
    db: Session, event_id: uuid.UUID, data: EventUpdate, identity: TokenIdentity
) -> EventResponse:
    """
    Met à jour les champs fournis d'un événement (organisateur propriétaire ou administrateur).

    La capacité ne peut pas descendre sous le nombre d'inscriptions confirmées :
    la vérification et l'écriture se font dans un même UPDATE conditionnel.
    """
    event = db.get(Event, event_id)
    if event is None:
        raise EventNotFound()
    ensure_owner_or_admin(identity, event.organizer_id, "Vous ne pouvez modifier que vos propres événements.")

    changes = data.model_dump(exclude_unset=True)
    new_max = changes.pop("max_tickets", ...)

    if "image_url" in changes:
        changes["image_url"] = str(changes["image_url"]) if changes["image_url"] else None
    if "photos" in changes:
        changes["photos"] = [str(p) for p in changes["photos"]] if changes["photos"] else None

    if new_max is not ...:
        stmt = update(Event).where(Event.id == event.id)
        if new_max is not None:
            stmt = stmt.where(Event.confirmed_count <= new_max)
        result = db.execute(
            stmt.values(max_tickets=new_max).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            confirmed = ledger.confirmed_count(db, event_id)
            raise ValidationFailed.single(
                "max_tickets",
                f"Le nombre de places ne peut pas être inférieur au nombre d'inscrits confirmés ({confirmed}).",
            )

    for field, value in changes.items():
        setattr(event, field, value)

    db.commit()
    db.refresh(event)

    logger.info("Événement %s modifié par %s", event.id, identity.user_id)
    return _to_response(event)


def delete_event(db: Session, event_id: uuid.UUID, identity: TokenIdentity) -> None:
    """
    Supprime un événement avec ses inscriptions et paiements.
    Lève EventHasRegistrants si l'événement est à venir et compte des inscrits confirmés.
    """
    # Verrou sur la ligne : une réservation concurrente (UPDATE du compteur) attend la fin de la suppression
    event = db.get(Event, event_id, with_for_update=True, populate_existing=True)
    if event is None:
        raise EventNotFound()
    ensure_owner_or_admin(identity, event.organizer_id, "Vous ne pouvez supprimer que vos propres événements.")

    is_future = event.event_date is not None and event.event_date > utcnow()
    if is_future and (event.confirmed_count or 0) > 0:
        db.rollback()
        raise EventHasRegistrants()

    db.execute(delete(Payment).where(Payment.event_id == event.id))
    db.execute(delete(Inscription).where(Inscription.event_id == event.id))
    db.delete(event)
    db.commit()

    logger.info("Événement %s supprimé par %s", event_id, identity.user_id)


def get_event_details(
    db: Session, event_id: uuid.UUID, viewer_id: Optional[uuid.UUID] = None
) -> EventDetails:
    """Détail d'un événement : organisateur, participants, places restantes et inscription du visiteur."""
    event = db.get(Event, event_id)
    if event is None:
        raise EventNotFound()

    organizer = db.get(User, event.organizer_id)
    registration = None
    if viewer_id is not None:
        inscription = db.execute(
            select(Inscription).where(
                Inscription.event_id == event.id,
                Inscription.user_id == viewer_id,
                Inscription.status != STATUS_CANCELLED,
            )
        ).scalars().first()
        if inscription is not None:
            registration = UserRegistration(
                inscription_id=inscription.id,
                status=inscription.status,
                registered_at=inscription.created_at,
            )

    return EventDetails(
        **_to_response(event).model_dump(),
        organizer=OrganizerSummary(id=organizer.id, name=organizer.name, email=organizer.email)
        if organizer else None,
        participants=_participant_stats(db, event.id),
        user_registration=registration,
    )


def list_events(db: Session, filters: EventFilters) -> EventListResponse:
    """
    Liste paginée des événements, triée par date.
    Les bornes de date et de prix sont vérifiées entre elles (ValidationFailed).
    """
    errors = []
    if filters.start_date and filters.end_date and filters.end_date < filters.start_date:
        errors.append({"field": "end_date", "message": "La date de fin doit être après la date de début."})
    if (filters.min_price is not None and filters.max_price is not None
            and filters.max_price < filters.min_price):
        errors.append({"field": "max_price", "message": "Le prix maximum doit être supérieur au prix minimum."})
    if filters.category is not None and filters.category not in CATEGORIES:
        errors.append({"field": "category", "message": "Catégorie invalide."})
    if filters.search is not None and len(filters.search.strip()) < MIN_SEARCH_LENGTH:
        errors.append({"field": "search", "message": "Le terme de recherche doit contenir au moins 2 caractères."})
    if errors:
        raise ValidationFailed(errors)

    conditions = []
    if filters.category:
        conditions.append(Event.category == filters.category)
    if filters.start_date:
        conditions.append(Event.event_date >= filters.start_date)
    if filters.end_date:
        conditions.append(Event.event_date <= filters.end_date)
    if filters.min_price is not None:
        conditions.append(Event.price >= filters.min_price)
    if filters.max_price is not None:
        conditions.append(Event.price <= filters.max_price)
    if filters.location:
        conditions.append(Event.location.ilike(contains_pattern(filters.location), escape="\\"))
    if filters.search:
        conditions.append(_matches(filters.search))

    where = and_(*conditions) if conditions else true()

    total = db.execute(select(func.count()).select_from(Event).where(where)).scalar() or 0
    events = db.execute(
        select(Event)
        .where(where)
        .order_by(Event.event_date)
        .limit(filters.limit)
        .offset((filters.page - 1) * filters.limit)
    ).scalars().all()

    return EventListResponse(
        events=[_to_response(e) for e in events],
        pagination=paginate(filters.page, filters.limit, total),
    )


def search_events(db: Session, term: str) -> list[EventResponse]:
    """Recherche plein texte simple (titre, description, lieu)."""
    term = (term or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        raise ValidationFailed.single("q", "Le terme de recherche doit contenir au moins 2 caractères.")

    events = db.execute(
        select(Event).where(_matches(term)).order_by(Event.event_date)
    ).scalars().all()
    return [_to_response(e) for e in events]


def list_categories() -> list[Category]:
    return [Category(id=c, name=CATEGORY_LABELS[c]) for c in CATEGORIES]


def get_organizer_events(db: Session, organizer_id: uuid.UUID) -> list[OrganizerEvent]:
    """Événements d'un organisateur avec leurs statistiques de participation."""
    events = db.execute(
        select(Event).where(Event.organizer_id == organizer_id).order_by(Event.event_date)
    ).scalars().all()

    return [
        OrganizerEvent(**_to_response(e).model_dump(), participants=_participant_stats(db, e.id))
        for e in events
    ]


def get_statistics(db: Session) -> EventStatistics:
    now = utcnow()
    total = db.execute(select(func.count()).select_from(Event)).scalar() or 0
    upcoming = db.execute(
        select(func.count()).select_from(Event).where(Event.event_date > now)
    ).scalar() or 0
    average = db.execute(select(func.avg(Event.price))).scalar()

    return EventStatistics(
        total=total,
        upcoming=upcoming,
        past=total - upcoming,
        average_price=Decimal(str(average)).quantize(Decimal("0.01")) if average is not None else Decimal("0.00"),
    )


def paginate(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_more=page < total_pages,
    )


def contains_pattern(term: str) -> str:
    """Motif LIKE « contient » ; % et _ saisis par l'utilisateur sont pris littéralement."""
    escaped = term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _matches(term: str):
    pattern = contains_pattern(term)
    return or_(
        Event.title.ilike(pattern, escape="\\"),
        Event.description.ilike(pattern, escape="\\"),
        Event.location.ilike(pattern, escape="\\"),
    )


def _participant_stats(db: Session, event_id: uuid.UUID) -> ParticipantStats:
    """Compte les inscriptions actives par statut."""
    rows = db.execute(
        select(Inscription.status, func.count())
        .where(Inscription.event_id == event_id, Inscription.status != STATUS_CANCELLED)
        .group_by(Inscription.status)
    ).all()
    counts = {status: count for status, count in rows}
    confirmed = counts.get(STATUS_CONFIRMED, 0)
    pending = counts.get(STATUS_PENDING, 0)
    return ParticipantStats(total=confirmed + pending, confirmed=confirmed, pending=pending)


def _to_response(event: Event) -> EventResponse:
    """Construit le schéma de réponse avec les places restantes."""
    return EventResponse(
        id=event.id,
        title=event.title,
        description=event.description,
        category=event.category,
        location=event.location,
        event_date=event.event_date,
        price=event.price if event.price is not None else Decimal("0"),
        max_tickets=event.max_tickets,
        confirmed_count=event.confirmed_count or 0,
        remaining=ledger.remaining_for(event),
        organizer_id=event.organizer_id,
        image_url=event.image_url,
        photos=event.photos or [],
        is_past=event.event_date is not None and event.event_date < utcnow(),
        created_at=event.created_at,
        updated_at=event.updated_at,
    )
