"""
Router des événements : catalogue public, détail et gestion par les organisateurs.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.deps import get_current_identity, get_optional_identity, require_roles
from app.models.user import ROLE_ADMIN, ROLE_ORGANIZER
from app.schemas.event import (
    Category,
    EventCreate,
    EventDetails,
    EventFilters,
    EventListResponse,
    EventResponse,
    EventUpdate,
    OrganizerEvent,
)
from app.schemas.inscription import Participant
from app.services import event_service, inscription_service
from app.services.token_service import TokenIdentity

router = APIRouter(prefix="/api/events", tags=["Événements"])


@router.get("/categories", response_model=List[Category], summary="Lister les catégories")
def list_categories():
    return event_service.list_categories()


@router.get("/organizer/my-events", response_model=List[OrganizerEvent], summary="Mes événements")
def my_events(
    identity: TokenIdentity = Depends(require_roles(ROLE_ORGANIZER, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    """Événements organisés par l'appelant, avec leurs statistiques de participation."""
    return event_service.get_organizer_events(db, identity.user_id)


@router.get("", response_model=EventListResponse, summary="Lister les événements")
def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    location: Optional[str] = Query(None, max_length=500),
    search: Optional[str] = Query(None, max_length=200),
    db: Session = Depends(get_db),
):
    """Liste paginée, triée par date, avec filtres facultatifs."""
    filters = EventFilters(
        page=page,
        limit=limit,
        category=category,
        start_date=start_date,
        end_date=end_date,
        min_price=min_price,
        max_price=max_price,
        location=location,
        search=search,
    )
    return event_service.list_events(db, filters)


@router.get("/search", response_model=List[EventResponse], summary="Rechercher des événements")
def search_events(q: str = Query(..., max_length=200), db: Session = Depends(get_db)):
    return event_service.search_events(db, q)


@router.get("/{event_id}", response_model=EventDetails, summary="Détail d'un événement")
def get_event(
    event_id: uuid.UUID,
    identity: Optional[TokenIdentity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    """Si l'appelant est connecté, son inscription éventuelle est incluse."""
    return event_service.get_event_details(db, event_id, identity.user_id if identity else None)


@router.post("", response_model=EventResponse, status_code=201, summary="Créer un événement")
def create_event(
    data: EventCreate,
    identity: TokenIdentity = Depends(require_roles(ROLE_ORGANIZER, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    """La date doit être dans le futur ; l'appelant devient l'organisateur."""
    return event_service.create_event(db, data, identity)


@router.put("/{event_id}", response_model=EventResponse, summary="Modifier un événement")
def update_event(
    event_id: uuid.UUID,
    data: EventUpdate,
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Seuls les champs fournis sont modifiés.
    Réservé à l'organisateur de l'événement ou à un administrateur.
    """
    return event_service.update_event(db, event_id, data, identity)


@router.delete("/{event_id}", status_code=204, summary="Supprimer un événement")
def delete_event(
    event_id: uuid.UUID,
    identity: TokenIdentity = Depends(require_roles(ROLE_ORGANIZER, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    """Refusé si l'événement est à venir et compte des inscrits confirmés."""
    event_service.delete_event(db, event_id, identity)


@router.get("/{event_id}/inscriptions", response_model=List[Participant], summary="Participants d'un événement")
def list_participants(
    event_id: uuid.UUID,
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Réservé à l'organisateur de l'événement ou à un administrateur."""
    return inscription_service.list_for_event(db, event_id, identity)
