"""
Schémas Pydantic pour les événements.

EventUpdate est la liste blanche des champs modifiables : organizer_id et
confirmed_count ne peuvent jamais être fournis par l'appelant.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, HttpUrl, field_validator

from app.clock import to_naive_utc, utcnow
from app.models.event import CATEGORIES, DEFAULT_CATEGORY
from app.schemas.user import Pagination

MAX_PHOTOS = 10


def _check_title(v: str) -> str:
    v = v.strip()
    if len(v) < 3 or len(v) > 200:
        raise ValueError("Le titre doit contenir entre 3 et 200 caractères.")
    return v


def _check_description(v: str) -> str:
    v = v.strip()
    if len(v) < 10 or len(v) > 2000:
        raise ValueError("La description doit contenir entre 10 et 2000 caractères.")
    return v


def _check_optional_description(v: Optional[str]) -> Optional[str]:
    return _check_description(v) if v is not None else v


def _check_location(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Le lieu est requis.")
    if len(v) > 500:
        raise ValueError("Le lieu ne peut pas dépasser 500 caractères.")
    return v


def _check_future(v: datetime) -> datetime:
    v = to_naive_utc(v)
    if v <= utcnow():
        raise ValueError("La date de l'événement doit être dans le futur.")
    return v


def _check_price(v: Decimal) -> Decimal:
    if v < 0:
        raise ValueError("Le prix ne peut pas être négatif.")
    if v.as_tuple().exponent < -2:
        raise ValueError("Le prix ne peut avoir que 2 décimales maximum.")
    return v


def _check_category(v: str) -> str:
    if v not in CATEGORIES:
        raise ValueError(f"Catégorie invalide. Valeurs acceptées : {', '.join(CATEGORIES)}")
    return v


def _check_max_tickets(v: Optional[int]) -> Optional[int]:
    if v is not None and v <= 0:
        raise ValueError("Le nombre de places doit être un entier positif.")
    return v


def _check_photos(v: Optional[List[HttpUrl]]) -> Optional[List[HttpUrl]]:
    if v is not None and len(v) > MAX_PHOTOS:
        raise ValueError(f"Maximum {MAX_PHOTOS} photos autorisées.")
    return v


class EventCreate(BaseModel):
    title: str
    description: str
    location: str
    event_date: datetime
    category: str = DEFAULT_CATEGORY
    price: Decimal = Decimal("0")
    max_tickets: Optional[int] = None  # None = places illimitées
    image_url: Optional[HttpUrl] = None
    photos: Optional[List[HttpUrl]] = None

    validate_title = field_validator("title")(_check_title)
    validate_description = field_validator("description")(_check_description)
    validate_location = field_validator("location")(_check_location)
    validate_event_date = field_validator("event_date")(_check_future)
    validate_category = field_validator("category")(_check_category)
    validate_price = field_validator("price")(_check_price)
    validate_max_tickets = field_validator("max_tickets")(_check_max_tickets)
    validate_photos = field_validator("photos")(_check_photos)


class EventUpdate(BaseModel):
    """Seuls les champs fournis sont modifiés (exclude_unset)."""
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    event_date: Optional[datetime] = None
    category: Optional[str] = None
    price: Optional[Decimal] = None
    max_tickets: Optional[int] = None  # null explicite = supprimer la limite
    image_url: Optional[HttpUrl] = None
    photos: Optional[List[HttpUrl]] = None

    @field_validator("title", "location", "event_date", "category", "price", mode="before")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Ce champ ne peut pas être vide.")
        return v

    validate_title = field_validator("title")(_check_title)
    validate_description = field_validator("description")(_check_optional_description)
    validate_location = field_validator("location")(_check_location)
    validate_event_date = field_validator("event_date")(_check_future)
    validate_category = field_validator("category")(_check_category)
    validate_price = field_validator("price")(_check_price)
    validate_max_tickets = field_validator("max_tickets")(_check_max_tickets)
    validate_photos = field_validator("photos")(_check_photos)


class EventResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str]
    category: str
    location: Optional[str]
    event_date: Optional[datetime]
    price: Decimal
    max_tickets: Optional[int]
    confirmed_count: int
    remaining: Optional[int]  # None = illimité
    organizer_id: uuid.UUID
    image_url: Optional[str]
    photos: List[str] = []
    is_past: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class OrganizerSummary(BaseModel):
    id: uuid.UUID
    name: str
    email: str


class ParticipantStats(BaseModel):
    total: int
    confirmed: int
    pending: int


class UserRegistration(BaseModel):
    inscription_id: uuid.UUID
    status: str
    registered_at: Optional[datetime]


class EventDetails(EventResponse):
    organizer: Optional[OrganizerSummary]
    participants: ParticipantStats
    user_registration: Optional[UserRegistration] = None


class OrganizerEvent(EventResponse):
    participants: ParticipantStats


class EventListResponse(BaseModel):
    events: List[EventResponse]
    pagination: Pagination


class EventFilters(BaseModel):
    """Filtres de GET /api/events (validés par le router via Query)."""
    page: int = 1
    limit: int = 10
    category: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    location: Optional[str] = None
    search: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else v


class Category(BaseModel):
    id: str
    name: str


class EventStatistics(BaseModel):
    total: int
    upcoming: int
    past: int
    average_price: Decimal
