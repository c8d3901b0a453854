"""
Modèle SQLAlchemy pour les événements.

confirmed_count est le compteur dénormalisé du registre de capacité : il n'est
modifié que par app.services.ledger, via des UPDATE conditionnels.
"""

import uuid
from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)

from app.database import Base

CATEGORIES = (
    "musique",
    "sport",
    "conference",
    "theatre",
    "cinema",
    "exposition",
    "festival",
    "atelier",
    "networking",
    "gastronomie",
    "autre",
)
DEFAULT_CATEGORY = "autre"


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_events_price_positive"),
        CheckConstraint("max_tickets IS NULL OR max_tickets > 0", name="ck_events_max_tickets_positive"),
        CheckConstraint("confirmed_count >= 0", name="ck_events_confirmed_count_positive"),
        # Dernier rempart de l'invariant de capacité
        CheckConstraint(
            "max_tickets IS NULL OR confirmed_count <= max_tickets",
            name="ck_events_capacity",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(30), nullable=False, default=DEFAULT_CATEGORY)
    location = Column(String(500), nullable=True)
    event_date = Column(DateTime, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    max_tickets = Column(Integer, nullable=True)  # NULL = places illimitées
    confirmed_count = Column(Integer, nullable=False, default=0)
    organizer_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    image_url = Column(String(500), nullable=True)
    photos = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
