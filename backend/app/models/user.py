"""
Modèle SQLAlchemy pour les utilisateurs.
"""

import uuid
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Uuid, func

from app.database import Base

ROLE_PARTICIPANT = "participant"
ROLE_ORGANIZER = "organizer"
ROLE_ADMIN = "admin"
ROLES = (ROLE_PARTICIPANT, ROLE_ORGANIZER, ROLE_ADMIN)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('participant', 'organizer', 'admin')", name="ck_users_role"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)  # toujours stocké en minuscules
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=ROLE_PARTICIPANT)
    # Incrémenté à chaque changement de rôle / mot de passe : invalide les tokens émis avant
    token_version = Column(Integer, nullable=False, default=0)
    reset_token_hash = Column(String(64), nullable=True, index=True)  # SHA-256 du token envoyé par email
    reset_token_expires_at = Column(DateTime, nullable=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
