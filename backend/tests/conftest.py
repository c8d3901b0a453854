"""
Configuration partagée pour tous les tests.

Deux familles de fixtures :
- client : BDD mockée (MagicMock), les services sont patchés test par test ;
- session_factory / db / db_client : vraie base SQLite dans un fichier temporaire,
  pour les tests de services et les scénarios de bout en bout.
"""

import os

# Les réglages sont lus à l'import de app.config : à définir avant tout import de l'application
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-with-at-least-32-bytes-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "10"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["ENV"] = "test"

import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.clock import utcnow
from app.database import Base, build_engine, build_session_factory, get_db
from app.deps import get_current_identity, get_optional_identity
from app.main import app
from app.models.event import Event
from app.models.user import ROLE_PARTICIPANT
from app.services import credential_store
from app.services.token_service import TokenIdentity

DEFAULT_PASSWORD = "MotDePasse2024"


@pytest.fixture
def client():
    """Client HTTP de test avec la BDD mockée."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def as_identity():
    """Simule un appelant authentifié (à combiner avec la fixture client)."""
    def _set(role: str = ROLE_PARTICIPANT, user_id: uuid.UUID = None) -> TokenIdentity:
        identity = TokenIdentity(user_id=user_id or uuid.uuid4(), role=role)
        app.dependency_overrides[get_current_identity] = lambda: identity
        app.dependency_overrides[get_optional_identity] = lambda: identity
        return identity
    return _set


@pytest.fixture
def session_factory(tmp_path):
    """Base SQLite fichier : plusieurs connexions (threads) voient les mêmes données."""
    engine = build_engine(f"sqlite:///{tmp_path / 'event_app_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def db_client(session_factory):
    """Client HTTP branché sur la base SQLite de test (aucun mock)."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Fabrique d'utilisateurs persistés (mot de passe : DEFAULT_PASSWORD)."""
    counter = {"n": 0}

    def _make(role: str = ROLE_PARTICIPANT, email: str = None, name: str = "Jean Dupont",
              password: str = DEFAULT_PASSWORD):
        counter["n"] += 1
        return credential_store.create_user(
            db,
            name=name,
            email=email or f"user{counter['n']}-{uuid.uuid4().hex[:6]}@example.com",
            password=password,
            role=role,
        )
    return _make


@pytest.fixture
def make_event(db):
    """Fabrique d'événements persistés, y compris dans le passé (hors validation du schéma)."""
    def _make(organizer, max_tickets=None, days=30, price=Decimal("0"), title="Concert de jazz",
              category="musique", location="Lyon"):
        event = Event(
            title=title,
            description="Une soirée de jazz en plein air.",
            category=category,
            location=location,
            event_date=utcnow() + timedelta(days=days),
            price=price,
            max_tickets=max_tickets,
            confirmed_count=0,
            organizer_id=organizer.id,
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event
    return _make


def identity_of(user) -> TokenIdentity:
    return TokenIdentity(user_id=user.id, role=user.role, version=user.token_version or 0)


@pytest.fixture
def identity_for():
    return identity_of
