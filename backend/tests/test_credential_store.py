"""
Tests du stockage des identifiants (base SQLite de test).
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import update

from app.clock import utcnow
from app.errors import DuplicateEmail
from app.models.user import ROLE_ORGANIZER, User
from app.services import credential_store


# ============================================================
# Création et unicité de l'email
# ============================================================

def test_create_user_email_normalise(db):
    user = credential_store.create_user(db, "Jean Dupont", "  Jean@Example.COM ", "MotDePasse2024")

    assert user.email == "jean@example.com"
    assert user.role == "participant"
    assert user.token_version == 0


def test_create_user_hash_bcrypt_jamais_en_clair(db):
    user = credential_store.create_user(db, "Jean Dupont", "jean@example.com", "MotDePasse2024")

    assert user.password_hash != "MotDePasse2024"
    assert user.password_hash.startswith("$2b$10$")


def test_create_user_email_duplique_casse_differente(db):
    credential_store.create_user(db, "Jean Dupont", "Test@Example.com", "MotDePasse2024")

    with pytest.raises(DuplicateEmail):
        credential_store.create_user(db, "Autre Jean", "test@example.com", "MotDePasse2024")


def test_create_user_role_fourni(db):
    user = credential_store.create_user(db, "Org", "org@example.com", "MotDePasse2024", role=ROLE_ORGANIZER)
    assert user.role == ROLE_ORGANIZER


# ============================================================
# Vérification et changement de mot de passe
# ============================================================

def test_verify_password_aller_retour(db):
    """Le mot de passe fonctionne après création, puis seul le nouveau après changement."""
    user = credential_store.create_user(db, "Jean Dupont", "jean@example.com", "MotDePasse2024")
    assert credential_store.verify_password(db, "jean@example.com", "MotDePasse2024").id == user.id

    credential_store.update_password(db, user.id, "NouveauSecret2025")

    assert credential_store.verify_password(db, "jean@example.com", "NouveauSecret2025").id == user.id
    assert credential_store.verify_password(db, "jean@example.com", "MotDePasse2024") is None


def test_verify_password_email_inconnu(db):
    assert credential_store.verify_password(db, "inconnu@example.com", "MotDePasse2024") is None


def test_verify_password_email_casse_differente(db):
    credential_store.create_user(db, "Jean Dupont", "jean@example.com", "MotDePasse2024")
    assert credential_store.verify_password(db, "JEAN@example.com", "MotDePasse2024") is not None


def test_update_password_incremente_token_version(db):
    user = credential_store.create_user(db, "Jean Dupont", "jean@example.com", "MotDePasse2024")
    updated = credential_store.update_password(db, user.id, "NouveauSecret2025")
    assert updated.token_version == 1


def test_check_password_trop_long_refuse():
    hashed = credential_store.hash_password("MotDePasse2024")
    assert credential_store.check_password("A" * 100, hashed) is False


def test_update_last_login(db):
    user = credential_store.create_user(db, "Jean Dupont", "jean@example.com", "MotDePasse2024")
    assert user.last_login is None

    credential_store.update_last_login(db, user.id)
    db.refresh(user)
    assert user.last_login is not None


# ============================================================
# Tokens de réinitialisation
# ============================================================

def test_reset_token_stocke_sous_forme_d_empreinte(db):
    user = credential_store.create_user(db, "Jean Dupont", "jean@example.com", "MotDePasse2024")
    credential_store.store_reset_token(db, user, "token-en-clair")

    db.refresh(user)
    assert user.reset_token_hash == credential_store.hash_reset_token("token-en-clair")
    assert user.reset_token_hash != "token-en-clair"
    assert credential_store.find_by_reset_token(db, "token-en-clair").id == user.id


def test_reset_token_expire_introuvable(db):
    user = credential_store.create_user(db, "Jean Dupont", "jean@example.com", "MotDePasse2024")
    credential_store.store_reset_token(db, user, "token-expire")
    user.reset_token_expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    assert credential_store.find_by_reset_token(db, "token-expire") is None


def test_purge_expired_reset_tokens(db):
    expired = credential_store.create_user(db, "Jean Dupont", "jean@example.com", "MotDePasse2024")
    active = credential_store.create_user(db, "Anne Martin", "anne@example.com", "MotDePasse2024")
    credential_store.store_reset_token(db, expired, "vieux")
    credential_store.store_reset_token(db, active, "recent")
    expired.reset_token_expires_at = utcnow() - timedelta(hours=2)
    db.commit()

    assert credential_store.purge_expired_reset_tokens(db) == 1

    db.expire_all()
    assert db.get(User, expired.id).reset_token_hash is None
    assert db.get(User, active.id).reset_token_hash is not None


def test_consume_reset_token_usage_unique(db):
    user = credential_store.create_user(db, "Jean Dupont", "jean@example.com", "MotDePasse2024")
    credential_store.store_reset_token(db, user, "token-unique")

    assert credential_store.consume_reset_token(db, "token-unique").id == user.id
    db.commit()
    assert credential_store.consume_reset_token(db, "token-unique") is None


def test_consume_reset_token_deja_consomme_entre_lecture_et_effacement(db):
    """Le token a été consommé par une autre requête après la lecture : l'effacement conditionnel échoue."""
    user = credential_store.create_user(db, "Jean Dupont", "jean@example.com", "MotDePasse2024")
    credential_store.store_reset_token(db, user, "token-dispute")
    db.execute(
        update(User).where(User.id == user.id).values(reset_token_hash=None, reset_token_expires_at=None)
    )
    db.commit()

    with patch("app.services.credential_store.find_by_reset_token", return_value=user):
        assert credential_store.consume_reset_token(db, "token-dispute") is None
