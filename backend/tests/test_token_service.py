"""
Tests unitaires du service de tokens (émission / vérification JWT).
"""

import base64
import json
import uuid
from datetime import timedelta
from unittest.mock import MagicMock

import jwt
import pytest

from app.config import settings
from app.errors import TokenExpired, TokenInvalid, TokenMissing
from app.services.token_service import issue_token, verify_token


# --- Helpers ---

def make_user_mock(role="participant", token_version=0):
    user = MagicMock()
    user.id = uuid.uuid4()
    user.role = role
    user.token_version = token_version
    return user


def b64url(data: dict) -> str:
    raw = json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


# ============================================================
# Fenêtre de validité
# ============================================================

def test_verify_token_emis_valide():
    user = make_user_mock(role="organizer", token_version=3)
    identity = verify_token(issue_token(user))

    assert identity.user_id == user.id
    assert identity.role == "organizer"
    assert identity.version == 3


def test_verify_token_expire():
    user = make_user_mock()
    token = issue_token(user, expires_delta=timedelta(seconds=-1))

    with pytest.raises(TokenExpired):
        verify_token(token)


def test_verify_token_falsifie():
    """Payload modifié (rôle admin) avec la signature d'origine → TokenInvalid."""
    user = make_user_mock()
    header, payload, signature = issue_token(user).split(".")
    forged = b64url({"sub": str(user.id), "role": "admin", "ver": 0, "exp": 4102444800})

    with pytest.raises(TokenInvalid):
        verify_token(f"{header}.{forged}.{signature}")


def test_verify_token_autre_secret():
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "role": "participant", "exp": 4102444800},
        "un-autre-secret-de-plus-de-32-octets-pour-hs256",
        algorithm="HS256",
    )
    with pytest.raises(TokenInvalid):
        verify_token(token)


@pytest.mark.parametrize("token", [None, ""])
def test_verify_token_absent(token):
    with pytest.raises(TokenMissing):
        verify_token(token)


def test_verify_token_illisible():
    with pytest.raises(TokenInvalid):
        verify_token("pas.un.jwt")


def test_verify_token_role_inconnu():
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "role": "superuser", "exp": 4102444800},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    with pytest.raises(TokenInvalid):
        verify_token(token)


def test_verify_token_sans_expiration():
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "role": "participant"},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    with pytest.raises(TokenInvalid):
        verify_token(token)


def test_verify_token_sub_non_uuid():
    token = jwt.encode(
        {"sub": "42", "role": "participant", "exp": 4102444800},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    with pytest.raises(TokenInvalid):
        verify_token(token)


def test_issue_token_duree_par_defaut():
    user = make_user_mock()
    payload = jwt.decode(issue_token(user), settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert payload["exp"] - payload["iat"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
