"""
Émission et vérification des tokens bearer (JWT signé HS256).

Le token embarque l'identifiant, le rôle au moment de l'émission et la version
de token de l'utilisateur. La vérification est sans état ; la comparaison de la
version avec la base est faite par la dépendance get_current_identity (app.deps).
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from app.config import settings
from app.errors import TokenExpired, TokenInvalid, TokenMissing
from app.models.user import ROLES, User


@dataclass(frozen=True)
class TokenIdentity:
    user_id: uuid.UUID
    role: str
    version: int = 0


def issue_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Signe un token pour l'utilisateur. Durée de vie par défaut : ACCESS_TOKEN_EXPIRE_MINUTES."""
    now = datetime.now(timezone.utc)
    lifetime = expires_delta if expires_delta is not None else timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "ver": user.token_version or 0,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: Optional[str]) -> TokenIdentity:
    """
    Vérifie la signature et l'expiration du token.
    Lève TokenMissing, TokenExpired ou TokenInvalid selon le cas.
    """
    if not token:
        raise TokenMissing()

    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.InvalidTokenError:
        raise TokenInvalid()

    try:
        user_id = uuid.UUID(payload["sub"])
        version = int(payload.get("ver", 0))
    except (TypeError, ValueError):
        raise TokenInvalid()

    role = payload.get("role")
    if role not in ROLES:
        raise TokenInvalid()

    return TokenIdentity(user_id=user_id, role=role, version=version)
