"""
Dépendances FastAPI d'authentification et d'autorisation.

get_current_identity vérifie le token bearer puis compare sa version avec celle
du compte en base : un changement de rôle ou de mot de passe révoque les tokens
émis auparavant.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import TokenInvalid
from app.models.user import User
from app.services.policy import ensure_allowed
from app.services.token_service import TokenIdentity, verify_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _check_against_account(db: Session, identity: TokenIdentity) -> TokenIdentity:
    user = db.get(User, identity.user_id)
    if user is None:
        logger.info("Token rejeté : compte %s inexistant", identity.user_id)
        raise TokenInvalid()
    if (user.token_version or 0) != identity.version:
        logger.info("Token rejeté : version révoquée pour %s", identity.user_id)
        raise TokenInvalid()
    return identity


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> TokenIdentity:
    """Identité de l'appelant. Lève TokenMissing, TokenExpired ou TokenInvalid."""
    token = credentials.credentials if credentials else None
    return _check_against_account(db, verify_token(token))


def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[TokenIdentity]:
    """Comme get_current_identity, mais None pour un visiteur anonyme."""
    if credentials is None:
        return None
    return _check_against_account(db, verify_token(credentials.credentials))


def require_roles(*roles: str):
    """Fabrique une dépendance qui n'accepte que les rôles listés (Forbidden sinon)."""

    def dependency(identity: TokenIdentity = Depends(get_current_identity)) -> TokenIdentity:
        ensure_allowed(identity.role, roles)
        return identity

    return dependency
