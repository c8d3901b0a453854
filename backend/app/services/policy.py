"""
Politique d'autorisation en deux niveaux.

1. Contrôle de rôle : fonction pure (rôle, rôles requis) → autorisé ou non.
2. Contrôle de propriété : l'identité authentifiée doit être propriétaire de la
   ressource, sauf pour un administrateur. Appliqué par chaque opération de modification.
"""

import uuid
from typing import Iterable

from app.errors import Forbidden
from app.models.user import ROLE_ADMIN
from app.services.token_service import TokenIdentity


def is_allowed(role: str, required_roles: Iterable[str]) -> bool:
    return role in set(required_roles)


def ensure_allowed(role: str, required_roles: Iterable[str], message: str = None) -> None:
    if not is_allowed(role, required_roles):
        raise Forbidden(message)


def is_owner_or_admin(identity: TokenIdentity, owner_id: uuid.UUID) -> bool:
    return identity.role == ROLE_ADMIN or identity.user_id == owner_id


def ensure_owner_or_admin(identity: TokenIdentity, owner_id: uuid.UUID, message: str = None) -> None:
    if not is_owner_or_admin(identity, owner_id):
        raise Forbidden(message)
