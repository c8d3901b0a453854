"""
Schémas Pydantic pour les utilisateurs.
Aucun schéma de réponse n'expose le hash du mot de passe ni le token de réinitialisation.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator

from app.models.user import ROLES
from app.validators import name_violations, raise_violations


class UserPublic(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserDetail(UserPublic):
    """Vue complète pour l'utilisateur lui-même ou un administrateur."""
    last_login: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    """Seuls les champs listés ici sont modifiables par l'utilisateur."""
    name: Optional[str] = None

    @field_validator("name")
    @classmethod
    def valid_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        raise_violations(name_violations(v))
        return v.strip()


class RoleChange(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def valid_role(cls, v: str) -> str:
        if v not in ROLES:
            raise ValueError(f"Rôle invalide. Valeurs acceptées : {', '.join(ROLES)}")
        return v


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


class UserListResponse(BaseModel):
    users: List[UserPublic]
    pagination: Pagination


class UserStatistics(BaseModel):
    total: int
    new_users: int  # inscrits depuis 30 jours
    by_role: Dict[str, int]


class Dashboard(BaseModel):
    user: UserDetail
    stats: Dict[str, int]
