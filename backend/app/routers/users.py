"""
Router des utilisateurs : profil, tableau de bord et administration des comptes.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.deps import get_current_identity, require_roles
from app.models.user import ROLE_ADMIN
from app.schemas.user import Dashboard, ProfileUpdate, RoleChange, UserDetail, UserListResponse
from app.services import user_service
from app.services.policy import ensure_owner_or_admin
from app.services.token_service import TokenIdentity

router = APIRouter(prefix="/api/users", tags=["Utilisateurs"])


@router.get("", response_model=UserListResponse, summary="Lister les utilisateurs")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    identity: TokenIdentity = Depends(require_roles(ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    return user_service.list_users(db, page=page, limit=limit, role=role, search=search)


@router.get("/me", response_model=UserDetail, summary="Mon profil")
def get_me(identity: TokenIdentity = Depends(get_current_identity), db: Session = Depends(get_db)):
    return user_service.get_profile(db, identity.user_id)


@router.put("/me", response_model=UserDetail, summary="Modifier mon profil")
def update_me(
    data: ProfileUpdate,
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Seul le nom est modifiable ici."""
    return user_service.update_profile(db, identity.user_id, data)


@router.get("/me/dashboard", response_model=Dashboard, summary="Mon tableau de bord")
def get_dashboard(identity: TokenIdentity = Depends(get_current_identity), db: Session = Depends(get_db)):
    return user_service.get_dashboard(db, identity.user_id)


@router.get("/statistics", summary="Statistiques de la plateforme")
def get_statistics(
    identity: TokenIdentity = Depends(require_roles(ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    return user_service.get_platform_statistics(db)


@router.get("/{user_id}", response_model=UserDetail, summary="Détail d'un utilisateur")
def get_user(
    user_id: uuid.UUID,
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Accessible à l'utilisateur lui-même ou à un administrateur."""
    ensure_owner_or_admin(identity, user_id)
    return user_service.get_profile(db, user_id)


@router.put("/{user_id}/role", response_model=UserDetail, summary="Changer le rôle d'un utilisateur")
def change_role(
    user_id: uuid.UUID,
    data: RoleChange,
    identity: TokenIdentity = Depends(require_roles(ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    return user_service.change_role(db, user_id, data.role, identity)


@router.delete("/{user_id}", status_code=204, summary="Supprimer un utilisateur")
def delete_user(
    user_id: uuid.UUID,
    identity: TokenIdentity = Depends(require_roles(ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    """Refusé si l'utilisateur organise encore des événements."""
    user_service.delete_user(db, user_id, identity)
