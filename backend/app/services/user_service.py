"""
Service métier pour l'administration des utilisateurs : profil, rôles,
suppression de compte, tableau de bord et statistiques de la plateforme.
"""

import logging
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from app.clock import utcnow
from app.errors import NotFound, SelfModification, UserOwnsEvents
from app.models.event import Event
from app.models.inscription import STATUS_CANCELLED, STATUS_CONFIRMED, Inscription
from app.models.payment import Payment
from app.models.user import ROLE_ADMIN, ROLE_ORGANIZER, ROLES, User
from app.schemas.user import (
    Dashboard,
    ProfileUpdate,
    UserDetail,
    UserListResponse,
    UserPublic,
    UserStatistics,
)
from app.services import ledger
from app.services.event_service import get_statistics as get_event_statistics
from app.services.event_service import contains_pattern, paginate
from app.services.token_service import TokenIdentity

logger = logging.getLogger(__name__)

NEW_USER_WINDOW_DAYS = 30


def _get_user(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("Utilisateur introuvable.")
    return user


def get_profile(db: Session, user_id: uuid.UUID) -> UserDetail:
    return UserDetail.model_validate(_get_user(db, user_id))


def update_profile(db: Session, user_id: uuid.UUID, data: ProfileUpdate) -> UserDetail:
    """Seul le nom est modifiable par l'utilisateur (email, rôle et mot de passe ont leurs propres flux)."""
    user = _get_user(db, user_id)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return UserDetail.model_validate(user)


def list_users(
    db: Session,
    page: int = 1,
    limit: int = 20,
    role: Optional[str] = None,
    search: Optional[str] = None,
) -> UserListResponse:
    """Liste paginée des utilisateurs, les plus récents d'abord (administration)."""
    conditions = []
    if role:
        conditions.append(User.role == role)
    if search:
        pattern = contains_pattern(search)
        conditions.append(or_(User.name.ilike(pattern, escape="\\"), User.email.ilike(pattern, escape="\\")))

    total = db.execute(select(func.count()).select_from(User).where(*conditions)).scalar() or 0
    users = db.execute(
        select(User)
        .where(*conditions)
        .order_by(User.created_at.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    ).scalars().all()

    return UserListResponse(
        users=[UserPublic.model_validate(u) for u in users],
        pagination=paginate(page, limit, total),
    )


def change_role(db: Session, user_id: uuid.UUID, role: str, identity: TokenIdentity) -> UserDetail:
    """
    Change le rôle d'un utilisateur (administrateur uniquement).
    Un administrateur ne peut pas modifier son propre rôle (SelfModification).
    Les tokens déjà émis pour ce compte sont révoqués.
    """
    if user_id == identity.user_id:
        raise SelfModification()

    user = _get_user(db, user_id)
    previous = user.role
    user.role = role
    user.token_version = (user.token_version or 0) + 1
    db.commit()
    db.refresh(user)

    logger.info("Rôle de %s modifié par %s : %s → %s", user.id, identity.user_id, previous, role)
    return UserDetail.model_validate(user)


def delete_user(db: Session, user_id: uuid.UUID, identity: TokenIdentity) -> None:
    """
    Supprime un compte (administrateur uniquement, jamais le sien).
    Lève UserOwnsEvents si l'utilisateur organise encore des événements.
    Ses inscriptions actives sont annulées pour rendre les places.
    """
    if user_id == identity.user_id:
        raise SelfModification("Vous ne pouvez pas supprimer votre propre compte.")

    user = _get_user(db, user_id)

    owned = db.execute(
        select(func.count()).select_from(Event).where(Event.organizer_id == user.id)
    ).scalar() or 0
    if owned:
        raise UserOwnsEvents()

    released = ledger.cancel_all_for_user(db, user.id)
    db.execute(delete(Payment).where(Payment.user_id == user.id))
    db.execute(delete(Inscription).where(Inscription.user_id == user.id))
    db.delete(user)
    db.commit()

    logger.info("Utilisateur %s supprimé par %s (%d inscription(s) libérée(s))",
                user_id, identity.user_id, released)


def get_dashboard(db: Session, user_id: uuid.UUID) -> Dashboard:
    """Profil et statistiques adaptées au rôle de l'utilisateur."""
    user = _get_user(db, user_id)
    now = utcnow()

    if user.role == ROLE_ORGANIZER:
        total_events = db.execute(
            select(func.count()).select_from(Event).where(Event.organizer_id == user.id)
        ).scalar() or 0
        upcoming = db.execute(
            select(func.count()).select_from(Event)
            .where(Event.organizer_id == user.id, Event.event_date > now)
        ).scalar() or 0
        participants = db.execute(
            select(func.coalesce(func.sum(Event.confirmed_count), 0))
            .where(Event.organizer_id == user.id)
        ).scalar() or 0
        stats = {
            "total_events": total_events,
            "upcoming_events": upcoming,
            "past_events": total_events - upcoming,
            "total_participants": int(participants),
        }
    elif user.role == ROLE_ADMIN:
        stats = {
            "total_users": db.execute(select(func.count()).select_from(User)).scalar() or 0,
            "total_events": db.execute(select(func.count()).select_from(Event)).scalar() or 0,
            "total_inscriptions": db.execute(
                select(func.count()).select_from(Inscription)
                .where(Inscription.status != STATUS_CANCELLED)
            ).scalar() or 0,
        }
    else:
        total = db.execute(
            select(func.count()).select_from(Inscription)
            .where(Inscription.user_id == user.id, Inscription.status != STATUS_CANCELLED)
        ).scalar() or 0
        upcoming = db.execute(
            select(func.count()).select_from(Inscription)
            .join(Event, Event.id == Inscription.event_id)
            .where(
                Inscription.user_id == user.id,
                Inscription.status == STATUS_CONFIRMED,
                Event.event_date > now,
            )
        ).scalar() or 0
        stats = {
            "total_inscriptions": total,
            "upcoming_events": upcoming,
            "past_events": total - upcoming,
        }

    return Dashboard(user=UserDetail.model_validate(user), stats=stats)


def get_user_statistics(db: Session) -> UserStatistics:
    rows = db.execute(select(User.role, func.count()).group_by(User.role)).all()
    by_role = {role: 0 for role in ROLES}
    by_role.update({role: count for role, count in rows})

    since = utcnow() - timedelta(days=NEW_USER_WINDOW_DAYS)
    new_users = db.execute(
        select(func.count()).select_from(User).where(User.created_at >= since)
    ).scalar() or 0

    return UserStatistics(total=sum(by_role.values()), new_users=new_users, by_role=by_role)


def get_platform_statistics(db: Session) -> dict:
    """Vue d'ensemble pour l'administration : utilisateurs, événements et inscriptions."""
    rows = db.execute(
        select(Inscription.status, func.count()).group_by(Inscription.status)
    ).all()

    return {
        "users": get_user_statistics(db).model_dump(),
        "events": get_event_statistics(db).model_dump(),
        "inscriptions": {status: count for status, count in rows},
    }
