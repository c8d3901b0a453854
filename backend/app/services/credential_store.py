"""
Stockage des identifiants utilisateurs.

Seul module autorisé à écrire un hash de mot de passe. Les hash bcrypt ne sortent
jamais d'ici : les appelants manipulent des schémas UserPublic.
"""

import hashlib
import logging
import uuid
from datetime import timedelta
from typing import Optional

import bcrypt
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.clock import utcnow
from app.config import settings
from app.errors import DuplicateEmail, NotFound
from app.models.user import ROLE_PARTICIPANT, User
from app.validators import PASSWORD_MAX_BYTES

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(password: str) -> str:
    """Hache un mot de passe avec bcrypt (coût BCRYPT_ROUNDS, sel aléatoire)."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    encoded = password.encode("utf-8")
    # Un mot de passe plus long que la limite bcrypt n'a jamais pu être enregistré
    if len(encoded) > PASSWORD_MAX_BYTES:
        return False
    return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: Optional[str] = None,
) -> User:
    """
    Crée un utilisateur.
    Lève DuplicateEmail si l'email (comparé en minuscules) est déjà utilisé.
    """
    email = normalize_email(email)
    if find_by_email(db, email) is not None:
        raise DuplicateEmail()

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role or ROLE_PARTICIPANT,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Deux inscriptions simultanées avec le même email : la contrainte UNIQUE tranche
        db.rollback()
        raise DuplicateEmail()
    db.refresh(user)

    logger.info("Utilisateur créé : %s (%s, rôle %s)", user.id, user.email, user.role)
    return user


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(
        select(User).where(User.email == normalize_email(email))
    ).scalar()


def find_by_id(db: Session, user_id: uuid.UUID) -> Optional[User]:
    return db.get(User, user_id)


def verify_password(db: Session, email: str, password: str) -> Optional[User]:
    """
    Retourne l'utilisateur si le couple email / mot de passe est correct, sinon None.
    Email inconnu et mot de passe erroné ne sont distingués que dans les logs.
    """
    user = find_by_email(db, email)
    if user is None:
        logger.info("Échec de connexion : email inconnu (%s)", normalize_email(email))
        return None
    if not check_password(password, user.password_hash):
        logger.info("Échec de connexion : mot de passe erroné pour %s", user.id)
        return None
    return user


def update_password(db: Session, user_id: uuid.UUID, new_password: str) -> User:
    """
    Remplace le hash du mot de passe.
    token_version est incrémenté : les tokens émis auparavant deviennent invalides.
    """
    user = find_by_id(db, user_id)
    if user is None:
        raise NotFound("Utilisateur introuvable.")

    user.password_hash = hash_password(new_password)
    user.token_version = (user.token_version or 0) + 1
    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)

    logger.info("Mot de passe mis à jour pour l'utilisateur %s", user.id)
    return user


def update_last_login(db: Session, user_id: uuid.UUID) -> None:
    """Met à jour la date de dernière connexion. Un échec ne doit jamais bloquer la connexion."""
    try:
        db.execute(
            update(User).where(User.id == user_id).values(last_login=utcnow())
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Impossible de mettre à jour last_login pour %s : %s", user_id, exc)


def store_reset_token(db: Session, user: User, token: str) -> None:
    """Enregistre l'empreinte du token de réinitialisation avec son expiration."""
    user.reset_token_hash = hash_reset_token(token)
    user.reset_token_expires_at = utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    db.commit()


def find_by_reset_token(db: Session, token: str) -> Optional[User]:
    """Retourne l'utilisateur détenteur de ce token, uniquement s'il n'a pas expiré."""
    return db.execute(
        select(User).where(
            User.reset_token_hash == hash_reset_token(token),
            User.reset_token_expires_at > utcnow(),
        )
    ).scalar()


def consume_reset_token(db: Session, token: str) -> Optional[User]:
    """
    Efface le token de réinitialisation et retourne son détenteur, ou None.
    L'effacement est conditionnel : de deux consommations concurrentes, une seule
    efface la ligne, l'autre obtient None. Ne commit pas.
    """
    user = find_by_reset_token(db, token)
    if user is None:
        return None

    result = db.execute(
        update(User)
        .where(
            User.id == user.id,
            User.reset_token_hash == hash_reset_token(token),
            User.reset_token_expires_at > utcnow(),
        )
        .values(reset_token_hash=None, reset_token_expires_at=None)
    )
    if result.rowcount != 1:
        db.rollback()
        return None
    return user


def purge_expired_reset_tokens(db: Session) -> int:
    """Efface les tokens de réinitialisation expirés. Retourne le nombre de comptes nettoyés."""
    result = db.execute(
        update(User)
        .where(
            User.reset_token_hash.is_not(None),
            User.reset_token_expires_at <= utcnow(),
        )
        .values(reset_token_hash=None, reset_token_expires_at=None)
    )
    db.commit()
    return result.rowcount or 0
