"""
Service métier d'authentification : inscription, connexion, changement et
réinitialisation du mot de passe.

Cycle de vie d'un compte :
  Non inscrit → Actif (Normal)
  Actif (Normal) → Actif (Réinitialisation en attente) via request_password_reset
  Réinitialisation en attente → Normal à la consommation du token ou à son expiration
"""

import logging
import secrets
import uuid
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.errors import (
    InvalidCredentials,
    InvalidOrExpiredToken,
    Mismatch,
    MissingCredentials,
    NoOp,
    NotFound,
)
from app.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    MessageResponse,
    PasswordChangedResponse,
    RegisterRequest,
)
from app.schemas.user import UserPublic
from app.services import credential_store, email_service
from app.services.token_service import issue_token

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = (
    "Si un compte existe avec cet email, un lien de réinitialisation vient d'être envoyé."
)

ResetNotifier = Callable[[str, str, str], None]


def register(db: Session, data: RegisterRequest) -> AuthResponse:
    """
    Crée le compte puis émet un token.
    Les règles de format (nom, email, mot de passe, rôle) sont déjà vérifiées par RegisterRequest.
    Lève DuplicateEmail si l'email est déjà utilisé.
    """
    user = credential_store.create_user(
        db,
        name=data.name,
        email=data.email,
        password=data.password,
        role=data.role,
    )
    return AuthResponse(user=UserPublic.model_validate(user), token=issue_token(user))


def login(db: Session, email: str, password: str) -> AuthResponse:
    """
    Vérifie les identifiants et émet un token.
    Un seul message d'échec, que l'email existe ou non.
    """
    if not email or not email.strip() or not password:
        raise MissingCredentials()

    user = credential_store.verify_password(db, email, password)
    if user is None:
        raise InvalidCredentials()

    credential_store.update_last_login(db, user.id)
    db.refresh(user)

    logger.info("Connexion réussie : %s", user.id)
    return AuthResponse(user=UserPublic.model_validate(user), token=issue_token(user))


def change_password(
    db: Session, user_id: uuid.UUID, data: ChangePasswordRequest
) -> PasswordChangedResponse:
    """
    Change le mot de passe d'un utilisateur authentifié.

    Ordre des contrôles :
    1. L'ancien mot de passe est correct (InvalidCredentials)
    2. Nouveau == confirmation (Mismatch)
    3. Nouveau != ancien (NoOp)
    Les tokens existants sont révoqués (incrément de token_version) : le client doit se reconnecter.
    """
    user = credential_store.find_by_id(db, user_id)
    if user is None:
        raise NotFound("Utilisateur introuvable.")

    if not credential_store.check_password(data.old_password, user.password_hash):
        raise InvalidCredentials("Ancien mot de passe incorrect.")
    if data.new_password != data.confirm_password:
        raise Mismatch()
    if data.new_password == data.old_password:
        raise NoOp()

    credential_store.update_password(db, user.id, data.new_password)
    return PasswordChangedResponse(
        message="Mot de passe modifié. Veuillez vous reconnecter.",
        reauthentication_required=True,
    )


def request_password_reset(
    db: Session, email: str, notifier: Optional[ResetNotifier] = None
) -> MessageResponse:
    """
    Génère un token de réinitialisation (valable RESET_TOKEN_EXPIRE_MINUTES) et le
    transmet au service d'email. La réponse est identique que le compte existe ou non.
    """
    notifier = notifier or email_service.send_password_reset_email

    user = credential_store.find_by_email(db, email)
    if user is None:
        logger.info("Demande de réinitialisation pour un email inconnu")
        return MessageResponse(message=RESET_REQUESTED_MESSAGE)

    token = secrets.token_urlsafe(32)
    credential_store.store_reset_token(db, user, token)

    try:
        notifier(user.email, user.name, token)
    except Exception as exc:
        # L'échec d'envoi ne doit pas révéler l'existence du compte
        logger.error("Échec d'envoi de l'email de réinitialisation à %s : %s", user.id, exc)

    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


def reset_password(db: Session, token: str, new_password: str) -> MessageResponse:
    """
    Consomme un token de réinitialisation (usage unique) et remplace le mot de passe.
    Lève InvalidOrExpiredToken si le token est inconnu, déjà utilisé ou expiré.
    """
    # Consommé dans la même transaction que le nouveau hash
    user = credential_store.consume_reset_token(db, token)
    if user is None:
        raise InvalidOrExpiredToken()

    credential_store.update_password(db, user.id, new_password)

    logger.info("Mot de passe réinitialisé pour l'utilisateur %s", user.id)
    return MessageResponse(message="Mot de passe réinitialisé avec succès.")
