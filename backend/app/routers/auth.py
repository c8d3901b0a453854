"""
Router d'authentification : inscription, connexion, vérification du token et
gestion du mot de passe.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.deps import get_current_identity
from app.errors import TokenInvalid
from app.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    PasswordChangedResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    TokenVerification,
)
from app.schemas.user import UserPublic
from app.services import auth_service, credential_store
from app.services.token_service import TokenIdentity

router = APIRouter(prefix="/api/auth", tags=["Authentification"])


@router.post("/register", response_model=AuthResponse, status_code=201, summary="Créer un compte")
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """
    Crée un compte (rôle participant par défaut) et retourne un token.
    Le mot de passe doit respecter la politique de complexité.
    """
    return auth_service.register(db, data)


@router.post("/login", response_model=AuthResponse, summary="Se connecter")
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """Retourne l'utilisateur et un token. Message d'échec identique que l'email existe ou non."""
    return auth_service.login(db, data.email, data.password)


@router.get("/verify", response_model=TokenVerification, summary="Vérifier le token")
def verify(identity: TokenIdentity = Depends(get_current_identity), db: Session = Depends(get_db)):
    user = credential_store.find_by_id(db, identity.user_id)
    if user is None:
        raise TokenInvalid()
    return TokenVerification(user=UserPublic.model_validate(user))


@router.post("/change-password", response_model=PasswordChangedResponse, summary="Changer de mot de passe")
def change_password(
    data: ChangePasswordRequest,
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Les tokens émis auparavant sont révoqués : le client doit se reconnecter."""
    return auth_service.change_password(db, identity.user_id, data)


@router.post("/request-password-reset", response_model=MessageResponse, summary="Demander une réinitialisation")
def request_password_reset(data: PasswordResetRequest, db: Session = Depends(get_db)):
    """Réponse identique que le compte existe ou non."""
    return auth_service.request_password_reset(db, data.email)


@router.post("/reset-password", response_model=MessageResponse, summary="Réinitialiser le mot de passe")
def reset_password(data: PasswordResetConfirm, db: Session = Depends(get_db)):
    return auth_service.reset_password(db, data.token, data.new_password)
