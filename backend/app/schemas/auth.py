"""
Schémas Pydantic pour l'inscription, la connexion et la gestion du mot de passe.
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator

from app.models.user import ROLES
from app.schemas.user import UserPublic
from app.validators import (
    email_domain_violations,
    name_violations,
    password_violations,
    raise_violations,
)


class RegisterRequest(BaseModel):
    """Corps de requête POST /api/auth/register."""
    name: str
    email: EmailStr
    password: str
    role: Optional[str] = None

    @field_validator("name")
    @classmethod
    def valid_name(cls, v: str) -> str:
        raise_violations(name_violations(v))
        return v.strip()

    @field_validator("email")
    @classmethod
    def not_disposable(cls, v: str) -> str:
        raise_violations(email_domain_violations(v))
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        raise_violations(password_violations(v))
        return v

    @field_validator("role")
    @classmethod
    def valid_role(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ROLES:
            raise ValueError(f"Rôle invalide. Valeurs acceptées : {', '.join(ROLES)}")
        return v


class LoginRequest(BaseModel):
    """
    Corps de requête POST /api/auth/login.
    Pas de contrôle de format ici : un email mal formé donne le même échec générique.
    """
    email: str = ""
    password: str = ""


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        raise_violations(password_violations(v))
        return v


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str

    @field_validator("token")
    @classmethod
    def token_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le token de réinitialisation est requis.")
        return v.strip()

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        raise_violations(password_violations(v))
        return v


class AuthResponse(BaseModel):
    """Réponse de register / login : utilisateur (sans hash) + token bearer."""
    user: UserPublic
    token: str


class MessageResponse(BaseModel):
    message: str


class PasswordChangedResponse(BaseModel):
    message: str
    reauthentication_required: bool = True


class TokenVerification(BaseModel):
    user: UserPublic
    valid: bool = True
