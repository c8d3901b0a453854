"""
Taxonomie des erreurs métier.

Chaque erreur porte son code HTTP, un code machine stable et un message destiné
à l'utilisateur. Les handlers de app.main les convertissent en réponses JSON.
"""

from typing import List, Optional


class AppError(Exception):
    """Erreur de base de l'application."""
    status_code = 500
    code = "internal"
    message = "Une erreur interne est survenue."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code}


# --- Validation ---

class ValidationFailed(AppError):
    """Entrée invalide : liste de violations par champ, jamais journalisée comme faute serveur."""
    status_code = 400
    code = "validation_failed"
    message = "Erreurs de validation"

    def __init__(self, errors: List[dict], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailed":
        return cls([{"field": field, "message": message}])

    def to_dict(self) -> dict:
        return {"message": self.message, "errors": self.errors}


class MissingCredentials(AppError):
    status_code = 400
    code = "missing_credentials"
    message = "Email et mot de passe requis."


class Mismatch(AppError):
    status_code = 400
    code = "password_mismatch"
    message = "Les mots de passe ne correspondent pas."


class NoOp(AppError):
    status_code = 400
    code = "password_unchanged"
    message = "Le nouveau mot de passe doit être différent de l'ancien."


class InvalidOrExpiredToken(AppError):
    status_code = 400
    code = "invalid_or_expired_reset_token"
    message = "Le lien de réinitialisation est invalide ou a expiré."


# --- Authentification ---

class InvalidCredentials(AppError):
    status_code = 401
    code = "invalid_credentials"
    message = "Identifiants invalides."


class TokenMissing(AppError):
    status_code = 401
    code = "token_missing"
    message = "Token manquant."


class TokenInvalid(AppError):
    status_code = 401
    code = "token_invalid"
    message = "Token invalide."


class TokenExpired(AppError):
    status_code = 401
    code = "token_expired"
    message = "Token expiré."


# --- Autorisation ---

class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    message = "Accès refusé."


# --- Ressources absentes ---

class NotFound(AppError):
    status_code = 404
    code = "not_found"
    message = "Ressource introuvable."


class EventNotFound(NotFound):
    code = "event_not_found"
    message = "Événement introuvable."


# --- Conflits métier ---

class DuplicateEmail(AppError):
    status_code = 409
    code = "duplicate_email"
    message = "Un compte existe déjà avec cet email."


class AlreadyRegistered(AppError):
    status_code = 409
    code = "already_registered"
    message = "Vous êtes déjà inscrit à cet événement."


class SoldOut(AppError):
    status_code = 409
    code = "sold_out"
    message = "Plus de places disponibles."


class EventHasRegistrants(AppError):
    status_code = 409
    code = "event_has_registrants"
    message = "Impossible de supprimer : des personnes sont inscrites. Annulez d'abord l'événement."


class SelfModification(AppError):
    status_code = 409
    code = "self_modification"
    message = "Vous ne pouvez pas modifier votre propre compte administrateur."


class UserOwnsEvents(AppError):
    status_code = 409
    code = "user_owns_events"
    message = "Cet utilisateur a des événements. Supprimez d'abord les événements."


class InternalError(AppError):
    """Défaillance inattendue du stockage ou de l'infrastructure."""
