"""
Règles de validation partagées (nom, email, mot de passe).

Chaque fonction retourne la liste complète des violations plutôt que de s'arrêter
à la première : les schémas Pydantic les remontent toutes au client.
"""

import re
from typing import List

from pydantic_core import PydanticCustomError

from app.config import settings

NAME_PATTERN = re.compile(r"^[a-zA-ZÀ-ÿ\s'-]+$")

DISPOSABLE_EMAIL_DOMAINS = {
    "tempmail.com",
    "throwaway.email",
    "mailinator.com",
    "yopmail.com",
    "guerrillamail.com",
    "10minutemail.com",
}

COMMON_PASSWORDS = {
    "password123",
    "admin123",
    "azerty123",
    "motdepasse123",
    "password1234",
    "azertyuiop123",
    "qwerty123456",
    "bienvenue123",
}

# bcrypt ignore (ou refuse) tout ce qui dépasse 72 octets
PASSWORD_MAX_BYTES = 72


def name_violations(name: str) -> List[str]:
    problems = []
    stripped = name.strip()
    if len(stripped) < 2 or len(stripped) > 100:
        problems.append("Le nom doit contenir entre 2 et 100 caractères.")
    if stripped and not NAME_PATTERN.match(stripped):
        problems.append("Le nom contient des caractères invalides.")
    return problems


def email_domain_violations(email: str) -> List[str]:
    domain = email.rsplit("@", 1)[-1].lower()
    if domain in DISPOSABLE_EMAIL_DOMAINS:
        return ["Les emails temporaires ne sont pas acceptés."]
    return []


def password_violations(password: str) -> List[str]:
    problems = []
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        problems.append(
            f"Le mot de passe doit contenir au moins {settings.PASSWORD_MIN_LENGTH} caractères."
        )
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        problems.append(f"Le mot de passe ne peut pas dépasser {PASSWORD_MAX_BYTES} octets.")
    if not re.search(r"[A-Z]", password):
        problems.append("Le mot de passe doit contenir au moins une majuscule.")
    if not re.search(r"[a-z]", password):
        problems.append("Le mot de passe doit contenir au moins une minuscule.")
    if not re.search(r"\d", password):
        problems.append("Le mot de passe doit contenir au moins un chiffre.")
    if password.lower() in COMMON_PASSWORDS:
        problems.append("Ce mot de passe est trop commun.")
    return problems


def raise_violations(problems: List[str]) -> None:
    """
    Lève une erreur Pydantic portant toutes les violations dans son contexte.
    Le handler de validation les éclate en une entrée {field, message} chacune.
    """
    if problems:
        raise PydanticCustomError(
            "policy_violation",
            "{summary}",
            {"summary": " ".join(problems), "violations": problems},
        )
