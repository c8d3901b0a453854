#!/usr/bin/env python3
"""
Script d'initialisation de la base de données.
Crée les tables puis le compte administrateur s'il n'existe pas encore.

Utilisation :
    python -m app.scripts.init_db
    (email et mot de passe demandés si ADMIN_EMAIL / ADMIN_PASSWORD ne sont pas définis)
"""

import getpass
import logging
import os
import sys

import app.models  # noqa: F401  enregistre tous les modèles dans Base.metadata
from app.config import settings
from app.database import Base, build_engine, build_session_factory
from app.errors import DuplicateEmail
from app.models.user import ROLE_ADMIN
from app.services import credential_store
from app.validators import password_violations

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_admin(db, name: str, email: str, password: str) -> bool:
    """Crée le compte administrateur. Retourne False s'il existe déjà."""
    problems = password_violations(password)
    if problems:
        raise ValueError(" ".join(problems))

    if credential_store.find_by_email(db, email) is not None:
        logger.info("Le compte %s existe déjà", email)
        return False
    try:
        credential_store.create_user(db, name=name, email=email, password=password, role=ROLE_ADMIN)
    except DuplicateEmail:
        logger.info("Le compte %s existe déjà", email)
        return False
    return True


def init_db() -> int:
    engine = build_engine(settings.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    logger.info("Tables créées (ou déjà présentes)")

    name = os.environ.get("ADMIN_NAME", "Admin")
    email = os.environ.get("ADMIN_EMAIL") or input("Email de l'administrateur : ")
    password = os.environ.get("ADMIN_PASSWORD") or getpass.getpass(
        f"Mot de passe (minimum {settings.PASSWORD_MIN_LENGTH} caractères) : "
    )

    db = build_session_factory(engine)()
    try:
        if seed_admin(db, name, email, password):
            print(f"Compte administrateur {email} créé.")
        return 0
    except ValueError as exc:
        print(f"Mot de passe refusé : {exc}")
        return 1
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    sys.exit(init_db())
