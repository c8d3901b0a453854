"""
Planificateur APScheduler pour la purge des tokens de réinitialisation expirés.

Le job s'exécute toutes les heures et efface les empreintes de tokens dont la
date d'expiration est dépassée.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def purge_expired_reset_tokens(session_factory: sessionmaker) -> int:
    """
    Tâche planifiée : efface les tokens de réinitialisation expirés.
    Import local pour éviter les imports circulaires.
    """
    from app.services.credential_store import purge_expired_reset_tokens as purge

    db = session_factory()
    try:
        purged = purge(db)
        if purged:
            logger.info("Purge : %d token(s) de réinitialisation expiré(s) effacé(s)", purged)
        return purged
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Erreur lors de la purge des tokens de réinitialisation : %s", exc)
        return 0
    finally:
        db.close()


def start_scheduler(session_factory: sessionmaker) -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    scheduler.add_job(
        purge_expired_reset_tokens,
        trigger="interval",
        hours=1,
        args=[session_factory],
        id="reset_token_purge",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler démarré : purge des tokens expirés toutes les heures.")


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
