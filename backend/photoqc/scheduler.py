"""
Planificateur APScheduler pour la relance des suppressions de fichiers photo échouées.

Le job s'exécute toutes les CONTENT_CLEANUP_INTERVAL_MINUTES minutes et retente la
suppression des objets consignés dans pending_content_deletions.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from photoqc.config import settings
from photoqc.database import SessionLocal

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def _retry_content_deletions_scheduled() -> None:
    """
    Tâche planifiée : relance les suppressions en attente.
    Import local pour éviter les imports circulaires.
    """
    from photoqc.services.cleanup_service import retry_pending_deletions
    from photoqc.services.content_store import get_content_store

    db = SessionLocal()
    try:
        retry_pending_deletions(db, get_content_store())
    except Exception as exc:
        logger.error("Erreur lors du nettoyage du stockage photos : %s", exc)
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    scheduler.add_job(
        _retry_content_deletions_scheduled,
        trigger="interval",
        minutes=settings.CONTENT_CLEANUP_INTERVAL_MINUTES,
        id="content_cleanup_retry",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler démarré : nettoyage du stockage toutes les %d minutes.",
        settings.CONTENT_CLEANUP_INTERVAL_MINUTES,
    )


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
