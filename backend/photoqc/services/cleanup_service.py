"""
Suppression best-effort des fichiers photo après suppression d'une soumission.

La suppression de la ligne en base fait foi : un échec côté stockage est journalisé,
consigné dans pending_content_deletions puis relancé par le scheduler.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from photoqc.errors import StorageError
from photoqc.models.content_cleanup import PendingContentDeletion
from photoqc.services.content_store import ContentStore

logger = logging.getLogger(__name__)


def remove_content(db: Session, store: ContentStore, content_key: str) -> bool:
    """
    Supprime l'objet du stockage. Retourne False (sans lever) si le stockage a échoué ;
    la clé est alors mise en file pour une nouvelle tentative.
    """
    try:
        store.delete(content_key)
        return True
    except StorageError as exc:
        logger.error("Suppression du contenu %s échouée, mise en file : %s", content_key, exc.detail)
        _record_failure(db, content_key, exc.detail)
        return False


def _record_failure(db: Session, content_key: str, error: str) -> None:
    try:
        pending = db.execute(
            select(PendingContentDeletion).where(PendingContentDeletion.content_key == content_key)
        ).scalar()
        if pending is None:
            db.add(PendingContentDeletion(content_key=content_key, attempts=1, last_error=error))
        else:
            pending.attempts = (pending.attempts or 0) + 1
            pending.last_error = error
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error("Impossible de consigner la suppression en attente %s : %s", content_key, exc)


def retry_pending_deletions(db: Session, store: ContentStore) -> int:
    """
    Relance la suppression de tous les objets en attente.
    Retourne le nombre d'objets effectivement supprimés.
    """
    pending = db.execute(
        select(PendingContentDeletion).order_by(PendingContentDeletion.id)
    ).scalars().all()

    removed = 0
    for item in pending:
        try:
            store.delete(item.content_key)
        except StorageError as exc:
            item.attempts = (item.attempts or 0) + 1
            item.last_error = exc.detail
            continue
        db.delete(item)
        removed += 1

    db.commit()
    if pending:
        logger.info("Nettoyage stockage : %d/%d objet(s) supprimé(s)", removed, len(pending))
    return removed
