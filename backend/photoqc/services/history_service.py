"""
Reconstitution de l'historique d'une soumission (chaîne de resoumissions).

Parcours à rebours via resubmission_of_id, arrêté :
- à la tentative d'origine (resubmission_of_id NULL)
- sur un id déjà visité (cycle : ne devrait pas exister, mais ne doit jamais boucler)
- à une ligne manquante
- à la profondeur maximale MAX_HISTORY_DEPTH
- au premier ancêtre hors des sous-sections accessibles (historique partiel, pas d'erreur)
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from photoqc.config import settings
from photoqc.models.submission import PhotoSubmission
from photoqc.schemas.identity import Identity
from photoqc.schemas.submission import SubmissionHistory
from photoqc.services import access_service, submission_service

logger = logging.getLogger(__name__)


def get_history(
    db: Session,
    identity: Identity,
    submission_id: int,
    max_depth: Optional[int] = None,
) -> SubmissionHistory:
    """Retourne la chaîne ordonnée de la plus ancienne tentative jusqu'à `submission_id` inclus."""
    max_depth = max_depth or settings.MAX_HISTORY_DEPTH
    submission_service.get_accessible_submission(db, identity, submission_id)

    allowed = None if identity.is_admin else access_service.get_allowed_keys(db, identity.email, identity.role)

    chain = []
    visited = set()
    current_id = submission_id
    while current_id is not None and len(chain) < max_depth:
        if current_id in visited:
            logger.warning("Cycle détecté dans la chaîne de resoumission (id %s)", current_id)
            break
        visited.add(current_id)

        submission = db.get(PhotoSubmission, current_id)
        if submission is None:
            break
        if allowed is not None and (submission.route_id, submission.subsection_id) not in allowed:
            break

        chain.append(submission_service.to_detail(submission))
        current_id = submission.resubmission_of_id

    chain.reverse()
    return SubmissionHistory(history=chain, count=len(chain))
