"""
Fil de commentaires des soumissions : trace d'audit append-only.

Aucune modification ni suppression n'est exposée. Les rejets (qc_required / nc)
ajoutent leur commentaire via append_comment sans commit, pour que commentaire et
changement de statut soient validés ensemble ou pas du tout.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from photoqc.config import settings
from photoqc.errors import Conflict, ValidationFailure
from photoqc.models.submission import PhotoSubmission, SubmissionComment
from photoqc.schemas.comment import CommentResponse
from photoqc.schemas.identity import Identity
from photoqc.services import submission_service
from photoqc.services.identity_service import ensure_user

logger = logging.getLogger(__name__)


def sanitize_comment(text) -> str:
    """Supprime les espaces de bord et tronque ; lève ValidationFailure si le texte est vide."""
    cleaned = text.strip()[: settings.MAX_COMMENT_LENGTH] if isinstance(text, str) else ""
    if not cleaned:
        raise ValidationFailure("Le commentaire ne peut pas être vide.")
    return cleaned


def append_comment(
    db: Session,
    submission: PhotoSubmission,
    identity: Identity,
    text: str,
) -> SubmissionComment:
    """Ajoute le commentaire à la transaction en cours (flush, pas de commit)."""
    comment = SubmissionComment(
        photo_submission_id=submission.id,
        user_id=ensure_user(db, identity),
        author_email=identity.email,
        author_name=identity.name,
        comment_text=sanitize_comment(text),
    )
    db.add(comment)
    db.flush()
    return comment


def add_comment(db: Session, identity: Identity, submission_id: int, text: str) -> CommentResponse:
    """
    Ajoute un commentaire libre à une soumission accessible.

    Une soumission remplacée par une resoumission est figée : la discussion se poursuit
    sur la nouvelle tête de chaîne.
    """
    text = sanitize_comment(text)
    submission = submission_service.get_accessible_submission(db, identity, submission_id)
    if submission_service.is_superseded(db, submission.id):
        raise Conflict("Cette soumission a été remplacée : commentez la dernière version.")

    try:
        comment = append_comment(db, submission, identity, text)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(comment)

    logger.info("Commentaire %s ajouté sur la soumission %s par %s", comment.id, submission.id, identity.email)
    return CommentResponse.model_validate(comment)


def list_comments(db: Session, identity: Identity, submission_id: int) -> List[CommentResponse]:
    """Commentaires d'une soumission accessible, du plus ancien au plus récent."""
    submission = submission_service.get_accessible_submission(db, identity, submission_id)
    return [CommentResponse.model_validate(c) for c in submission.comments]
