"""
Cycle de vie d'une soumission photo.

Statuts : pending → approved | qc_required | nc
- approved est terminal : ni revue, ni resoumission, ni suppression
- qc_required / nc : une nouvelle capture crée une NOUVELLE soumission chaînée
  (resubmission_of_id) qui repart en pending ; l'ancienne devient figée

Chaque opération d'écriture est une transaction unique : en cas d'erreur, rollback
complet (statut, relecteur, commentaire, nouvelle ligne).
Le fichier est écrit dans le stockage AVANT l'insertion de la ligne qui le référence.
"""

import io
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from PIL import Image, UnidentifiedImageError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from photoqc.config import settings
from photoqc.errors import AccessDenied, Conflict, NotFound, PhotoQcError, StorageError, ValidationFailure
from photoqc.models.checkpoint import Checkpoint
from photoqc.models.route import Subsection
from photoqc.models.submission import PhotoSubmission
from photoqc.schemas.identity import Identity, Role
from photoqc.schemas.review import REJECTING_ACTIONS, VALID_ACTIONS, ReviewBatchResult, ReviewItemError
from photoqc.schemas.submission import PhotoContent, SlotIdentity, SubmissionResponse
from photoqc.services import access_service, cleanup_service, comment_service, submission_service
from photoqc.services.content_store import ContentStore
from photoqc.services.identity_service import ensure_user, require_role
from photoqc.services.photo_filename import build_photo_filename, content_key, file_extension, to_3char_code

logger = logging.getLogger(__name__)

STATUS_BY_ACTION = {"approve": "approved", "qc_required": "qc_required", "nc": "nc"}
RESUBMITTABLE_STATUSES = {"qc_required", "nc"}


def submit_photo(
    db: Session,
    store: ContentStore,
    identity: Identity,
    slot: SlotIdentity,
    content: PhotoContent,
) -> SubmissionResponse:
    """
    Première capture d'un slot.

    Validations :
    1. Fichier non vide et sous la taille maximale
    2. Sous-section et checkpoint existants
    3. Accès de l'appelant à la sous-section
    4. Slot encore libre (sinon passer par la resoumission)
    5. Empreinte du fichier inconnue dans tout le système (vérifiée juste avant l'insertion)
    """
    _check_content_size(content)

    subsection = db.execute(
        select(Subsection).where(
            Subsection.route_id == slot.route_id,
            Subsection.subsection_id == slot.subsection_id,
        )
    ).scalar()
    if subsection is None:
        raise NotFound(f"Sous-section {slot.route_id}/{slot.subsection_id} introuvable.")

    checkpoint = db.get(Checkpoint, slot.checkpoint_id)
    if checkpoint is None:
        raise NotFound(f"Checkpoint {slot.checkpoint_id} introuvable.")

    access_service.require_access(db, identity, slot.route_id, slot.subsection_id)

    if submission_service.slot_is_occupied(db, slot):
        raise Conflict(
            "Une photo existe déjà pour ce slot. Utilisez la resoumission après un rejet."
        )

    submission = _store_and_insert(db, store, identity, slot, checkpoint, content)
    logger.info(
        "Photo %s soumise par %s (%s/%s, checkpoint %s, %s #%s)",
        submission.id, identity.email, slot.route_id, slot.subsection_id,
        slot.checkpoint_id, slot.execution_stage, slot.photo_index,
    )
    return submission_service.to_response(submission)


def resubmit_photo(
    db: Session,
    store: ContentStore,
    identity: Identity,
    previous_id: int,
    content: PhotoContent,
    comment: str,
) -> SubmissionResponse:
    """
    Nouvelle capture d'une soumission rejetée (qc_required ou nc).

    Crée une nouvelle soumission pending qui copie le slot de la précédente et la
    référence via resubmission_of_id. Le commentaire obligatoire est rattaché à la
    NOUVELLE soumission, dans la même transaction que son insertion.
    """
    comment = comment_service.sanitize_comment(comment)
    _check_content_size(content)

    previous = submission_service.get_accessible_submission(db, identity, previous_id)
    if previous.status not in RESUBMITTABLE_STATUSES:
        raise Conflict("La resoumission n'est possible que pour une photo QC Required ou NC.")
    if submission_service.is_superseded(db, previous.id):
        raise Conflict(f"La soumission {previous.id} a déjà été resoumise.")

    slot = SlotIdentity(
        route_id=previous.route_id,
        subsection_id=previous.subsection_id,
        checkpoint_id=previous.checkpoint_id,
        execution_stage=previous.execution_stage,
        photo_index=previous.photo_index,
    )
    submission = _store_and_insert(
        db, store, identity, slot, previous.checkpoint, content,
        resubmission_of=previous, comment=comment,
    )
    logger.info(
        "Photo %s resoumise par %s en remplacement de %s",
        submission.id, identity.email, previous.id,
    )
    return submission_service.to_response(submission)


def review_submission(
    db: Session,
    identity: Identity,
    submission_id: int,
    action: str,
    comment: Optional[str] = None,
) -> SubmissionResponse:
    """
    Applique une décision de revue (approve, qc_required, nc).

    - Rôle Reviewer ou Admin, avec accès à la sous-section
    - Un commentaire est obligatoire pour qc_required / nc, facultatif pour approve
    - Refusé sur une soumission approuvée (terminale) ou remplacée (figée)
    """
    if action not in VALID_ACTIONS:
        raise ValidationFailure(f"Action invalide. Valeurs acceptées : {sorted(VALID_ACTIONS)}")
    comment = comment.strip() if isinstance(comment, str) else ""
    if action in REJECTING_ACTIONS and not comment:
        raise ValidationFailure("Un commentaire est obligatoire pour un statut QC Required ou NC.")

    require_role(identity, Role.REVIEWER, Role.ADMIN, action="une revue")
    submission = submission_service.get_accessible_submission(db, identity, submission_id)

    if submission.status == "approved":
        raise Conflict(f"La soumission {submission.id} est déjà approuvée.")
    if submission_service.is_superseded(db, submission.id):
        raise Conflict(f"La soumission {submission.id} a été remplacée par une resoumission.")

    new_status = STATUS_BY_ACTION[action]
    try:
        if comment:
            comment_service.append_comment(db, submission, identity, comment)
        submission.status = new_status
        submission.reviewer_id = ensure_user(db, identity)
        submission.reviewed_at = datetime.now(timezone.utc)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(submission)

    logger.info("Soumission %s → %s par %s", submission.id, new_status, identity.email)
    return submission_service.to_response(submission)


def review_batch(
    db: Session,
    identity: Identity,
    submission_ids: List[int],
    action: str,
    comment: Optional[str] = None,
) -> ReviewBatchResult:
    """
    Applique la même décision à plusieurs soumissions, chacune dans sa propre transaction.

    Les erreurs sont collectées par id ; le lot n'est en échec que si TOUS les
    éléments ont échoué.
    """
    succeeded: List[int] = []
    failed: List[ReviewItemError] = []

    for submission_id in dict.fromkeys(submission_ids):
        try:
            review_submission(db, identity, submission_id, action, comment)
            succeeded.append(submission_id)
        except PhotoQcError as exc:
            db.rollback()
            if isinstance(exc, AccessDenied):
                logger.warning("Revue refusée sur %s : %s", submission_id, exc.reason)
            failed.append(ReviewItemError(submission_id=submission_id, kind=exc.kind, message=exc.message))
        except Exception as exc:
            db.rollback()
            logger.error("Erreur inattendue lors de la revue de %s : %s", submission_id, exc, exc_info=True)
            failed.append(ReviewItemError(
                submission_id=submission_id,
                kind="dependency",
                message="La revue n'a pas pu être enregistrée. Veuillez réessayer.",
            ))

    logger.info(
        "Revue par lot (%s) par %s : %d réussie(s), %d échec(s)",
        action, identity.email, len(succeeded), len(failed),
    )
    return ReviewBatchResult(
        action=action,
        succeeded=succeeded,
        failed=failed,
        success=len(succeeded) > 0,
    )


def delete_submission(db: Session, store: ContentStore, identity: Identity, submission_id: int) -> None:
    """
    Supprime une soumission (Admin uniquement).

    Seule une tête de chaîne non approuvée peut être supprimée. La ligne est supprimée
    d'abord ; la suppression du fichier est ensuite tentée sans pouvoir l'annuler.
    """
    require_role(identity, Role.ADMIN, action="la suppression d'une photo")
    submission = submission_service.get_submission(db, submission_id)

    if submission.status == "approved":
        raise Conflict("Impossible de supprimer une photo approuvée.")
    if submission_service.is_superseded(db, submission.id):
        raise Conflict("Impossible de supprimer une photo remplacée par une resoumission.")

    key = submission.content_key
    try:
        db.delete(submission)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Soumission %s supprimée par %s", submission_id, identity.email)
    if submission_service.content_key_in_use(db, key):
        logger.error("Fichier %s encore référencé après suppression de %s : conservé", key, submission_id)
        return
    cleanup_service.remove_content(db, store, key)


def _check_content_size(content: PhotoContent) -> None:
    if not content.data:
        raise ValidationFailure("Le fichier est vide.")
    if len(content.data) > settings.MAX_UPLOAD_BYTES:
        raise ValidationFailure(
            f"Fichier trop volumineux : maximum {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} Mo par photo."
        )


def _check_duplicate(db: Session, content: PhotoContent) -> None:
    """Vérifié juste avant l'insertion : la première insertion validée l'emporte."""
    duplicate = submission_service.find_duplicate(db, content.fingerprint)
    if duplicate is not None:
        raise Conflict(
            "Cette photo a déjà été soumise ("
            + submission_service.describe_slot(duplicate)
            + ")."
        )


def _read_image_metadata(data: bytes):
    """Retourne (largeur, hauteur, format) ; lève ValidationFailure si ce n'est pas une image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.width, img.height, (img.format or "JPEG").lower()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationFailure("Le fichier n'est pas une image valide.") from exc


def _store_and_insert(
    db: Session,
    store: ContentStore,
    identity: Identity,
    slot: SlotIdentity,
    checkpoint: Checkpoint,
    content: PhotoContent,
    resubmission_of: Optional[PhotoSubmission] = None,
    comment: Optional[str] = None,
) -> PhotoSubmission:
    """Écrit le fichier, puis insère la soumission (et son commentaire) en une transaction."""
    width, height, image_format = _read_image_metadata(content.data)

    entity = checkpoint.entity
    entity_code = (entity.code if entity is not None else None) or to_3char_code(
        entity.name if entity is not None else None
    )
    checkpoint_code = checkpoint.code or to_3char_code(checkpoint.checkpoint_name)
    filename = build_photo_filename(
        route_id=slot.route_id,
        subsection_id=slot.subsection_id,
        entity_code=entity_code,
        checkpoint_code=checkpoint_code,
        execution_stage=slot.execution_stage,
        photo_index=slot.photo_index,
        extension=file_extension(content.original_filename),
    )
    key = content_key(filename, uuid.uuid4().hex[:8])

    # StorageError remonte telle quelle : aucune ligne n'a encore été créée
    url = store.put(key, content.data, f"image/{image_format}")

    previous_id = resubmission_of.id if resubmission_of is not None else None
    location = content.location
    submission = PhotoSubmission(
        route_id=slot.route_id,
        subsection_id=slot.subsection_id,
        checkpoint_id=slot.checkpoint_id,
        execution_stage=slot.execution_stage,
        photo_index=slot.photo_index,
        content_key=key,
        content_url=url,
        filename=filename,
        file_size=len(content.data),
        width=width,
        height=height,
        format=image_format,
        latitude=location.latitude if location else None,
        longitude=location.longitude if location else None,
        location_accuracy=location.accuracy if location else None,
        file_original_size=content.fingerprint.file_original_size,
        file_last_modified=content.fingerprint.file_last_modified,
        status="pending",
        resubmission_of_id=previous_id,
    )
    try:
        _check_duplicate(db, content)
        submission.user_id = ensure_user(db, identity)
        db.add(submission)
        db.flush()
        if comment:
            comment_service.append_comment(db, submission, identity, comment)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        _discard_content(store, key)
        if previous_id is not None:
            raise Conflict(f"La soumission {previous_id} a déjà été resoumise.") from exc
        raise Conflict("La soumission n'a pas pu être enregistrée (conflit en base).") from exc
    except Exception:
        db.rollback()
        _discard_content(store, key)
        raise

    db.refresh(submission)
    return submission


def _discard_content(store: ContentStore, key: str) -> None:
    """Retire un fichier écrit pour une ligne qui n'a finalement pas été créée."""
    try:
        store.delete(key)
    except StorageError as exc:
        logger.error("Fichier orphelin après échec d'insertion %s : %s", key, exc.detail)
