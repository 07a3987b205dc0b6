"""
Accès aux soumissions photo : lectures, invariants de chaîne et vues « dernière version ».

La tête de chaîne d'un slot n'est jamais stockée : c'est la soumission qu'aucune autre
ne référence via resubmission_of_id (anti-jointure).
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, aliased

from photoqc.errors import NotFound, ValidationFailure
from photoqc.models.route import Route, Subsection
from photoqc.models.submission import PhotoSubmission
from photoqc.schemas.comment import CommentResponse
from photoqc.schemas.identity import Identity
from photoqc.schemas.review import SubsectionReviewSummary
from photoqc.schemas.submission import (
    CaptureFingerprint,
    SlotIdentity,
    SubmissionDetail,
    SubmissionResponse,
    VALID_STATUSES,
)
from photoqc.services import access_service
from photoqc.services.content_store import ContentStore

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 500


def latest_only_clause():
    """Vrai pour les soumissions qu'aucune resoumission ne remplace (têtes de chaîne)."""
    child = aliased(PhotoSubmission)
    return ~select(child.id).where(child.resubmission_of_id == PhotoSubmission.id).exists()


def get_submission(db: Session, submission_id: int) -> PhotoSubmission:
    submission = db.get(PhotoSubmission, submission_id)
    if submission is None:
        raise NotFound(f"Soumission {submission_id} introuvable.")
    return submission


def get_accessible_submission(db: Session, identity: Identity, submission_id: int) -> PhotoSubmission:
    """Soumission existante ET visible par l'appelant, sinon NotFound / AccessDenied."""
    submission = get_submission(db, submission_id)
    access_service.require_access(db, identity, submission.route_id, submission.subsection_id)
    return submission


def get_resubmission_of(db: Session, submission_id: int) -> Optional[PhotoSubmission]:
    """Retourne la soumission qui remplace `submission_id`, ou None si c'est une tête de chaîne."""
    return db.execute(
        select(PhotoSubmission).where(PhotoSubmission.resubmission_of_id == submission_id)
    ).scalar()


def is_superseded(db: Session, submission_id: int) -> bool:
    return get_resubmission_of(db, submission_id) is not None


def content_key_in_use(db: Session, key: str) -> bool:
    return db.execute(
        select(PhotoSubmission.id).where(PhotoSubmission.content_key == key).limit(1)
    ).scalar() is not None


def slot_is_occupied(db: Session, slot: SlotIdentity) -> bool:
    """Un slot occupé possède déjà une chaîne : les nouvelles captures passent par la resoumission."""
    existing = db.execute(
        select(PhotoSubmission.id).where(
            PhotoSubmission.route_id == slot.route_id,
            PhotoSubmission.subsection_id == slot.subsection_id,
            PhotoSubmission.checkpoint_id == slot.checkpoint_id,
            PhotoSubmission.execution_stage == slot.execution_stage,
            PhotoSubmission.photo_index == slot.photo_index,
        ).limit(1)
    ).scalar()
    return existing is not None


def find_duplicate(db: Session, fingerprint: CaptureFingerprint) -> Optional[PhotoSubmission]:
    """Cherche une soumission existante ayant la même empreinte (taille d'origine + date de modification)."""
    return db.execute(
        select(PhotoSubmission)
        .where(
            PhotoSubmission.file_original_size == fingerprint.file_original_size,
            PhotoSubmission.file_last_modified == fingerprint.file_last_modified,
        )
        .order_by(PhotoSubmission.id)
        .limit(1)
    ).scalar()


def describe_slot(submission: PhotoSubmission) -> str:
    """Libellé lisible du slot d'une soumission, utilisé dans les messages de doublon."""
    checkpoint = submission.checkpoint
    entity = checkpoint.entity.name if checkpoint is not None and checkpoint.entity is not None else "?"
    checkpoint_name = checkpoint.checkpoint_name if checkpoint is not None else str(submission.checkpoint_id)
    return (
        f"route {submission.route_id}, sous-section {submission.subsection_id}, "
        f"entité {entity}, checkpoint {checkpoint_name}"
    )


def to_response(submission: PhotoSubmission) -> SubmissionResponse:
    checkpoint = submission.checkpoint
    return SubmissionResponse(
        id=submission.id,
        route_id=submission.route_id,
        subsection_id=submission.subsection_id,
        checkpoint_id=submission.checkpoint_id,
        entity=checkpoint.entity.name if checkpoint is not None and checkpoint.entity is not None else None,
        checkpoint_name=checkpoint.checkpoint_name if checkpoint is not None else None,
        execution_stage=submission.execution_stage,
        photo_index=submission.photo_index,
        status=submission.status,
        filename=submission.filename,
        content_url=submission.content_url,
        file_size=submission.file_size,
        width=submission.width,
        height=submission.height,
        latitude=submission.latitude,
        longitude=submission.longitude,
        location_accuracy=submission.location_accuracy,
        user_email=submission.submitter.email if submission.submitter else None,
        user_name=submission.submitter.name if submission.submitter else None,
        reviewer_email=submission.reviewer.email if submission.reviewer else None,
        reviewer_name=submission.reviewer.name if submission.reviewer else None,
        reviewed_at=submission.reviewed_at,
        resubmission_of_id=submission.resubmission_of_id,
        created_at=submission.created_at,
    )


def to_detail(submission: PhotoSubmission) -> SubmissionDetail:
    return SubmissionDetail(
        **to_response(submission).model_dump(),
        comments=[CommentResponse.model_validate(c) for c in submission.comments],
    )


def get_submission_detail(db: Session, identity: Identity, submission_id: int) -> SubmissionDetail:
    """Soumission avec son fil de commentaires complet."""
    return to_detail(get_accessible_submission(db, identity, submission_id))


def get_submission_image(
    db: Session, identity: Identity, store: ContentStore, submission_id: int
) -> Tuple[bytes, str]:
    """Retourne (octets, type MIME) du fichier photo d'une soumission accessible."""
    submission = get_accessible_submission(db, identity, submission_id)
    data = store.get(submission.content_key)
    return data, f"image/{(submission.format or 'jpeg').lower()}"


def list_submissions(
    db: Session,
    identity: Identity,
    route_id: Optional[str] = None,
    subsection_id: Optional[str] = None,
    checkpoint_id: Optional[int] = None,
    execution_stage: Optional[str] = None,
    statuses: Optional[List[str]] = None,
    latest_only: bool = True,
    limit: int = 50,
    offset: int = 0,
) -> List[SubmissionResponse]:
    """
    Liste les soumissions visibles par l'appelant, les plus récentes d'abord.

    Même les Admins passent par l'ensemble des clés autorisées : la requête a ainsi
    la même forme quel que soit le rôle.
    """
    unknown = sorted(set(statuses or []) - VALID_STATUSES)
    if unknown:
        raise ValidationFailure(
            f"Statut inconnu : {', '.join(unknown)}. Valeurs acceptées : {sorted(VALID_STATUSES)}"
        )

    allowed = access_service.get_allowed_keys(db, identity.email, identity.role)
    if not allowed:
        return []

    query = select(PhotoSubmission).where(
        access_service.keys_filter(PhotoSubmission.route_id, PhotoSubmission.subsection_id, allowed)
    )
    if route_id:
        query = query.where(PhotoSubmission.route_id == route_id)
    if subsection_id:
        query = query.where(PhotoSubmission.subsection_id == subsection_id)
    if checkpoint_id is not None:
        query = query.where(PhotoSubmission.checkpoint_id == checkpoint_id)
    if execution_stage:
        query = query.where(PhotoSubmission.execution_stage == execution_stage)
    if statuses:
        query = query.where(PhotoSubmission.status.in_(statuses))
    if latest_only:
        query = query.where(latest_only_clause())

    limit = min(max(1, limit), MAX_LIST_LIMIT)
    offset = max(0, offset)
    submissions = db.execute(
        query.order_by(PhotoSubmission.created_at.desc(), PhotoSubmission.id.desc())
        .limit(limit)
        .offset(offset)
    ).unique().scalars().all()

    return [to_response(s) for s in submissions]


def summarize_by_subsection(db: Session, identity: Identity) -> List[SubsectionReviewSummary]:
    """Compteurs par statut des têtes de chaîne, pour chaque sous-section accessible."""
    allowed = access_service.get_allowed_keys(db, identity.email, identity.role)
    if not allowed:
        return []

    def count_status(status: str):
        return func.sum(case((PhotoSubmission.status == status, 1), else_=0))

    rows = db.execute(
        select(
            PhotoSubmission.route_id,
            PhotoSubmission.subsection_id,
            Route.route_name,
            Subsection.subsection_name,
            count_status("pending").label("pending_count"),
            count_status("approved").label("approved_count"),
            count_status("qc_required").label("qc_required_count"),
            count_status("nc").label("nc_count"),
        )
        .outerjoin(Route, Route.route_id == PhotoSubmission.route_id)
        .outerjoin(
            Subsection,
            (Subsection.route_id == PhotoSubmission.route_id)
            & (Subsection.subsection_id == PhotoSubmission.subsection_id),
        )
        .where(
            access_service.keys_filter(PhotoSubmission.route_id, PhotoSubmission.subsection_id, allowed),
            latest_only_clause(),
        )
        .group_by(
            PhotoSubmission.route_id,
            PhotoSubmission.subsection_id,
            Route.route_name,
            Subsection.subsection_name,
        )
        .order_by(PhotoSubmission.route_id, PhotoSubmission.subsection_id)
    ).all()

    return [
        SubsectionReviewSummary(
            route_id=r.route_id,
            subsection_id=r.subsection_id,
            route_name=r.route_name,
            subsection_name=r.subsection_name,
            pending_count=r.pending_count or 0,
            approved_count=r.approved_count or 0,
            qc_required_count=r.qc_required_count or 0,
            nc_count=r.nc_count or 0,
        )
        for r in rows
    ]
