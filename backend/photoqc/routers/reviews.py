"""
Routers pour la revue des photos : décision unitaire, décision par lot, tableau de bord.
"""

from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from photoqc.database import get_db
from photoqc.dependencies import get_current_identity
from photoqc.schemas.identity import Identity
from photoqc.schemas.review import ReviewBatchRequest, ReviewBatchResult, ReviewRequest, SubsectionReviewSummary
from photoqc.schemas.submission import SubmissionResponse
from photoqc.services import lifecycle_service, submission_service

router = APIRouter(prefix="/api/v1/reviews", tags=["Revues"])


@router.post("", response_model=SubmissionResponse, summary="Approuver ou rejeter une photo")
def review_photo(
    data: ReviewRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Applique `approve`, `qc_required` ou `nc` à une soumission.

    Le commentaire est obligatoire pour un rejet. Retourne 409 si la photo est déjà
    approuvée ou a été remplacée par une resoumission.
    """
    return lifecycle_service.review_submission(db, identity, data.submission_id, data.action, data.comment)


@router.post("/batch", response_model=ReviewBatchResult, summary="Revue par lot")
def review_photos_batch(
    data: ReviewBatchRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Même décision pour plusieurs soumissions, traitées indépendamment.

    Retourne 200 avec le détail des échecs tant qu'au moins une soumission a été traitée,
    400 avec le même rapport si toutes ont échoué.
    """
    result = lifecycle_service.review_batch(db, identity, data.submission_ids, data.action, data.comment)
    if not result.success:
        return JSONResponse(status_code=400, content=result.model_dump())
    return result


@router.get(
    "/summary",
    response_model=List[SubsectionReviewSummary],
    summary="Compteurs de revue par sous-section",
)
def review_summary(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return submission_service.summarize_by_subsection(db, identity)
