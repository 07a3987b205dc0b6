"""
Routers pour les soumissions photo : upload, consultation, resoumission, commentaires, historique.

Les erreurs métier (PhotoQcError) remontent jusqu'au handler de l'application,
qui les traduit en {"detail", "kind"} avec le code HTTP correspondant.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile
from pydantic import ValidationError
from sqlalchemy.orm import Session

from photoqc.database import get_db
from photoqc.dependencies import get_current_identity, get_store
from photoqc.schemas.comment import CommentCreate, CommentResponse
from photoqc.schemas.identity import Identity
from photoqc.schemas.submission import (
    CaptureFingerprint,
    GeoLocation,
    PhotoContent,
    SlotIdentity,
    SubmissionDetail,
    SubmissionHistory,
    SubmissionResponse,
)
from photoqc.services import comment_service, history_service, lifecycle_service, submission_service
from photoqc.services.content_store import ContentStore

router = APIRouter(prefix="/api/v1/photos", tags=["Photos"])


def _invalid_form(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail=[err["msg"] for err in exc.errors()])


def _build_content(
    data: bytes,
    filename: Optional[str],
    file_original_size: int,
    file_last_modified: int,
    latitude: Optional[float],
    longitude: Optional[float],
    location_accuracy: Optional[float],
) -> PhotoContent:
    location = None
    if latitude is not None and longitude is not None:
        location = GeoLocation(latitude=latitude, longitude=longitude, accuracy=location_accuracy)
    return PhotoContent(
        data=data,
        original_filename=filename or "photo.jpg",
        fingerprint=CaptureFingerprint(
            file_original_size=file_original_size,
            file_last_modified=file_last_modified,
        ),
        location=location,
    )


@router.post(
    "",
    response_model=SubmissionResponse,
    status_code=201,
    summary="Soumettre la première photo d'un slot",
)
async def upload_photo(
    file: UploadFile = File(...),
    route_id: str = Form(...),
    subsection_id: str = Form(...),
    checkpoint_id: int = Form(...),
    execution_stage: str = Form(...),
    photo_index: int = Form(1),
    file_original_size: int = Form(...),
    file_last_modified: int = Form(...),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    location_accuracy: Optional[float] = Form(None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    store: ContentStore = Depends(get_store),
):
    """
    Upload multipart d'une photo pour un slot encore vide.

    - `execution_stage` accepte Before/Ongoing/After ou B/O/A
    - `file_original_size` + `file_last_modified` (epoch ms) forment l'empreinte anti-doublon

    Retourne 409 si le slot est déjà occupé ou si la photo a déjà été soumise.
    """
    data = await file.read()
    try:
        slot = SlotIdentity(
            route_id=route_id,
            subsection_id=subsection_id,
            checkpoint_id=checkpoint_id,
            execution_stage=execution_stage,
            photo_index=photo_index,
        )
        content = _build_content(
            data, file.filename, file_original_size, file_last_modified,
            latitude, longitude, location_accuracy,
        )
    except ValidationError as exc:
        raise _invalid_form(exc)

    return lifecycle_service.submit_photo(db, store, identity, slot, content)


@router.get("", response_model=List[SubmissionResponse], summary="Lister les soumissions accessibles")
def list_photos(
    route_id: Optional[str] = None,
    subsection_id: Optional[str] = None,
    checkpoint_id: Optional[int] = None,
    execution_stage: Optional[str] = None,
    status: Optional[List[str]] = Query(None),
    latest_only: bool = True,
    limit: int = Query(50, ge=1, le=submission_service.MAX_LIST_LIMIT),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Soumissions des sous-sections accessibles, les plus récentes d'abord.
    Par défaut, seule la dernière version de chaque slot est retournée (`latest_only`).
    """
    return submission_service.list_submissions(
        db,
        identity,
        route_id=route_id,
        subsection_id=subsection_id,
        checkpoint_id=checkpoint_id,
        execution_stage=execution_stage,
        statuses=status,
        latest_only=latest_only,
        limit=limit,
        offset=offset,
    )


@router.get("/{submission_id}", response_model=SubmissionDetail, summary="Détail d'une soumission")
def get_photo(
    submission_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return submission_service.get_submission_detail(db, identity, submission_id)


@router.get("/{submission_id}/image", summary="Fichier image d'une soumission")
def get_photo_image(
    submission_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    store: ContentStore = Depends(get_store),
):
    data, media_type = submission_service.get_submission_image(db, identity, store, submission_id)
    return Response(content=data, media_type=media_type)


@router.delete("/{submission_id}", status_code=204, summary="Supprimer une soumission (Admin)")
def delete_photo(
    submission_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    store: ContentStore = Depends(get_store),
):
    """
    Supprime une soumission et son fil de commentaires.
    Refusé pour une photo approuvée ou remplacée par une resoumission (409).
    """
    lifecycle_service.delete_submission(db, store, identity, submission_id)
    return Response(status_code=204)


@router.post(
    "/{submission_id}/resubmit",
    response_model=SubmissionResponse,
    status_code=201,
    summary="Resoumettre une photo rejetée",
)
async def resubmit_photo(
    submission_id: int,
    file: UploadFile = File(...),
    comment: str = Form(...),
    file_original_size: int = Form(...),
    file_last_modified: int = Form(...),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    location_accuracy: Optional[float] = Form(None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    store: ContentStore = Depends(get_store),
):
    """
    Nouvelle capture pour une soumission en QC Required ou NC.

    Crée une nouvelle soumission pending chaînée à la précédente ; le commentaire
    (obligatoire) est rattaché à la nouvelle soumission.
    """
    data = await file.read()
    try:
        content = _build_content(
            data, file.filename, file_original_size, file_last_modified,
            latitude, longitude, location_accuracy,
        )
    except ValidationError as exc:
        raise _invalid_form(exc)

    return lifecycle_service.resubmit_photo(db, store, identity, submission_id, content, comment)


@router.get(
    "/{submission_id}/comments",
    response_model=List[CommentResponse],
    summary="Fil de commentaires d'une soumission",
)
def list_photo_comments(
    submission_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return comment_service.list_comments(db, identity, submission_id)


@router.post(
    "/{submission_id}/comments",
    response_model=CommentResponse,
    status_code=201,
    summary="Ajouter un commentaire",
)
def add_photo_comment(
    submission_id: int,
    data: CommentCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return comment_service.add_comment(db, identity, submission_id, data.text)


@router.get(
    "/{submission_id}/history",
    response_model=SubmissionHistory,
    summary="Historique des resoumissions",
)
def get_photo_history(
    submission_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Chaîne des tentatives, de la plus ancienne jusqu'à la soumission demandée incluse."""
    return history_service.get_history(db, identity, submission_id)
