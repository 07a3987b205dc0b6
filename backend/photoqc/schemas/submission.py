"""
Schémas Pydantic pour les soumissions photo : métadonnées d'upload, réponses, historique.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from photoqc.schemas.comment import CommentResponse

VALID_STATUSES = {"pending", "approved", "qc_required", "nc"}

# Alias acceptés pour l'étape d'exécution (l'app mobile envoie B/O/A)
STAGE_ALIASES = {
    "B": "Before", "BEFORE": "Before",
    "O": "Ongoing", "ONGOING": "Ongoing",
    "A": "After", "AFTER": "After",
}


def normalize_stage(value: str) -> str:
    """Retourne Before/Ongoing/After, lève ValueError pour toute autre valeur."""
    stage = STAGE_ALIASES.get((value or "").strip().upper())
    if stage is None:
        raise ValueError("Étape invalide. Valeurs acceptées : Before, Ongoing, After.")
    return stage


class CaptureFingerprint(BaseModel):
    """Taille d'origine + date de modification du fichier capturé."""
    file_original_size: int
    file_last_modified: int  # Epoch en millisecondes

    @field_validator("file_original_size", "file_last_modified")
    @classmethod
    def positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("L'empreinte du fichier doit être strictement positive.")
        return v


class GeoLocation(BaseModel):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None

    @field_validator("latitude")
    @classmethod
    def valid_latitude(cls, v: float) -> float:
        if not -90 <= v <= 90:
            raise ValueError("Latitude hors limites (-90 à 90).")
        return v

    @field_validator("longitude")
    @classmethod
    def valid_longitude(cls, v: float) -> float:
        if not -180 <= v <= 180:
            raise ValueError("Longitude hors limites (-180 à 180).")
        return v


class SlotIdentity(BaseModel):
    """Identité du slot que la photo vient remplir."""
    route_id: str
    subsection_id: str
    checkpoint_id: int
    execution_stage: str
    photo_index: int = 1

    @field_validator("route_id", "subsection_id")
    @classmethod
    def id_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("route_id et subsection_id sont obligatoires.")
        return v.strip()

    @field_validator("execution_stage")
    @classmethod
    def valid_stage(cls, v: str) -> str:
        return normalize_stage(v)

    @field_validator("photo_index")
    @classmethod
    def positive_index(cls, v: int) -> int:
        if v < 1:
            raise ValueError("L'index photo doit être supérieur ou égal à 1.")
        return v


class PhotoContent(BaseModel):
    """Fichier reçu, avant stockage."""
    data: bytes
    original_filename: str = "photo.jpg"
    fingerprint: CaptureFingerprint
    location: Optional[GeoLocation] = None


class SubmissionResponse(BaseModel):
    id: int
    route_id: str
    subsection_id: str
    checkpoint_id: int
    entity: Optional[str] = None
    checkpoint_name: Optional[str] = None
    execution_stage: str
    photo_index: int
    status: str
    filename: str
    content_url: Optional[str]
    file_size: int
    width: Optional[int]
    height: Optional[int]
    latitude: Optional[float]
    longitude: Optional[float]
    location_accuracy: Optional[float]
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    reviewer_email: Optional[str] = None
    reviewer_name: Optional[str] = None
    reviewed_at: Optional[datetime]
    resubmission_of_id: Optional[int]
    created_at: Optional[datetime]


class SubmissionDetail(SubmissionResponse):
    """Soumission accompagnée de son fil de commentaires (du plus ancien au plus récent)."""
    comments: List[CommentResponse] = []


class SubmissionHistory(BaseModel):
    """Chaîne de resoumission, de la tentative d'origine à la soumission demandée."""
    history: List[SubmissionDetail]
    count: int
