"""
Schémas Pydantic pour les actions de revue (unitaires et par lot).
"""

from typing import List, Optional

from pydantic import BaseModel, field_validator, model_validator

from photoqc.config import settings

VALID_ACTIONS = {"approve", "qc_required", "nc"}
REJECTING_ACTIONS = {"qc_required", "nc"}


def _check_action(action: str) -> str:
    if action not in VALID_ACTIONS:
        raise ValueError(f"Action invalide. Valeurs acceptées : {sorted(VALID_ACTIONS)}")
    return action


def _check_comment(action: str, comment: Optional[str]) -> None:
    if action in REJECTING_ACTIONS and not (comment or "").strip():
        raise ValueError("Un commentaire est obligatoire pour un statut QC Required ou NC.")


class ReviewRequest(BaseModel):
    submission_id: int
    action: str
    comment: Optional[str] = None

    @field_validator("action")
    @classmethod
    def valid_action(cls, v: str) -> str:
        return _check_action(v)

    @model_validator(mode="after")
    def comment_required_on_rejection(self):
        _check_comment(self.action, self.comment)
        return self


class ReviewBatchRequest(BaseModel):
    submission_ids: List[int]
    action: str
    comment: Optional[str] = None

    @field_validator("action")
    @classmethod
    def valid_action(cls, v: str) -> str:
        return _check_action(v)

    @field_validator("submission_ids")
    @classmethod
    def ids_not_empty(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("Au moins une soumission doit être sélectionnée.")
        if len(v) > settings.MAX_REVIEW_BATCH_SIZE:
            raise ValueError(
                f"Lot trop grand : maximum {settings.MAX_REVIEW_BATCH_SIZE} soumissions par requête."
            )
        return v

    @model_validator(mode="after")
    def comment_required_on_rejection(self):
        _check_comment(self.action, self.comment)
        return self


class ReviewItemError(BaseModel):
    submission_id: int
    kind: str
    message: str


class ReviewBatchResult(BaseModel):
    """Rapport de revue par lot : succès partiel tant qu'au moins un élément a réussi."""
    action: str
    succeeded: List[int]
    failed: List[ReviewItemError]
    success: bool


class SubsectionReviewSummary(BaseModel):
    """Compteurs des soumissions actives (têtes de chaîne) d'une sous-section."""
    route_id: str
    subsection_id: str
    route_name: Optional[str] = None
    subsection_name: Optional[str] = None
    pending_count: int = 0
    approved_count: int = 0
    qc_required_count: int = 0
    nc_count: int = 0
