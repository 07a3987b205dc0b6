"""
Schémas Pydantic pour le fil de commentaires d'une soumission.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class CommentCreate(BaseModel):
    """Corps de requête pour ajouter un commentaire libre."""
    text: str

    @field_validator("text")
    @classmethod
    def text_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le commentaire ne peut pas être vide.")
        return v.strip()


class CommentResponse(BaseModel):
    id: int
    author_email: str
    author_name: Optional[str]
    created_at: Optional[datetime]
    comment_text: str

    model_config = {"from_attributes": True}
