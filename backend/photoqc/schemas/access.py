"""
Schémas Pydantic pour la liste blanche d'accès par sous-section.
"""

import re
from typing import List

from pydantic import BaseModel, field_validator

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 254


class AccessGrantResponse(BaseModel):
    id: int
    route_id: str
    subsection_id: str
    email: str

    model_config = {"from_attributes": True}


class AccessGrantList(BaseModel):
    emails: List[AccessGrantResponse]


class AccessGrantReplace(BaseModel):
    """Remplace intégralement la liste blanche d'une sous-section (liste vide = accès ouvert)."""
    route_id: str
    subsection_id: str
    emails: List[str] = []

    @field_validator("route_id", "subsection_id")
    @classmethod
    def id_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("route_id et subsection_id sont obligatoires.")
        return v.strip()

    @field_validator("emails")
    @classmethod
    def normalize_emails(cls, v: List[str]) -> List[str]:
        cleaned = []
        for raw in v:
            email = raw.strip().lower()
            if email and email not in cleaned:
                cleaned.append(email)
        invalid = [e for e in cleaned if len(e) > MAX_EMAIL_LENGTH or not EMAIL_REGEX.match(e)]
        if invalid:
            raise ValueError("Email(s) invalide(s) : " + ", ".join(invalid))
        return cleaned


class SubsectionKey(BaseModel):
    route_id: str
    subsection_id: str
