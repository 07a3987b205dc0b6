"""
Schémas pour l'identité de l'appelant et son rôle.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Role(str, Enum):
    ENGINEER = "Engineer"
    REVIEWER = "Reviewer"
    ADMIN = "Admin"


class Identity(BaseModel):
    """Identité déjà vérifiée par le proxy d'authentification, enrichie du rôle."""
    email: str
    name: Optional[str] = None
    role: Role = Role.REVIEWER
    user_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class MeResponse(BaseModel):
    email: str
    name: Optional[str]
    role: Role
