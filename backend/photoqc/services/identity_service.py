"""
Résolution de l'identité de l'appelant : email vérifié → utilisateur → rôle.

Le rôle est un ensemble fermé (Engineer, Reviewer, Admin). Toute valeur absente,
inconnue ou héritée d'une ancienne version est normalisée en Reviewer.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from photoqc.errors import AccessDenied
from photoqc.models.user import User
from photoqc.schemas.identity import Identity, Role

logger = logging.getLogger(__name__)

_ROLES_BY_NAME = {role.value.lower(): role for role in Role}


def normalize_role(value: Optional[str]) -> Role:
    """Convertit une valeur stockée en Role, Reviewer par défaut."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return Role.REVIEWER
    return _ROLES_BY_NAME.get(value.strip().lower(), Role.REVIEWER)


def _find_user(db: Session, email: str) -> Optional[User]:
    return db.execute(
        select(User).where(func.lower(User.email) == email.strip().lower())
    ).scalar()


def resolve_identity(db: Session, email: str, name: Optional[str] = None) -> Identity:
    """Construit l'Identity de l'appelant à partir de son email déjà authentifié."""
    user = _find_user(db, email)
    if user is None:
        return Identity(email=email.strip(), name=name, role=Role.REVIEWER)
    return Identity(
        email=email.strip(),
        name=name or user.name,
        role=normalize_role(user.role),
        user_id=user.id,
    )


def ensure_user(db: Session, identity: Identity) -> int:
    """
    Retourne l'id utilisateur de l'appelant, en créant la ligne users au premier passage.
    Pas de commit : l'insertion rejoint la transaction de l'opération appelante.
    """
    if identity.user_id is not None:
        return identity.user_id

    user = _find_user(db, identity.email)
    if user is None:
        user = User(email=identity.email, name=identity.name or "")
        db.add(user)
        db.flush()
        logger.info("Utilisateur créé à la volée : %s", identity.email)
    return user.id


def require_role(identity: Identity, *roles: Role, action: str = "cette action") -> None:
    """Lève AccessDenied si le rôle de l'appelant ne fait pas partie de `roles`."""
    if identity.role not in roles:
        raise AccessDenied(
            f"{identity.email} (rôle {identity.role.value}) ne peut pas effectuer {action}"
        )
