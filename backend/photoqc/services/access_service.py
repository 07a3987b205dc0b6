"""
Résolution des accès par sous-section (liste blanche d'emails).

Règles :
- Admin : toutes les sous-sections existantes
- Autres rôles : sous-sections sans aucune entrée de liste blanche (accès ouvert)
  + sous-sections dont la liste contient l'email de l'appelant (casse et espaces ignorés)

Le calcul est refait à chaque appel : les listes peuvent changer entre deux requêtes.
"""

import logging
from typing import List, Optional, Set, Tuple

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.orm import Session

from photoqc.errors import AccessDenied, NotFound
from photoqc.models.access_grant import SubsectionAllowedEmail
from photoqc.models.route import Subsection
from photoqc.schemas.access import AccessGrantReplace, AccessGrantResponse
from photoqc.schemas.identity import Identity, Role
from photoqc.services.identity_service import require_role

logger = logging.getLogger(__name__)

SubsectionKeys = Set[Tuple[str, str]]


def get_allowed_keys(db: Session, email: str, role: Role) -> SubsectionKeys:
    """Retourne l'ensemble des couples (route_id, subsection_id) accessibles."""
    if role == Role.ADMIN:
        rows = db.execute(select(Subsection.route_id, Subsection.subsection_id)).all()
        return {(r.route_id, r.subsection_id) for r in rows}

    same_subsection = and_(
        SubsectionAllowedEmail.route_id == Subsection.route_id,
        SubsectionAllowedEmail.subsection_id == Subsection.subsection_id,
    )
    has_grants = select(SubsectionAllowedEmail.id).where(same_subsection).exists()
    is_listed = (
        select(SubsectionAllowedEmail.id)
        .where(
            same_subsection,
            func.lower(func.trim(SubsectionAllowedEmail.email)) == email.strip().lower(),
        )
        .exists()
    )

    rows = db.execute(
        select(Subsection.route_id, Subsection.subsection_id).where(or_(~has_grants, is_listed))
    ).all()
    return {(r.route_id, r.subsection_id) for r in rows}


def has_access(db: Session, identity: Identity, route_id: str, subsection_id: str) -> bool:
    """Les Admins passent sans vérification unitaire."""
    if identity.is_admin:
        return True
    return (route_id, subsection_id) in get_allowed_keys(db, identity.email, identity.role)


def require_access(db: Session, identity: Identity, route_id: str, subsection_id: str) -> None:
    """Lève AccessDenied si l'appelant ne peut pas opérer sur la sous-section."""
    if not has_access(db, identity, route_id, subsection_id):
        raise AccessDenied(f"{identity.email} n'a pas accès à la sous-section {route_id}/{subsection_id}")


def keys_filter(route_column, subsection_column, keys: SubsectionKeys):
    """Clause SQL restreignant une requête aux couples autorisés."""
    return or_(*[
        and_(route_column == route_id, subsection_column == subsection_id)
        for route_id, subsection_id in sorted(keys)
    ])


def list_grants(
    db: Session,
    identity: Identity,
    route_id: Optional[str] = None,
    subsection_id: Optional[str] = None,
) -> List[AccessGrantResponse]:
    """Liste les entrées de liste blanche (Admin uniquement), filtrées par route et/ou sous-section si fournies."""
    require_role(identity, Role.ADMIN, action="la consultation des accès")

    query = select(SubsectionAllowedEmail)
    if route_id:
        query = query.where(SubsectionAllowedEmail.route_id == route_id)
    if subsection_id:
        query = query.where(SubsectionAllowedEmail.subsection_id == subsection_id)
    grants = db.execute(
        query.order_by(
            SubsectionAllowedEmail.route_id,
            SubsectionAllowedEmail.subsection_id,
            SubsectionAllowedEmail.email,
        )
    ).scalars().all()
    return [AccessGrantResponse.model_validate(g) for g in grants]


def replace_grants(db: Session, identity: Identity, data: AccessGrantReplace) -> List[AccessGrantResponse]:
    """
    Remplace intégralement la liste blanche d'une sous-section (Admin uniquement).

    Suppression de toutes les entrées puis insertion des nouvelles dans une seule
    transaction : en cas d'échec, l'ancienne liste reste en place.
    Une liste vide rouvre la sous-section à tous les utilisateurs.
    """
    require_role(identity, Role.ADMIN, action="la modification des accès")

    exists = db.execute(
        select(Subsection.id).where(
            Subsection.route_id == data.route_id,
            Subsection.subsection_id == data.subsection_id,
        )
    ).scalar()
    if exists is None:
        raise NotFound(f"Sous-section {data.route_id}/{data.subsection_id} introuvable.")

    try:
        db.execute(
            delete(SubsectionAllowedEmail).where(
                SubsectionAllowedEmail.route_id == data.route_id,
                SubsectionAllowedEmail.subsection_id == data.subsection_id,
            )
        )
        for email in data.emails:
            db.add(SubsectionAllowedEmail(
                route_id=data.route_id,
                subsection_id=data.subsection_id,
                email=email,
            ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Accès sous-section %s/%s remplacés par %s : %d email(s)",
        data.route_id, data.subsection_id, identity.email, len(data.emails),
    )
    return list_grants(db, identity, data.route_id, data.subsection_id)
