"""
Routers pour la liste blanche d'accès par sous-section.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from photoqc.database import get_db
from photoqc.dependencies import get_current_identity
from photoqc.schemas.access import AccessGrantList, AccessGrantReplace, SubsectionKey
from photoqc.schemas.identity import Identity
from photoqc.services import access_service

router = APIRouter(prefix="/api/v1/subsections", tags=["Sous-sections"])


@router.get("/access", response_model=AccessGrantList, summary="Consulter les listes blanches (Admin)")
def get_access(
    route_id: Optional[str] = None,
    subsection_id: Optional[str] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return AccessGrantList(emails=access_service.list_grants(db, identity, route_id, subsection_id))


@router.put("/access", response_model=AccessGrantList, summary="Remplacer la liste blanche d'une sous-section (Admin)")
def replace_access(
    data: AccessGrantReplace,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Remplace intégralement les emails autorisés d'une sous-section.

    Les emails sont normalisés (minuscules, sans doublon). Une liste vide rouvre
    la sous-section à tous les utilisateurs authentifiés.
    """
    return AccessGrantList(emails=access_service.replace_grants(db, identity, data))


@router.get("/allowed", response_model=List[SubsectionKey], summary="Sous-sections accessibles à l'appelant")
def allowed_subsections(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    keys = access_service.get_allowed_keys(db, identity.email, identity.role)
    return [SubsectionKey(route_id=r, subsection_id=s) for r, s in sorted(keys)]
