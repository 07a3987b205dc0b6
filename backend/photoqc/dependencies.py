"""
Dépendances FastAPI : identité de l'appelant et stockage des photos.

L'authentification elle-même est faite en amont (proxy) : l'email vérifié arrive dans
l'en-tête X-Auth-Email, le nom affiché dans X-Auth-Name.
"""

import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from photoqc.config import settings
from photoqc.database import get_db
from photoqc.schemas.identity import Identity
from photoqc.services.content_store import ContentStore, get_content_store
from photoqc.services.identity_service import resolve_identity

logger = logging.getLogger(__name__)

AUTH_EMAIL_HEADER = "X-Auth-Email"
AUTH_NAME_HEADER = "X-Auth-Name"
DEV_BYPASS_COOKIE = "dev-bypass-auth"
DEV_EMAIL = "dev@local"


def get_current_identity(request: Request, db: Session = Depends(get_db)) -> Identity:
    """Identité de l'appelant avec son rôle ; 401 si l'en-tête d'authentification est absent."""
    email = (request.headers.get(AUTH_EMAIL_HEADER) or "").strip()
    name = request.headers.get(AUTH_NAME_HEADER)

    if not email and settings.ENV == "development" and request.cookies.get(DEV_BYPASS_COOKIE) == "true":
        logger.debug("Contournement d'authentification (développement)")
        email, name = DEV_EMAIL, "Dev User"

    if not email:
        raise HTTPException(status_code=401, detail="Authentification requise.")
    return resolve_identity(db, email, name)


def get_store() -> ContentStore:
    return get_content_store()
