"""
Point d'entrée principal de l'API Photo QC.
Démarrage : uvicorn photoqc.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import photoqc.models  # noqa: F401  enregistre tous les modèles dans Base.metadata avant les routers
from photoqc.dependencies import get_current_identity
from photoqc.errors import AccessDenied, PhotoQcError, StorageError
from photoqc.routers import photos, reviews, subsections
from photoqc.scheduler import start_scheduler, stop_scheduler
from photoqc.schemas.identity import Identity, MeResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cycle de vie de l'application : démarre et arrête le scheduler APScheduler."""
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Photo QC API",
    description="API de contrôle qualité des photos de chantier (soumission, revue, resoumission)",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS : autorise tous les ports localhost en développement (à restreindre en production).
app.add_middleware(
    CORSMiddleware,
    allow_origins=[],
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Auth-Email", "X-Auth-Name"],
)


app.include_router(photos.router)
app.include_router(reviews.router)
app.include_router(subsections.router)


@app.exception_handler(PhotoQcError)
async def photo_qc_error_handler(request: Request, exc: PhotoQcError) -> JSONResponse:
    """Traduit les erreurs métier en {"detail", "kind"} avec le code HTTP de leur type."""
    if isinstance(exc, AccessDenied):
        logger.warning("Accès refusé sur %s %s : %s", request.method, request.url.path, exc.reason)
    elif isinstance(exc, StorageError):
        logger.error("Erreur de stockage sur %s %s : %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Intercepte toutes les exceptions non gérées pour garantir que la réponse 500
    passe bien par CORSMiddleware (qui injecte les headers CORS).
    """
    logger.error("Exception non gérée : %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Une erreur interne est survenue."},
    )


@app.get("/api/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return {"status": "ok", "service": "Photo QC API", "version": "0.1.0"}


@app.get("/api/me", response_model=MeResponse, tags=["Identité"])
def me(identity: Identity = Depends(get_current_identity)):
    """Identité et rôle de l'appelant, tels que vus par l'API."""
    return MeResponse(email=identity.email, name=identity.name, role=identity.role)
