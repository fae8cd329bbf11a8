"""
Gestionnaires d'exceptions utilisés par la factory.
- Erreurs métier (catering.errors) -> JSON {"detail", "retry"} avec un statut HTTP stable:
  400 validation, 404 introuvable, 503 passerelle, 500 stockage.
- HTTPException: JSON {"detail"} avec les en-têtes de l'exception (WWW-Authenticate).
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from catering.errors import (
    CateringError,
    GatewayError,
    NotFoundError,
    PersistenceError,
    ReconciliationAmbiguity,
    ValidationError,
)

logger = logging.getLogger(__name__)

def status_for(exc: CateringError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, GatewayError):
        return 503
    if isinstance(exc, ReconciliationAmbiguity):
        return 409
    if isinstance(exc, PersistenceError):
        return 500
    return 500

def register_exception_handlers(app: FastAPI) -> None:
    """
    Enregistre les handlers CateringError et HTTPException.
    - Les erreurs de stockage sont journalisées avec la trace complète.
    """
    @app.exception_handler(CateringError)
    async def catering_error_handler(request: Request, exc: CateringError):
        status = status_for(exc)
        if status >= 500 and not isinstance(exc, GatewayError):
            logger.error("Erreur %s sur %s: %s", type(exc).__name__, request.url.path, exc.message, exc_info=exc)
        return JSONResponse(status_code=status, content={"detail": exc.message, "retry": exc.retryable})

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
