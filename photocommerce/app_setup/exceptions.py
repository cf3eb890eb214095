"""
Gestionnaires d'exceptions utilisés par la factory.
- DomainError: code stable + message affichable, statut HTTP porté par l'erreur.
- VerificationError: journalisée comme événement de sécurité (notification rejetée).
- HTTPException: réponse JSON standard {"detail": ...}.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from photocommerce.domain.errors import DomainError, VerificationError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        if isinstance(exc, VerificationError):
            ip = request.client.host if request.client else "-"
            logger.warning("security.verification_failed path=%s ip=%s code=%s", request.url.path, ip, exc.code.value)
        elif exc.status_code >= 500:
            logger.warning("domain error path=%s code=%s", request.url.path, exc.code.value)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
