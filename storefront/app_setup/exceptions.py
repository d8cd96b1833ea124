"""
Gestionnaire HTTPException.
- Réponse JSON {detail} standard pour l'API et les pages.
- La fonction de paiement garde son contrat {error} (401 jeton invalide, 429 rate limit...).
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

ERROR_SHAPE_PATHS = ("/api/v1/payments/stripe-payment",)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_json(request: Request, exc: HTTPException):
        headers = getattr(exc, "headers", None)
        if request.url.path in ERROR_SHAPE_PATHS:
            return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=headers)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)
