"""
Factory d'application pour les entrypoints (storefront.app, storefront.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from fastapi import FastAPI

from .lifespan import lifespan
from .middlewares import register_basic_middlewares
from .exceptions import register_exception_handlers
from .routers import register_routers


def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base (session, CORS, hôtes)
      - gestionnaire d'exceptions
      - routers (panier, checkout, paiements, confirmation, health)
    """
    app = FastAPI(title="Storefront Checkout", lifespan=lifespan)
    register_basic_middlewares(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
