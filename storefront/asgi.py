"""
ASGI entrypoint: expose `app` pour les process managers (ex: uvicorn storefront.asgi:app).
Toute la configuration est centralisée dans storefront.app_setup.factory.
"""
from storefront.app import app

__all__ = ["app"]
