"""
Middlewares transverses de l'application.
- SessionMiddleware: cookie signé portant panier, état du tunnel et enregistrement de reprise
  (SameSite=lax: le cookie revient avec la redirection de la passerelle).
- CORSMiddleware: origines définies (dev/prod).
- TrustedHostMiddleware: limite les hôtes acceptés.
- ProxyHeadersMiddleware (si dispo): X-Forwarded-* derrière un proxy.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
try:
    from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
except ImportError:
    ProxyHeadersMiddleware = None

from storefront.config import SESSION_SECRET_KEY, COOKIE_SECURE, CORS_ORIGINS, ALLOWED_HOSTS

SESSION_COOKIE_NAME = "storefront_session"


def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        SessionMiddleware,
        secret_key=SESSION_SECRET_KEY,
        session_cookie=SESSION_COOKIE_NAME,
        same_site="lax",
        https_only=COOKIE_SECURE,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )
    if ProxyHeadersMiddleware:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])
