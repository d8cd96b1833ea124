# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du storefront.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe), sécurité cookies, CORS/hosts
- Fournit les constantes du tunnel de commande (devise, chemins de retour, clé de reprise)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

# Supabase: URL et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("VITE_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / session
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
SESSION_SECRET_KEY = _clean_env(os.getenv("SESSION_SECRET_KEY") or "replace_me_with_a_long_random_secret")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# Stripe: clés publiques/privées et secret webhook
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or os.getenv("VITE_STRIPE_PUBLISHABLE_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_API_VERSION = _clean_env(os.getenv("STRIPE_API_VERSION") or "2023-10-16")

# Tunnel de commande
# - CHECKOUT_CURRENCY: devise des commandes (Stripe attend la version minuscule)
# - PAYMENT_BACKEND_URL: si défini, l'orchestrateur appelle la fonction de paiement en HTTP
CHECKOUT_CURRENCY = _clean_env(os.getenv("CHECKOUT_CURRENCY") or "USD").upper()
CHECKOUT_PATH = os.getenv("CHECKOUT_PATH", "/checkout")
ORDER_CONFIRMATION_PATH = os.getenv("ORDER_CONFIRMATION_PATH", "/order-confirmation")
PAYMENT_BACKEND_URL = _clean_env(os.getenv("PAYMENT_BACKEND_URL") or "").rstrip("/")
PAYMENT_BACKEND_TIMEOUT = float(os.getenv("PAYMENT_BACKEND_TIMEOUT", "15"))

# Clés de session (cookie signé): enregistrement de reprise, panier, état du tunnel
PENDING_PAYMENT_STORAGE_KEY = "checkout_pending_stripe_payment"
CART_SESSION_KEY = "cart"
CHECKOUT_SESSION_KEY = "checkout"

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000").rstrip("/")
