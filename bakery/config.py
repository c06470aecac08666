# bakery.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du backend boulangerie.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (base de données, Supabase, Paymob, SMTP)
- Sécurité cookies, CORS/hosts, mode de commande
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}

def _env_int(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

# Base de données relationnelle (URL SQLAlchemy)
# - Production: postgresql+psycopg://... (base Postgres du projet Supabase)
# - Tests: sqlite en mémoire
DATABASE_URL = _clean_env(os.getenv("DATABASE_URL") or "sqlite:///./bakery.db")
DB_ECHO = _env_bool("DB_ECHO", False)
DB_POOL_SIZE = _env_int("DB_POOL_SIZE", 10)

# Supabase: utilisé uniquement pour résoudre l'utilisateur de session (GoTrue)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / Sécurité
COOKIE_SECURE = _env_bool("COOKIE_SECURE", False)
CART_COOKIE_NAME = os.getenv("CART_COOKIE_NAME", "cart_id")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# Paymob: clés et intégration carte
PAYMOB_API_KEY = _clean_env(os.getenv("PAYMOB_API_KEY") or "")
PAYMOB_INTEGRATION_ID = _env_int("PAYMOB_INTEGRATION_ID", 0)
PAYMOB_IFRAME_ID = _env_int("PAYMOB_IFRAME_ID", 0) or None
PAYMOB_BASE_URL = _clean_env(os.getenv("PAYMOB_BASE_URL") or "https://accept.paymob.com/api").rstrip("/")
PAYMOB_CURRENCY = _clean_env(os.getenv("PAYMOB_CURRENCY") or "EGP")
PAYMOB_TIMEOUT = _env_int("PAYMOB_TIMEOUT", 15)
PAYMOB_COUNTRY = _clean_env(os.getenv("PAYMOB_COUNTRY") or "Egypt")

# URL publique de l'application (callbacks paiement, liens emails)
BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000").rstrip("/")
PAYMENT_CALLBACK_PATH = os.getenv("PAYMENT_CALLBACK_PATH", "/payment/callback")
PAYMENT_WEBHOOK_PATH = os.getenv("PAYMENT_WEBHOOK_PATH", "/api/payment/paymob-webhook")

# SMTP (emails de confirmation de commande)
EMAIL_ENABLED = _env_bool("EMAIL_ENABLED", True)
SMTP_HOST = _clean_env(os.getenv("SMTP_HOST") or "")
SMTP_USERNAME = _clean_env(os.getenv("SMTP_USERNAME") or "")
SMTP_PASSWORD = _clean_env(os.getenv("SMTP_PASSWORD") or "")
SMTP_USE_SSL = _env_bool("SMTP_USE_SSL", False)
SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", True)
SMTP_PORT = _env_int("SMTP_PORT", 465 if SMTP_USE_SSL else 587)
EMAIL_FROM = _clean_env(os.getenv("EMAIL_FROM") or "") or SMTP_USERNAME
EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Crumbled")

# Mode de commande (site_settings.order_mode), mis en cache côté process
ORDER_MODE_CACHE_SECONDS = _env_int("ORDER_MODE_CACHE_SECONDS", 300)
