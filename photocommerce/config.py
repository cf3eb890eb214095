# photocommerce.config
from decimal import Decimal, InvalidOperation
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Robokassa, Tinkoff), sécurité cookies, CORS/hosts
- Fournit les valeurs par défaut de tarification plateforme (sans politique active)
- Fournit les bornes de robustesse des webhooks (timeout, tentatives du ledger)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _decimal_env(name: str, default: str) -> Decimal:
    raw = _clean_env(os.getenv(name) or default)
    try:
        return Decimal(raw)
    except InvalidOperation:
        return Decimal(default)

# Supabase: URLs et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000")

# Robokassa (fournisseur A): login marchand, mot de passe #1 (lien de paiement), #2 (ResultURL)
ROBOKASSA_LOGIN = _clean_env(os.getenv("ROBOKASSA_LOGIN") or "")
ROBOKASSA_PASSWORD_1 = _clean_env(os.getenv("ROBOKASSA_PASSWORD_1") or "")
ROBOKASSA_PASSWORD_2 = _clean_env(os.getenv("ROBOKASSA_PASSWORD_2") or "")
ROBOKASSA_TEST_MODE = (os.getenv("ROBOKASSA_TEST_MODE", "false").lower() == "true")
ROBOKASSA_PAYMENT_URL = _clean_env(os.getenv("ROBOKASSA_PAYMENT_URL") or "https://auth.robokassa.ru/Merchant/Index.aspx")

# Tinkoff (fournisseur B): terminal + clé secrète partagée
TINKOFF_TERMINAL_KEY = _clean_env(os.getenv("TINKOFF_TERMINAL_KEY") or "")
TINKOFF_SECRET_KEY = _clean_env(os.getenv("TINKOFF_SECRET_KEY") or "")
TINKOFF_API_URL = _clean_env(os.getenv("TINKOFF_API_URL") or "https://securepay.tinkoff.ru/v2/Init")

# Tarification plateforme (utilisée si aucune politique studio n'est active)
DEFAULT_PRICE_PER_PHOTO = _decimal_env("DEFAULT_PRICE_PER_PHOTO", "5.00")
DEFAULT_CURRENCY = _clean_env(os.getenv("DEFAULT_CURRENCY") or "RUB")

# Webhooks: au-delà du timeout, on répond 503 pour que le fournisseur relivre
WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10"))
# Nombre de relectures en cas de compare-and-set perdu sur une commande
LEDGER_MAX_ATTEMPTS = int(os.getenv("LEDGER_MAX_ATTEMPTS", "3"))
