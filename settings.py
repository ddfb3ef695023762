"""Runtime configuration read from environment variables."""
import os


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./halador.db")

# Logs (defaults to ./logs/api.log)
LOG_PATH = os.getenv("LOG_PATH")

# Firebase Admin (auth + push)
FIREBASE_CREDENTIALS_PATH = os.getenv(
    "FIREBASE_CREDENTIALS_PATH",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "serviceAccountKey.json"),
)

# Trip catalog
PUBLISH_TIMEOUT_SECONDS = float(os.getenv("PUBLISH_TIMEOUT_SECONDS", "10"))
OPEN_TRIPS_CACHE_SECONDS = float(os.getenv("OPEN_TRIPS_CACHE_SECONDS", "5"))
GEOCODING_ENABLED = _bool_env("GEOCODING_ENABLED", False)
SHARE_BASE_URL = os.getenv("SHARE_BASE_URL", "https://halador.app")

# Subscription gate (pago manual Yape/Plin)
SUBSCRIPTION_DAYS = int(os.getenv("SUBSCRIPTION_DAYS", "30"))
SUBSCRIPTION_PRICE = os.getenv("SUBSCRIPTION_PRICE", "15.00")
PAYMENT_YAPE_NUMBER = os.getenv("PAYMENT_YAPE_NUMBER", "999-999-999")
PAYMENT_PLIN_NUMBER = os.getenv("PAYMENT_PLIN_NUMBER", "999-999-999")
