import os
from dotenv import load_dotenv
from pathlib import Path

# Load .env manually when running outside Docker
if not os.getenv("RUNNING_IN_DOCKER"):
    dotenv_path = Path(__file__).resolve().parents[2] / ".env"
    load_dotenv(dotenv_path=dotenv_path)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _csv(name: str, default: str = "") -> list[str]:
    return [o.strip() for o in os.getenv(name, default).split(",") if o.strip()]


# Environment: local | dev | production
ENVIRONMENT = os.getenv("ENVIRONMENT", "local").lower()

# REST backend (reservations, delivery config, payment)
BACKEND_BASE_URL = os.getenv("BACKEND_BASE_URL", "http://localhost:8080")
BACKEND_TIMEOUT_SECONDS = float(os.getenv("BACKEND_TIMEOUT_SECONDS", 10))

# Kakao Local API (geocoding and postcode search)
KAKAO_REST_API_KEY = os.getenv("KAKAO_REST_API_KEY")
KAKAO_LOCAL_BASE_URL = os.getenv("KAKAO_LOCAL_BASE_URL", "https://dapi.kakao.com")
GEOCODING_TIMEOUT_SECONDS = float(os.getenv("GEOCODING_TIMEOUT_SECONDS", 15))

# Delivery
DELIVERY_TIMEZONE = os.getenv("DELIVERY_TIMEZONE", "Asia/Seoul")
DELIVERY_FEE_ESTIMATE_MODE = os.getenv("DELIVERY_FEE_ESTIMATE_MODE", "backend").lower()
DELIVERY_SCHEDULING_ENABLED = _flag("DELIVERY_SCHEDULING_ENABLED", "true")
DELIVERY_BLOCK_OUT_OF_RANGE = _flag("DELIVERY_BLOCK_OUT_OF_RANGE", "true")

# Payment
PAYMENT_ALLOWED_HOSTS = _csv(
    "PAYMENT_ALLOWED_HOSTS",
    "online-pay.kakao.com,online-payment.kakaopay.com,mockup-pg-web.kakao.com",
)
PAYMENT_MOBILE_FALLBACK_SECONDS = float(os.getenv("PAYMENT_MOBILE_FALLBACK_SECONDS", 2))
PAYMENT_READY_MAX_ATTEMPTS = int(os.getenv("PAYMENT_READY_MAX_ATTEMPTS", 3))

# Local database (pending orders per checkout session)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")

# CORS
CORS_ORIGINS = _csv("CORS_ORIGINS")
CORS_ALLOW_ALL = _flag("CORS_ALLOW_ALL", "false")

# FastAPI / App
BASE_URL = os.getenv("BASE_URL", "")
ENABLE_DOCS = _flag("ENABLE_DOCS", "true")

# Logs
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", str(Path(__file__).resolve().parents[2] / "logs"))
