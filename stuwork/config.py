import logging
import os

from dotenv import load_dotenv

# Tests set DISABLE_DOTENV=1 so a developer's .env never leaks into them.
if os.getenv("DISABLE_DOTENV") != "1":
    load_dotenv()

# Database
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "stuwork")

# Auth / JWT
SECRET_KEY = os.getenv("SECRET_KEY", "super_secret_random_key_CHANGE_THIS")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_DAYS = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "7") or "7")

# OTP
OTP_EXPIRE_MINUTES = int(os.getenv("OTP_EXPIRE_MINUTES", "5") or "5")

# Mail relay (empty credentials => console mode)
MAIL_USERNAME = (os.getenv("MAIL_USERNAME") or "").strip()
MAIL_PASSWORD = (os.getenv("MAIL_PASSWORD") or "").strip()
MAIL_FROM = (os.getenv("MAIL_FROM") or MAIL_USERNAME).strip()
MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "Stuwork")
MAIL_PROVIDER = os.getenv("MAIL_PROVIDER", "auto").lower()
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587") or "587")

# Frontend / CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")
_raw_origins = os.getenv("ALLOWED_ORIGINS", "")
ALLOWED_ORIGINS = [FRONTEND_URL] + [o.strip() for o in _raw_origins.split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
