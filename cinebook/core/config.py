"""
Application configuration and settings
"""
import os
from dotenv import load_dotenv

load_dotenv()

# Database Configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cinebook.db")

# Redis Configuration (empty URL disables the commit lock)
REDIS_URL = os.getenv("REDIS_URL", "")
REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "1.0"))
LOCK_PREFIX = os.getenv("LOCK_PREFIX", "cinebook")
COMMIT_LOCK_TTL_MS = int(os.getenv("COMMIT_LOCK_TTL_MS", "10000"))
COMMIT_LOCK_WAIT_MS = int(os.getenv("COMMIT_LOCK_WAIT_MS", "5000"))

# Payment gateway
PAYMENT_GATEWAY = os.getenv("PAYMENT_GATEWAY", "fallback")  # razorpay | fallback
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID", "")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "INR")
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))

# JWT (tokens are issued by the auth service, we only decode them)
SECRET_KEY = os.getenv("SECRET_KEY", "supersecretkey")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Email
SMTP_SERVER = os.getenv("SMTP_SERVER", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASSWORD = os.getenv("EMAIL_PASSWORD", "")
EMAIL_RETRIES = int(os.getenv("EMAIL_RETRIES", "2"))
SUPPORT_EMAIL = os.getenv("SUPPORT_EMAIL", "support@cinebook.local")

# Logging / HTTP
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
    ).split(",")
    if origin.strip()
]


class Settings:
    PROJECT_NAME: str = "Cinebook API"
    VERSION: str = "1.0.0"
    DATABASE_URL = DATABASE_URL
    REDIS_URL = REDIS_URL
    REDIS_SOCKET_TIMEOUT = REDIS_SOCKET_TIMEOUT
    LOCK_PREFIX = LOCK_PREFIX
    COMMIT_LOCK_TTL_MS = COMMIT_LOCK_TTL_MS
    COMMIT_LOCK_WAIT_MS = COMMIT_LOCK_WAIT_MS
    PAYMENT_GATEWAY = PAYMENT_GATEWAY
    RAZORPAY_KEY_ID = RAZORPAY_KEY_ID
    RAZORPAY_KEY_SECRET = RAZORPAY_KEY_SECRET
    PAYMENT_CURRENCY = PAYMENT_CURRENCY
    GATEWAY_TIMEOUT_SECONDS = GATEWAY_TIMEOUT_SECONDS
    SECRET_KEY = SECRET_KEY
    JWT_ALGORITHM = JWT_ALGORITHM
    ACCESS_TOKEN_EXPIRE_MINUTES = ACCESS_TOKEN_EXPIRE_MINUTES
    SMTP_SERVER = SMTP_SERVER
    SMTP_PORT = SMTP_PORT
    EMAIL_USER = EMAIL_USER
    EMAIL_PASSWORD = EMAIL_PASSWORD
    EMAIL_RETRIES = EMAIL_RETRIES
    SUPPORT_EMAIL = SUPPORT_EMAIL
    LOG_LEVEL = LOG_LEVEL
    ALLOWED_ORIGINS = ALLOWED_ORIGINS


settings = Settings()
