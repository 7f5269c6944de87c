# config.py
import os
from dotenv import load_dotenv

# Inside a container (Docker, Railway) the platform provides the env vars;
# a repository `.env` must not override them.
if not os.path.exists("/.dockerenv"):
    load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///local.db")
API_KEY = os.getenv("API_KEY", "default-dev-key")
APP_VERSION = os.getenv("APP_VERSION", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
JOIN_RATE_LIMIT = os.getenv("JOIN_RATE_LIMIT", "30/minute")

# Routes under /api/ that don't need an X-API-Key header
PUBLIC_API_PREFIXES = ("/api/docs", "/api/openapi", "/api/health")
