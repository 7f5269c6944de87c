# keeper/health_checks.py

import os
import time

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from keeper.config import APP_VERSION
from keeper.db import engine


def check_database():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok"
    except SQLAlchemyError as e:
        return f"error: {str(e)}"


def check_env(required=None):
    # Missing values are reported, not treated as a hard failure
    if required is None:
        required = ["DATABASE_URL"]
    missing = [var for var in required if not os.getenv(var)]
    return "ok" if not missing else {"missing": missing}


def get_app_metadata(start_time):
    uptime = int(time.time() - start_time)
    return {
        "status": "running",
        "version": APP_VERSION,
        "uptime": f"{uptime}s",
    }
