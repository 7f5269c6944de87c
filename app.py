import logging

logger = logging.getLogger(__name__)

# 🚀 Import the Keeper FastAPI app
from keeper.app import application  # noqa: E402

# For dev convenience: run FastAPI with hot-reload
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("keeper.app:application", host="0.0.0.0", port=8000, reload=True)
