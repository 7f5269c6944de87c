# keeper/error_handlers.py

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from keeper.dice import DiceError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    @app.exception_handler(DiceError)
    async def handle_dice_error(request: Request, exc: DiceError):
        logger.info(f"Rejected dice formula on {request.url.path}: {exc}")
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def handle_exception(request: Request, exc: Exception):
        logger.error("Unhandled exception", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
