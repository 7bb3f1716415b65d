"""Map domain errors onto JSON responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from uniformtrack.core.exceptions import UniformTrackError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(UniformTrackError)
    async def uniformtrack_error_handler(request: Request, exc: UniformTrackError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
