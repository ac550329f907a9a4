from fastapi import FastAPI, HTTPException, status
from fastapi.responses import JSONResponse

from providers.llm.errors import (
    ConfigurationError,
    MalformedOutputError,
    StoryboardError,
    TransportError,
    UnexpectedShapeError,
)
from services.api.app.core.session import NoStoryboardError, ShotIndexError

STATUS_BY_ERROR = {
    ConfigurationError: status.HTTP_503_SERVICE_UNAVAILABLE,
    TransportError: status.HTTP_502_BAD_GATEWAY,
    MalformedOutputError: status.HTTP_502_BAD_GATEWAY,
    UnexpectedShapeError: status.HTTP_502_BAD_GATEWAY,
    NoStoryboardError: status.HTTP_409_CONFLICT,
    ShotIndexError: 422,
}


def error_body(kind: str, message: str) -> dict:
    return {"detail": {"error": kind, "message": message}}


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(HTTPException)
    async def http_exception_handler(_, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    async def domain_exception_handler(_, exc):
        code = STATUS_BY_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
        return JSONResponse(status_code=code, content=error_body(exc.kind, exc.message))

    for exc_type in (StoryboardError, NoStoryboardError, ShotIndexError):
        app.add_exception_handler(exc_type, domain_exception_handler)
