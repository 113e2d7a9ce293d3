import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import PluginError
from .schemas import ErrorDetail, ErrorEnvelope, SuccessEnvelope

logger = logging.getLogger(__name__)


def api_success(data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
    body = SuccessEnvelope(data=data, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def api_error(message: str, status_code: int = 500, details: Any = None) -> JSONResponse:
    code = "INTERNAL_ERROR" if status_code == 500 else "CLIENT_ERROR"
    body = ErrorEnvelope(error=ErrorDetail(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def _plugin_error_handler(request: Request, exc: PluginError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Plugin error on %s: %s (%s)", request.url.path, exc.message, exc.code)
    details = {"code": exc.code}
    if exc.details:
        details.update(exc.details)
    return api_error(exc.message, status_code=exc.status_code, details=details)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PluginError, _plugin_error_handler)
