"""Exception handlers rendering every failure as {"status": "error", "category", "message"}."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.models.errors import GatewayError, SearchValidationError


def _logger(request: Request):
    return getattr(request.app.state, "logging", None)


async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    logger = _logger(request)
    if logger is not None:
        if exc.status_code >= 500:
            logger.error("%s %s failed (%s): %s", request.method, request.url.path, exc.category, exc.message)
        else:
            logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.category, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(
        f"{'.'.join(str(loc) for loc in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return await handle_gateway_error(request, SearchValidationError(message or "Invalid request"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, handle_gateway_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
