from fastapi import Request
from fastapi.responses import JSONResponse

from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.errors import TradingError
from dex_autotrader.models.result import OperationResult
from dex_autotrader.utils.log_config import logger_manager

logger = logger_manager.setup_logger(__name__)

HTTP_STATUS = {
    ErrorKind.NO_IDENTITY: 400,
    ErrorKind.INVALID_AMOUNT: 400,
    ErrorKind.AMOUNT_TOO_SMALL: 400,
    ErrorKind.UNSUPPORTED_TOKEN: 400,
    ErrorKind.NO_ACTIVE_SESSION: 404,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CANCELLED: 409,
    ErrorKind.SWAP_FAILED: 502,
    ErrorKind.ORACLE_UNAVAILABLE: 503,
}


def error_response(kind: ErrorKind, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=HTTP_STATUS.get(kind, 500),
        content={"success": False, "error": kind.value, "message": message},
    )


def failure_response(result: OperationResult) -> JSONResponse:
    return error_response(result.error, result.reason)


async def trading_error_handler(request: Request, exc: TradingError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} -> {exc.kind.value}: {exc.reason}")
    return error_response(exc.kind, exc.reason)
