"""Request middlewares."""

from mlm_rpc.middlewares.database import DatabaseMiddleware
from mlm_rpc.middlewares.error_handler import ErrorHandlerMiddleware, RpcFailure
from mlm_rpc.middlewares.logger_middleware import LoggerMiddleware


__all__ = [
    "DatabaseMiddleware",
    "ErrorHandlerMiddleware",
    "LoggerMiddleware",
    "RpcFailure",
]
