"""
中间件模块 - 全局错误处理和请求/响应处理
统一的错误响应格式
"""
import time
from typing import Callable
from uuid import uuid4

from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from campaign_detector.core.config import get_settings
from campaign_detector.core.errors import BaseApplicationError
from campaign_detector.core.logging import LogEvent, create_request_logger


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """请求追踪中间件 - 添加请求ID与处理耗时"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id
        logger = create_request_logger(request_id)

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                LogEvent.REQUEST_FAILED,
                method=request.method,
                path=request.url.path,
                error=str(exc),
                exc_info=True,
            )
            raise

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)

        logger.info(
            LogEvent.REQUEST_COMPLETED,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(process_time * 1000, 2),
        )
        return response


async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
    """自定义应用异常 -> 统一JSON错误"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.to_dict()}
    )


async def error_handler(request: Request, exc: Exception) -> JSONResponse:
    """全局错误处理"""
    if isinstance(exc, BaseApplicationError):
        return await application_error_handler(request, exc)
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail}
        )

    # 未处理的异常
    error_detail = str(exc) if get_settings().is_development else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": error_detail}
    )
