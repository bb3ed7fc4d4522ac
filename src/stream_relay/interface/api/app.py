"""
FastAPI 애플리케이션 팩토리

Interface Layer에서만 FastAPI에 의존합니다.
예외 핸들러, CORS, 라우터 등록을 담당합니다.
"""

from __future__ import annotations

import asyncio
import signal
from typing import Iterable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from stream_relay import __version__
from stream_relay.common.errors import RelayError
from stream_relay.common.logging import get_logger
from stream_relay.interface.api.routes import health, hooks, streams

logger = get_logger(__name__)


def create_app(
    allowed_origins: Iterable[str] | None = None,
    handle_signals: bool = False,
) -> FastAPI:
    """
    FastAPI 애플리케이션을 생성합니다.

    Args:
        allowed_origins: CORS 허용 오리진 목록
        handle_signals: 시작 시 SIGINT/SIGTERM 핸들러를 이벤트 루프에 설치할지 여부
            (메인 스레드에서 실행될 때만 사용)
    """
    app = FastAPI(title="StreamRelay API", version=__version__)

    @app.on_event("startup")
    async def on_startup():
        """시그널 핸들러를 서버 이벤트 루프에 연결합니다."""
        context = getattr(app.state, "app_context", None)
        if context is None:
            logger.warning("AppContext not found in app.state")
            return
        if handle_signals:
            context.bridge.install_signal_handlers(asyncio.get_running_loop())
        logger.info("API 서버 시작", streams=len(context.registry))

    @app.on_event("shutdown")
    async def on_shutdown():
        """시그널 없이 서버가 내려가는 경우에도 모든 릴레이를 정리합니다."""
        context = getattr(app.state, "app_context", None)
        if context is not None and not context.bridge.is_shutting_down:
            context.registry.shutdown_all(signal.SIGTERM)

    # CORS
    origins = list(allowed_origins) if allowed_origins else []
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # 예외 핸들러 등록
    @app.exception_handler(RelayError)
    async def handle_relay_error(_: Request, exc: RelayError) -> JSONResponse:
        """RelayError → JSON 응답 매핑."""
        logger.error(
            "RelayError 발생",
            code=exc.code.value,
            error_msg=exc.message,
            details=exc.details,
        )
        return JSONResponse(
            status_code=exc.http_status,
            content={"success": False, "code": exc.code.value, "message": exc.message},
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        """Pydantic ValidationError → 422 응답."""
        errors = exc.errors(include_url=False, include_context=False)
        logger.error("검증 오류", errors=errors)
        error_msg = "입력 데이터 검증 실패"
        if errors:
            first_error = errors[0]
            error_msg = f"{first_error.get('loc', [''])}: {first_error.get('msg', '검증 실패')}"
        return JSONResponse(
            status_code=422,
            content={"success": False, "message": error_msg},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(_: Request, exc: Exception) -> JSONResponse:
        """알 수 없는 예외 → 500 응답."""
        logger.error(f"알 수 없는 오류: {exc}", error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "서버 오류가 발생했습니다"},
        )

    # 라우터 등록
    app.include_router(health.router)
    app.include_router(hooks.router)
    app.include_router(streams.router)

    return app
