"""
StreamRelay 진입점

애플리케이션 초기화, 컴포넌트 배선, FastAPI 서버 시작을 담당합니다.
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import uvicorn

from stream_relay.application.lifecycle.bridge import LifecycleEventBridge
from stream_relay.application.scheduler import AsyncioScheduler
from stream_relay.application.stream.artifacts import SegmentArtifactStore
from stream_relay.application.stream.registry import StreamRegistry
from stream_relay.common.errors import ConfigError, ErrorCode
from stream_relay.common.logging import configure_logging, get_logger
from stream_relay.domain.models.session import SessionResolver
from stream_relay.infrastructure.relay.ffmpeg_process import RelayProcessFactory
from stream_relay.interface.api.app import create_app
from stream_relay.interface.api.dependencies import AppContext, set_app_context
from stream_relay.interface.config.loader import ConfigLoader
from stream_relay.interface.config.schema import AppConfig

logger = get_logger(__name__)


def load_config(config_path: str | Path) -> AppConfig:
    """
    설정을 로드하고 교차 검증합니다.

    Raises:
        ConfigError: 파일이 없거나, 파싱/검증에 실패했을 때
    """
    loader = ConfigLoader()
    app_config = loader.load_from_file(config_path)

    is_valid, errors = loader.validate(app_config)
    if not is_valid:
        logger.error("설정 검증 실패", errors=errors)
        raise ConfigError(
            ErrorCode.CONFIG_INVALID,
            f"설정 검증 실패: {errors}",
            config_path=str(config_path),
            details={"errors": errors},
        )
    return app_config


def initialize_components(app_config: AppConfig) -> AppContext:
    """
    모든 컴포넌트를 초기화하고 배선합니다.

    Args:
        app_config: 검증된 설정

    Returns:
        API 계층에 주입할 AppContext
    """
    settings = ConfigLoader().to_runtime(app_config)

    scheduler = AsyncioScheduler()
    artifacts = SegmentArtifactStore(scheduler)
    registry = StreamRegistry(artifacts)
    handle_factory = RelayProcessFactory(settings, scheduler)
    bridge = LifecycleEventBridge(
        registry=registry,
        resolver=SessionResolver(default_app=settings.ingest.default_app),
        settings=settings,
        handle_factory=handle_factory,
        scheduler=scheduler,
        artifacts=artifacts,
    )

    logger.info(
        "컴포넌트 초기화 완료",
        destinations=len(settings.enabled_destinations),
        segmentation=settings.segmentation.enabled,
        ffmpeg=settings.ffmpeg.binary,
    )
    return AppContext(registry=registry, bridge=bridge, settings=settings)


def build_server(app_config: AppConfig, context: AppContext) -> uvicorn.Server:
    """
    FastAPI 앱과 uvicorn 서버를 구성하고 종료 콜백을 브리지에 연결합니다.

    진행 중인 요청도 shutdown_grace초 안에 정리되도록 제한합니다.
    """
    app = create_app(
        allowed_origins=app_config.server.allowed_origins,
        handle_signals=True,
    )
    set_app_context(app, context)

    host = os.getenv("HOST", app_config.server.host)
    port = int(os.getenv("PORT", str(app_config.server.port)))

    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level="info",
            timeout_graceful_shutdown=context.settings.timings.shutdown_grace,
        )
    )

    def request_exit() -> None:
        logger.info("서버 종료")
        server.should_exit = True

    context.bridge.set_exit_callback(request_exit)
    return server


async def serve(app_config: AppConfig) -> None:
    """API 서버와 릴레이 슈퍼바이저를 하나의 이벤트 루프에서 실행합니다."""
    context = initialize_components(app_config)
    server = build_server(app_config, context)

    logger.info(f"서버 시작: http://{server.config.host}:{server.config.port}")
    await server.serve()


def main() -> None:
    """메인 진입점."""
    # 설정 파일 경로 (환경변수 또는 기본값)
    config_path = os.getenv("CONFIG_PATH", "config.json")

    try:
        app_config = load_config(config_path)
        configure_logging(level=app_config.observability.log_level)
        asyncio.run(serve(app_config))
    except ConfigError as e:
        logger.error(f"설정 오류: {e.message}", code=e.code.value, details=e.details)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("사용자 중단")


if __name__ == "__main__":
    main()
