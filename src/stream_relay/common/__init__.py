"""
공통 유틸리티 모듈

에러 처리, 로깅 등 전체 애플리케이션에서 사용하는 공통 기능을 제공합니다.
"""

from stream_relay.common.errors import (
    RelayError,
    SpawnError,
    StallDetected,
    SubprocessExit,
    UnresolvedStreamIdentity,
    StreamError,
    ConfigError,
    ErrorCode,
    get_http_status,
)
from stream_relay.common.logging import get_logger, configure_logging

__all__ = [
    # 에러
    "RelayError",
    "SpawnError",
    "StallDetected",
    "SubprocessExit",
    "UnresolvedStreamIdentity",
    "StreamError",
    "ConfigError",
    "ErrorCode",
    "get_http_status",
    # 로깅
    "get_logger",
    "configure_logging",
]
