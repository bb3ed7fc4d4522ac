"""
StreamRelay - 라이브 스트림 다중 송출 릴레이 슈퍼바이저

인제스트 서버로 들어온 라이브 스트림 하나를 여러 목적지로 동시에 송출하고,
선택적으로 로컬 HLS 세그먼트를 생성하는 FFmpeg 서브프로세스들을 관리합니다.
"""

__version__ = "0.1.0"
__author__ = "StreamRelay Team"

from stream_relay.common.errors import (
    RelayError,
    SpawnError,
    StallDetected,
    SubprocessExit,
    UnresolvedStreamIdentity,
    StreamError,
    ConfigError,
    ErrorCode,
)
from stream_relay.common.logging import get_logger

__all__ = [
    "__version__",
    "RelayError",
    "SpawnError",
    "StallDetected",
    "SubprocessExit",
    "UnresolvedStreamIdentity",
    "StreamError",
    "ConfigError",
    "ErrorCode",
    "get_logger",
]
