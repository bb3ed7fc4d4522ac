# -*- coding: utf-8 -*-
"""
FFmpeg 릴레이 인프라.

서브프로세스 핸들, 명령 템플릿, 출력 로그 싱크를 제공합니다.
"""

from stream_relay.infrastructure.relay.commands import (
    build_relay_command,
    build_segment_command,
)
from stream_relay.infrastructure.relay.ffmpeg_process import RelayProcess, RelayProcessFactory
from stream_relay.infrastructure.relay.log_sink import LogSink

__all__ = [
    "LogSink",
    "RelayProcess",
    "RelayProcessFactory",
    "build_relay_command",
    "build_segment_command",
]
