# -*- coding: utf-8 -*-
"""
Infrastructure Layer 패키지.

외부 시스템과의 통신을 담당합니다:
- relay: FFmpeg 서브프로세스 기동/감시, 출력 로그 캡처
"""

from stream_relay.infrastructure.relay import LogSink, RelayProcess, RelayProcessFactory

__all__ = [
    "LogSink",
    "RelayProcess",
    "RelayProcessFactory",
]
