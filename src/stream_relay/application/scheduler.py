"""
지연 작업 스케줄러

시차 시작, 자동 재연결, 워치독 점검, 아티팩트 삭제 등 모든 타이머를
하나의 이벤트 루프 위에서 실행합니다. 서브프로세스 I/O 콜백과 같은 루프를
사용하므로 같은 스트림에 대한 슈퍼바이저 동작은 동시에 실행되지 않습니다.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol


class TimerHandle(Protocol):
    """예약된 작업 핸들"""

    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """스케줄러 인터페이스 정의"""

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle: ...

    def now(self) -> float: ...


class AsyncioScheduler:
    """
    asyncio 이벤트 루프 기반 스케줄러

    루프를 지정하지 않으면 호출 시점의 실행 중인 루프를 사용합니다.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> asyncio.TimerHandle:
        """delay초 후 callback(*args)를 실행하도록 예약합니다."""
        return self.loop.call_later(max(0.0, delay), callback, *args)

    def now(self) -> float:
        """루프의 단조 시계 (초)"""
        return self.loop.time()
