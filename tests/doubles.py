"""Test doubles: manual clock scheduler and fake ffmpeg subprocesses."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import signal
from typing import Any, Callable


class ManualTimer:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Scheduler whose clock only moves when the test calls advance()."""

    def __init__(self) -> None:
        self._now = 0.0
        self._heap: list[tuple[float, int, ManualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualTimer:
        timer = ManualTimer(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._heap, (timer.when, next(self._seq), timer))
        return timer

    def advance(self, delta: float) -> None:
        """Run every due timer in time order, including ones scheduled while advancing."""
        target = self._now + delta
        while self._heap and self._heap[0][0] <= target:
            when, _, timer = heapq.heappop(self._heap)
            if timer.cancelled():
                continue
            self._now = when
            timer.callback(*timer.args)
        self._now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._heap if not t.cancelled())


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, argv: tuple[str, ...], pid: int, exit_on_signal: bool = True) -> None:
        self.argv = argv
        self.pid = pid
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.returncode: int | None = None
        self.signals: list[int] = []
        self.exit_on_signal = exit_on_signal
        self.exit_on_kill = True
        self._exited = asyncio.Event()

    @property
    def output_target(self) -> str:
        return self.argv[-1]

    def emit(self, data: bytes, stream: str = "stderr") -> None:
        getattr(self, stream).feed_data(data)

    def exit(self, code: int = 0) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def send_signal(self, sig: int) -> None:
        if self.returncode is not None:
            raise ProcessLookupError()
        self.signals.append(sig)
        if self.exit_on_signal:
            self.exit(-int(sig))

    def kill(self) -> None:
        if self.returncode is not None:
            raise ProcessLookupError()
        self.signals.append(signal.SIGKILL)
        if self.exit_on_kill:
            self.exit(-int(signal.SIGKILL))


class FakeLauncher:
    """Records every launch; drop-in for asyncio.create_subprocess_exec."""

    def __init__(self, exit_on_signal: bool = True) -> None:
        self.processes: list[FakeProcess] = []
        self.kwargs: list[dict[str, Any]] = []
        self.fail_with: Exception | None = None
        self.fail_match: str | None = None
        self.exit_on_signal = exit_on_signal
        self._pids = itertools.count(1000)

    async def __call__(self, *argv: str, **kwargs: Any) -> FakeProcess:
        self.kwargs.append(kwargs)
        if self.fail_with is not None and (self.fail_match is None or self.fail_match in argv[-1]):
            raise self.fail_with
        process = FakeProcess(argv, next(self._pids), exit_on_signal=self.exit_on_signal)
        self.processes.append(process)
        return process

    @property
    def launch_count(self) -> int:
        return len(self.processes)

    def for_output(self, fragment: str) -> list[FakeProcess]:
        return [p for p in self.processes if fragment in p.output_target]

    def alive(self) -> list[FakeProcess]:
        return [p for p in self.processes if p.returncode is None]


async def drain(rounds: int = 20) -> None:
    """Let pending loop callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
