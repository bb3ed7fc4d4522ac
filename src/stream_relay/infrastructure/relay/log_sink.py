# -*- coding: utf-8 -*-
"""
서브프로세스 출력 로그 싱크.

(스트림, 타깃) 쌍마다 append 전용 stdout/stderr 캡처 파일을 엽니다.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import BinaryIO


class LogSink:
    """
    출력/에러 캡처 파일 쌍.

    파일 이름: <log_dir>/<stream_key>--<target>.out.log / .err.log
    """

    def __init__(self, out_path: Path, err_path: Path, out: BinaryIO, err: BinaryIO) -> None:
        self.out_path = out_path
        self.err_path = err_path
        self._out = out
        self._err = err
        self._closed = False

    @classmethod
    def open(cls, log_dir: str | Path, stream_key: str, target_name: str) -> LogSink:
        """로그 디렉토리를 만들고 두 파일을 append 모드로 엽니다."""
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)

        base = directory / f"{stream_key}--{_safe_name(target_name)}"
        out_path = base.with_name(base.name + ".out.log")
        err_path = base.with_name(base.name + ".err.log")

        out = open(out_path, "ab")
        try:
            err = open(err_path, "ab")
        except OSError:
            out.close()
            raise
        return cls(out_path, err_path, out, err)

    @property
    def closed(self) -> bool:
        return self._closed

    def write_out(self, data: bytes) -> None:
        if not self._closed:
            self._out.write(data)
            self._out.flush()

    def write_err(self, data: bytes) -> None:
        if not self._closed:
            self._err.write(data)
            self._err.flush()

    def write_note(self, message: str) -> None:
        """슈퍼바이저 메모를 에러 로그에 한 줄로 남깁니다 (기동 실패 등)."""
        stamp = datetime.now().isoformat(timespec="seconds")
        self.write_err(f"[{stamp}] {message}\n".encode("utf-8"))

    def close(self) -> None:
        """두 파일을 닫습니다. 여러 번 호출해도 안전합니다."""
        if self._closed:
            return
        self._closed = True
        self._out.close()
        self._err.close()

    def __enter__(self) -> LogSink:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _safe_name(name: str) -> str:
    """파일 이름에 쓸 수 없는 문자를 치환합니다."""
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in name)
