"""
구조화 로깅 모듈

StreamRelay 전체에서 사용하는 로깅 설정과 유틸리티를 제공합니다.
loguru 기반으로 구조화된 로깅을 지원합니다.

주요 기능:
- JSON 형식 출력 (운영 환경)
- 컬러 콘솔 출력 (개발 환경)
- 컨텍스트 바인딩 (stream_key, target)
"""

import sys
import os
from contextvars import ContextVar
from typing import Any
from functools import lru_cache

from loguru import logger


# 컨텍스트 변수: 현재 처리 중인 스트림 키
_stream_key_var: ContextVar[str | None] = ContextVar("stream_key", default=None)


def set_stream_context(stream_key: str | None) -> None:
    """스트림 키를 현재 컨텍스트에 설정합니다."""
    _stream_key_var.set(stream_key)


def _get_context_extra() -> dict[str, Any]:
    """현재 컨텍스트의 추가 정보를 반환합니다."""
    extra: dict[str, Any] = {}

    stream_key = _stream_key_var.get()
    if stream_key:
        extra["stream_key"] = stream_key

    return extra


def _json_formatter(record: dict[str, Any]) -> str:
    """
    JSON 형식의 로그 포맷터

    운영 환경에서 로그 집계 시스템(ELK, Loki 등)과 호환됩니다.
    """
    import orjson

    log_entry = {
        "timestamp": record["time"].strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
    }

    if record.get("extra"):
        for key, value in record["extra"].items():
            log_entry[key] = value

    if record["exception"]:
        log_entry["exception"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else None,
            "value": str(record["exception"].value) if record["exception"].value else None,
        }

    # loguru는 format 함수의 반환값을 다시 포맷하므로 중괄호를 이스케이프합니다
    line = orjson.dumps(log_entry, default=str).decode("utf-8")
    return line.replace("{", "{{").replace("}", "}}") + "\n"


def _console_formatter(record: dict[str, Any]) -> str:
    """
    컬러 콘솔 형식의 로그 포맷터

    개발 환경에서 가독성을 높입니다.
    """
    fmt = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    fmt += "<level>{level: <8}</level> | "
    fmt += "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "

    extra_parts = []
    if record.get("extra"):
        if "stream_key" in record["extra"]:
            extra_parts.append("<blue>stream={extra[stream_key]}</blue>")
        if "target" in record["extra"]:
            extra_parts.append("<magenta>target={extra[target]}</magenta>")

    if extra_parts:
        fmt += " ".join(extra_parts) + " | "

    fmt += "<level>{message}</level>\n"

    if record["exception"]:
        fmt += "{exception}"

    return fmt


# 로그 레벨 매핑
_LOG_LEVELS = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARNING": "WARNING",
    "WARN": "WARNING",
    "ERROR": "ERROR",
    "CRITICAL": "CRITICAL",
}


def configure_logging(
    level: str = "INFO",
    json_output: bool | None = None,
    log_file: str | None = None,
) -> None:
    """
    로깅 설정을 초기화합니다.

    Args:
        level: 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON 형식 출력 여부 (None이면 환경변수로 결정)
        log_file: 로그 파일 경로 (None이면 stdout만 출력)

    환경변수:
        LOG_LEVEL: 로그 레벨 (기본: INFO)
        LOG_FORMAT: 로그 포맷 (json 또는 console, 기본: console)
        LOG_FILE: 로그 파일 경로
    """
    env_level = os.getenv("LOG_LEVEL", level).upper()
    log_level = _LOG_LEVELS.get(env_level, "INFO")

    if json_output is None:
        json_output = os.getenv("LOG_FORMAT", "console").lower() == "json"

    if log_file is None:
        log_file = os.getenv("LOG_FILE")

    logger.remove()

    if json_output:
        logger.add(
            sys.stdout,
            format=_json_formatter,
            level=log_level,
            serialize=False,
        )
    else:
        logger.add(
            sys.stdout,
            format=_console_formatter,
            level=log_level,
            colorize=True,
        )

    if log_file:
        logger.add(
            log_file,
            format=_json_formatter,
            level=log_level,
            rotation="100 MB",
            retention="7 days",
            compression="gz",
        )

    logger.info(
        f"로깅 설정 완료: level={log_level}, json={json_output}, file={log_file}"
    )


class BoundLogger:
    """
    컨텍스트가 바인딩된 로거

    특정 스트림이나 타깃에서 사용하기 위해 컨텍스트 정보가 자동으로 포함됩니다.
    """

    def __init__(
        self,
        name: str,
        stream_key: str | None = None,
        target: str | None = None,
    ) -> None:
        self._name = name
        self._stream_key = stream_key
        self._target = target
        self._logger = logger.bind(name=name)

    def _get_extra(self, **kwargs: Any) -> dict[str, Any]:
        """로그에 포함할 extra 정보를 구성합니다."""
        extra = _get_context_extra()

        if self._stream_key:
            extra["stream_key"] = self._stream_key
        if self._target:
            extra["target"] = self._target

        extra.update(kwargs)

        return extra

    def bind(self, **kwargs: Any) -> "BoundLogger":
        """추가 컨텍스트를 바인딩한 새 로거를 반환합니다."""
        return BoundLogger(
            name=self._name,
            stream_key=kwargs.get("stream_key", self._stream_key),
            target=kwargs.get("target", self._target),
        )

    def debug(self, message: str, **kwargs: Any) -> None:
        """DEBUG 레벨 로그를 기록합니다."""
        self._logger.bind(**self._get_extra(**kwargs)).debug(message)

    def info(self, message: str, **kwargs: Any) -> None:
        """INFO 레벨 로그를 기록합니다."""
        self._logger.bind(**self._get_extra(**kwargs)).info(message)

    def warning(self, message: str, **kwargs: Any) -> None:
        """WARNING 레벨 로그를 기록합니다."""
        self._logger.bind(**self._get_extra(**kwargs)).warning(message)

    def error(self, message: str, **kwargs: Any) -> None:
        """ERROR 레벨 로그를 기록합니다."""
        self._logger.bind(**self._get_extra(**kwargs)).error(message)

    def critical(self, message: str, **kwargs: Any) -> None:
        """CRITICAL 레벨 로그를 기록합니다."""
        self._logger.bind(**self._get_extra(**kwargs)).critical(message)

    def exception(self, message: str, **kwargs: Any) -> None:
        """예외 정보와 함께 ERROR 레벨 로그를 기록합니다."""
        self._logger.bind(**self._get_extra(**kwargs)).exception(message)


@lru_cache(maxsize=256)
def get_logger(
    name: str,
    stream_key: str | None = None,
    target: str | None = None,
) -> BoundLogger:
    """
    로거 인스턴스를 반환합니다.

    동일한 인자로 호출하면 캐시된 인스턴스를 반환합니다.

    Args:
        name: 로거 이름 (보통 __name__ 사용)
        stream_key: 스트림 키 (스트림별 로그용)
        target: 타깃 이름 (목적지/세그멘테이션별 로그용)

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("릴레이 시작")

        >>> target_logger = get_logger(__name__, stream_key="live__abc", target="Twitch")
        >>> target_logger.warning("출력 정지 감지")
    """
    return BoundLogger(name=name, stream_key=stream_key, target=target)


# 기본 로깅 설정 (모듈 임포트 시 실행)
# 애플리케이션에서 configure_logging()을 호출하여 재설정 가능
if not os.getenv("RELAY_SKIP_DEFAULT_LOGGING"):
    configure_logging()
