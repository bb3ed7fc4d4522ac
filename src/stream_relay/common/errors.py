"""
에러 처리 모듈

StreamRelay 전체에서 사용하는 예외 클래스와 에러 코드를 정의합니다.
모든 예외는 RelayError를 상속받아 일관된 에러 처리가 가능합니다.

서브프로세스 관련 조건(SpawnError, StallDetected, SubprocessExit)은
예외로 던져지기보다 ExitReport에 담겨 소유 매니저에게 전달됩니다.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    에러 코드 열거형

    HTTP 상태 코드와 매핑되어 REST API 응답에 사용됩니다.
    """

    # 서브프로세스 관련
    SPAWN_FAILED = "SPAWN_FAILED"               # 실행 파일 기동 실패
    STALL_DETECTED = "STALL_DETECTED"           # 출력 정지 감지 (워치독)
    SUBPROCESS_EXIT = "SUBPROCESS_EXIT"         # 서브프로세스 자연 종료

    # 스트림 관련
    STREAM_NOT_FOUND = "STREAM_NOT_FOUND"                       # 스트림 없음
    UNRESOLVED_STREAM_IDENTITY = "UNRESOLVED_STREAM_IDENTITY"   # 스트림 경로 해석 불가

    # 설정 관련
    CONFIG_INVALID = "CONFIG_INVALID"           # 설정 검증 실패
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"       # 설정 파일 없음
    CONFIG_PARSE_ERROR = "CONFIG_PARSE_ERROR"   # 설정 파싱 오류

    # 일반
    INTERNAL_ERROR = "INTERNAL_ERROR"           # 내부 오류


# 에러 코드 → HTTP 상태 코드 매핑
_ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.STREAM_NOT_FOUND: 404,
    ErrorCode.CONFIG_NOT_FOUND: 404,

    ErrorCode.UNRESOLVED_STREAM_IDENTITY: 400,
    ErrorCode.CONFIG_INVALID: 400,
    ErrorCode.CONFIG_PARSE_ERROR: 400,

    ErrorCode.SPAWN_FAILED: 500,
    ErrorCode.STALL_DETECTED: 500,
    ErrorCode.SUBPROCESS_EXIT: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def get_http_status(error_code: ErrorCode) -> int:
    """
    에러 코드에 해당하는 HTTP 상태 코드를 반환합니다.

    Args:
        error_code: 에러 코드

    Returns:
        HTTP 상태 코드 (기본값: 500)
    """
    return _ERROR_CODE_TO_HTTP_STATUS.get(error_code, 500)


class RelayError(Exception):
    """
    StreamRelay 기본 예외 클래스

    모든 커스텀 예외의 부모 클래스입니다.
    에러 코드, 메시지, 상세 정보를 포함합니다.

    Attributes:
        code: 에러 코드 (ErrorCode)
        message: 사용자에게 표시할 메시지
        details: 추가 상세 정보 (디버깅용)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def http_status(self) -> int:
        """HTTP 상태 코드 반환"""
        return get_http_status(self.code)

    def to_dict(self) -> dict[str, Any]:
        """
        예외 정보를 딕셔너리로 변환합니다.

        REST API 응답과 구조화 로그에서 사용됩니다.
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class RelayTargetError(RelayError):
    """
    (스트림, 타깃) 쌍에 묶인 예외의 공통 부모

    Attributes:
        stream_key: 스트림 키
        target: 타깃 이름 (목적지 이름 또는 세그멘테이션 타깃)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        stream_key: str,
        target: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.stream_key = stream_key
        self.target = target
        _details: dict[str, Any] = {"stream_key": stream_key, "target": target}
        if details:
            _details.update(details)
        super().__init__(code, message, _details)


class SpawnError(RelayTargetError):
    """실행 파일을 기동할 수 없음. 로그만 남기고 재시도하지 않습니다."""

    def __init__(
        self,
        message: str,
        stream_key: str,
        target: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(ErrorCode.SPAWN_FAILED, message, stream_key, target, details)


class StallDetected(RelayTargetError):
    """
    출력 정지 감지

    전송 계층 연결은 살아 있지만 데이터가 멈춘 상태입니다.
    강제 종료 후 일반 종료 처리(및 선택적 재연결)로 복구됩니다.
    """

    def __init__(
        self,
        stream_key: str,
        target: str,
        idle_seconds: float,
    ) -> None:
        self.idle_seconds = idle_seconds
        super().__init__(
            ErrorCode.STALL_DETECTED,
            f"{idle_seconds:.1f}초 동안 출력 없음",
            stream_key,
            target,
            {"idle_seconds": round(idle_seconds, 1)},
        )


class SubprocessExit(RelayTargetError):
    """서브프로세스 자연 종료. 재연결 정책에 따라 복구되거나 해당 타깃이 종료됩니다."""

    def __init__(
        self,
        stream_key: str,
        target: str,
        exit_code: int | None,
    ) -> None:
        self.exit_code = exit_code
        super().__init__(
            ErrorCode.SUBPROCESS_EXIT,
            f"서브프로세스 종료 (code={exit_code})",
            stream_key,
            target,
            {"exit_code": exit_code},
        )


class UnresolvedStreamIdentity(RelayError):
    """
    스트림 경로 해석 불가

    인제스트 알림에 경로를 결정할 정보가 없을 때 발생합니다.
    이 경우 어떤 동작도 수행하지 않으며, 식별자를 추측하지 않습니다.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(ErrorCode.UNRESOLVED_STREAM_IDENTITY, message, details)


class StreamError(RelayError):
    """
    스트림 관련 예외

    Attributes:
        stream_key: 오류가 발생한 스트림 키
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        stream_key: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.stream_key = stream_key
        _details = {"stream_key": stream_key}
        if details:
            _details.update(details)
        super().__init__(code, message, _details)


class ConfigError(RelayError):
    """
    설정 관련 예외

    설정 파일의 로드, 파싱, 검증 중 발생하는 오류를 나타냅니다.

    Attributes:
        config_path: 오류가 발생한 설정 파일 경로 (선택)
        field_name: 오류가 발생한 필드 이름 (선택)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        config_path: str | None = None,
        field_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.config_path = config_path
        self.field_name = field_name
        _details: dict[str, Any] = {}
        if config_path:
            _details["config_path"] = config_path
        if field_name:
            _details["field_name"] = field_name
        if details:
            _details.update(details)
        super().__init__(code, message, _details)
