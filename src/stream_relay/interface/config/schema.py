"""
설정 스키마 (Pydantic v2)

config.json을 검증하기 위한 스키마를 정의합니다.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Pydantic 모델은 Interface Layer에서만 외부 라이브러리에 의존합니다.

FFmpegLogLevel = Literal[
    "quiet", "panic", "fatal", "error", "warning", "info", "verbose", "debug", "trace"
]


class IngestConfig(BaseModel):
    """인제스트 서버 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    rtmp_base_url: str = Field("rtmp://127.0.0.1:1935", description="인제스트 서버 RTMP 기본 URL")
    default_app: str = Field("live", description="네임스페이스가 없는 경로에 붙일 애플리케이션 이름")

    @field_validator("rtmp_base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        if "://" not in value:
            raise ValueError("rtmp_base_url은 스킴을 포함한 URL이어야 합니다")
        return value.rstrip("/")

    @field_validator("default_app")
    @classmethod
    def validate_default_app(cls, value: str) -> str:
        value = value.strip("/")
        if not value or "/" in value:
            raise ValueError("default_app은 '/'를 포함하지 않는 이름이어야 합니다")
        return value


class FFmpegConfig(BaseModel):
    """FFmpeg 실행 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    binary: str = Field("/usr/bin/ffmpeg", description="FFmpeg 실행 파일 경로")
    loglevel: FFmpegLogLevel = Field("info", description="FFmpeg 로그 레벨")
    bufsize: str = Field("3000k", description="송출 버퍼 크기")

    @field_validator("binary", "bufsize")
    @classmethod
    def not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("필수 필드는 비워둘 수 없습니다")
        return value


class DestinationConfig(BaseModel):
    """송출 목적지 설정 스키마."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    name: str = Field(..., description="목적지 이름 (고유)")
    url: str = Field(..., description="송출 URL (rtmp://, rtmps://, srt:// 등)")
    enabled: bool = Field(True, description="활성화 여부")
    watchdog: bool = Field(True, description="출력 정지 워치독 사용 여부")
    auto_reconnect: bool = Field(False, description="자연 종료 시 자동 재연결 여부")

    @field_validator("name", "url")
    @classmethod
    def not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("필수 필드는 비워둘 수 없습니다")
        return value.strip()


class SegmentationConfig(BaseModel):
    """로컬 HLS 세그멘테이션 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    enabled: bool = Field(False, description="활성화 여부")
    media_root: str = Field("media", description="세그먼트 출력 루트 디렉토리")
    segment_duration: int = Field(2, description="세그먼트 길이 (초)")
    playlist_size: int = Field(6, description="플레이리스트 윈도우 세그먼트 수")
    cleanup_delay_seconds: float = Field(30.0, description="종료 후 산출물 삭제 지연 (초)")
    watchdog: bool = Field(True, description="출력 정지 워치독 사용 여부")
    auto_reconnect: bool = Field(False, description="자연 종료 시 자동 재연결 여부")

    @model_validator(mode="after")
    def validate_values(self) -> "SegmentationConfig":
        if self.segment_duration < 1:
            raise ValueError("segment_duration은 1 이상이어야 합니다")
        if self.playlist_size < 1:
            raise ValueError("playlist_size는 1 이상이어야 합니다")
        if self.cleanup_delay_seconds < 0:
            raise ValueError("cleanup_delay_seconds는 0 이상이어야 합니다")
        if not self.media_root:
            raise ValueError("media_root는 비워둘 수 없습니다")
        return self


class SupervisorConfig(BaseModel):
    """슈퍼바이저 타이밍 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    log_dir: str = Field("logs", description="서브프로세스 출력 로그 디렉토리")
    stagger_ms: int = Field(500, description="목적지 간 시작 간격 (밀리초)")
    reconnect_delay_seconds: float = Field(5.0, description="재연결 대기 (초)")
    watchdog_interval_seconds: float = Field(10.0, description="워치독 점검 주기 (초)")
    stall_threshold_seconds: float = Field(30.0, description="출력 정지 판정 임계치 (초)")
    shutdown_grace_seconds: float = Field(2.0, description="종료 시그널 후 프로세스 종료까지 유예 (초)")

    @model_validator(mode="after")
    def validate_values(self) -> "SupervisorConfig":
        if self.stagger_ms < 0:
            raise ValueError("stagger_ms는 0 이상이어야 합니다")
        if self.reconnect_delay_seconds < 0:
            raise ValueError("reconnect_delay_seconds는 0 이상이어야 합니다")
        if self.watchdog_interval_seconds <= 0:
            raise ValueError("watchdog_interval_seconds는 0보다 커야 합니다")
        if self.stall_threshold_seconds <= 0:
            raise ValueError("stall_threshold_seconds는 0보다 커야 합니다")
        if self.shutdown_grace_seconds < 0:
            raise ValueError("shutdown_grace_seconds는 0 이상이어야 합니다")
        return self


class ServerConfig(BaseModel):
    """HTTP 서버 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    host: str = Field("0.0.0.0", description="바인딩 호스트")
    port: int = Field(8000, description="바인딩 포트")
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"], description="CORS 허용 출처")

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError("port는 1~65535 범위여야 합니다")
        return value


class ObservabilityConfig(BaseModel):
    """관측 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    log_level: str = Field("INFO", description="로그 레벨")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"지원하지 않는 로그 레벨: {value}")
        return level


class AppConfig(BaseModel):
    """애플리케이션 전체 설정 스키마."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        validate_assignment=True,
    )

    ingest: IngestConfig = Field(default_factory=IngestConfig, description="인제스트 설정")
    ffmpeg: FFmpegConfig = Field(default_factory=FFmpegConfig, description="FFmpeg 설정")
    destinations: list[DestinationConfig] = Field(default_factory=list, description="송출 목적지 목록")
    segmentation: SegmentationConfig = Field(
        default_factory=SegmentationConfig,
        description="로컬 세그멘테이션 설정",
    )
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig, description="슈퍼바이저 설정")
    server: ServerConfig = Field(default_factory=ServerConfig, description="서버 설정")
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="관측 설정",
    )

    @model_validator(mode="after")
    def validate_uniqueness(self) -> "AppConfig":
        names = [d.name for d in self.destinations]
        if len(names) != len(set(names)):
            raise ValueError("목적지 이름이 중복됩니다")
        return self
