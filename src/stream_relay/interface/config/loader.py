"""
설정 로더

config.json을 로드하고 Pydantic 스키마로 검증합니다.
검증된 설정을 런타임(RelaySettings) 구조로 변환합니다.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from stream_relay.common.errors import ConfigError, ErrorCode
from stream_relay.common.logging import get_logger
from stream_relay.domain.models.relay import (
    SEGMENTATION_TARGET_NAME,
    DestinationSpec,
    FFmpegSettings,
    IngestSettings,
    RelaySettings,
    RelayTimings,
    SegmentationSpec,
)

from .schema import AppConfig

logger = get_logger(__name__)

_DESTINATION_SCHEMES = ("rtmp://", "rtmps://", "srt://", "rtsp://", "udp://", "tcp://")


class ConfigLoader:
    """config.json 로딩 및 변환을 담당합니다."""

    def __init__(self, default_path: str = "config.json") -> None:
        self._default_path = Path(default_path)

    def load_from_file(self, path: str | Path | None = None) -> AppConfig:
        """파일에서 설정을 로드하고 검증합니다."""
        target = Path(path) if path else self._default_path

        if not target.exists():
            raise ConfigError(
                ErrorCode.CONFIG_NOT_FOUND,
                f"설정 파일을 찾을 수 없습니다: {target}",
                config_path=str(target),
            )

        try:
            content = target.read_text(encoding="utf-8")
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigError(
                ErrorCode.CONFIG_PARSE_ERROR,
                f"설정 파일 파싱에 실패했습니다: {e}",
                config_path=str(target),
                details={"error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise ConfigError(
                ErrorCode.CONFIG_PARSE_ERROR,
                "설정 파일의 최상위 값은 객체여야 합니다",
                config_path=str(target),
            )

        return self.load_from_dict(data, config_path=str(target))

    def load_from_dict(
        self,
        data: dict[str, Any],
        config_path: str | None = None,
    ) -> AppConfig:
        """딕셔너리에서 설정을 검증합니다."""
        try:
            config = AppConfig.model_validate(data)
            return config
        except ValidationError as e:
            errors = e.errors(include_url=False, include_context=False)
            logger.error("설정 검증 실패", errors=errors, config_path=config_path)
            raise ConfigError(
                ErrorCode.CONFIG_INVALID,
                "설정 검증에 실패했습니다",
                config_path=config_path,
                details={"errors": errors},
            ) from e

    def validate(self, config: AppConfig) -> tuple[bool, list[str]]:
        """
        추가 교차 검증.
        - 목적지 이름은 세그멘테이션 타깃 이름과 겹칠 수 없음
        - 목적지 URL 스킴
        - 워치독 임계치 >= 점검 주기
        - 활성 타깃이 하나 이상
        """
        errors: list[str] = []

        # 1) 목적지
        for destination in config.destinations:
            if destination.name == SEGMENTATION_TARGET_NAME:
                errors.append(
                    f"목적지 이름 '{SEGMENTATION_TARGET_NAME}'은 세그멘테이션 전용입니다"
                )
            if not destination.url.startswith(_DESTINATION_SCHEMES):
                errors.append(f"목적지 {destination.name}: 지원하지 않는 URL 스킴입니다")

        # 2) 슈퍼바이저 타이밍
        supervisor = config.supervisor
        if supervisor.stall_threshold_seconds < supervisor.watchdog_interval_seconds:
            errors.append(
                "supervisor.stall_threshold_seconds는 watchdog_interval_seconds 이상이어야 합니다"
            )

        # 3) 활성 타깃
        enabled = [d for d in config.destinations if d.enabled]
        if not enabled and not config.segmentation.enabled:
            errors.append("활성화된 목적지나 세그멘테이션이 하나 이상 필요합니다")

        return (len(errors) == 0), errors

    def to_runtime(self, config: AppConfig) -> RelaySettings:
        """Application Layer에서 사용하는 런타임 설정으로 변환합니다."""
        destinations = tuple(
            DestinationSpec(
                name=d.name,
                url=d.url,
                enabled=d.enabled,
                watchdog=d.watchdog,
                auto_reconnect=d.auto_reconnect,
            )
            for d in config.destinations
        )

        seg = config.segmentation
        segmentation = SegmentationSpec(
            enabled=seg.enabled,
            media_root=Path(seg.media_root),
            segment_duration=seg.segment_duration,
            playlist_size=seg.playlist_size,
            cleanup_delay=seg.cleanup_delay_seconds,
            watchdog=seg.watchdog,
            auto_reconnect=seg.auto_reconnect,
        )

        sup = config.supervisor
        timings = RelayTimings(
            stagger=sup.stagger_ms / 1000.0,
            reconnect_delay=sup.reconnect_delay_seconds,
            watchdog_interval=sup.watchdog_interval_seconds,
            stall_threshold=sup.stall_threshold_seconds,
            shutdown_grace=sup.shutdown_grace_seconds,
        )

        return RelaySettings(
            destinations=destinations,
            segmentation=segmentation,
            timings=timings,
            ffmpeg=FFmpegSettings(
                binary=config.ffmpeg.binary,
                loglevel=config.ffmpeg.loglevel,
                bufsize=config.ffmpeg.bufsize,
            ),
            ingest=IngestSettings(
                rtmp_base_url=config.ingest.rtmp_base_url,
                default_app=config.ingest.default_app,
            ),
            log_dir=Path(sup.log_dir),
        )
