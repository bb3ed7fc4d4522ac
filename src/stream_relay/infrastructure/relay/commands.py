# -*- coding: utf-8 -*-
"""
FFmpeg 명령 템플릿.

모든 타깃은 실시간 속도로 입력을 읽고(-re) 영상/음성을 재인코딩 없이 복사합니다.
출력만 타깃별로 다릅니다.
"""

from __future__ import annotations

from pathlib import Path

from stream_relay.domain.models.relay import (
    DestinationSpec,
    FFmpegSettings,
    SegmentationSpec,
)

PLAYLIST_NAME = "index.m3u8"
SEGMENT_PATTERN = "seg_%05d.ts"


def _input_args(ffmpeg: FFmpegSettings, input_url: str) -> list[str]:
    return [
        ffmpeg.binary,
        "-hide_banner",
        "-loglevel", ffmpeg.loglevel,
        "-re",
        "-i", input_url,
        "-c:v", "copy",
        "-c:a", "copy",
    ]


def build_relay_command(
    ffmpeg: FFmpegSettings,
    input_url: str,
    destination: DestinationSpec,
) -> list[str]:
    """목적지 푸시용 FFmpeg 명령 구성."""
    return _input_args(ffmpeg, input_url) + [
        "-f", "flv",
        "-bufsize", ffmpeg.bufsize,
        destination.url,
    ]


def build_segment_command(
    ffmpeg: FFmpegSettings,
    input_url: str,
    segmentation: SegmentationSpec,
    output_dir: Path,
) -> list[str]:
    """
    로컬 HLS 세그멘테이션용 FFmpeg 명령 구성.

    플레이리스트 윈도우를 벗어난 세그먼트는 FFmpeg가 직접 삭제합니다 (delete_segments).
    """
    return _input_args(ffmpeg, input_url) + [
        "-f", "hls",
        "-hls_time", str(segmentation.segment_duration),
        "-hls_list_size", str(segmentation.playlist_size),
        "-hls_flags", "delete_segments",
        "-hls_segment_filename", str(output_dir / SEGMENT_PATTERN),
        str(output_dir / PLAYLIST_NAME),
    ]
