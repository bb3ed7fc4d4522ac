"""Tests for ffmpeg argument templates."""

from pathlib import Path

from stream_relay.domain.models.relay import DestinationSpec, FFmpegSettings, SegmentationSpec
from stream_relay.infrastructure.relay.commands import build_relay_command, build_segment_command

FFMPEG = FFmpegSettings(binary="/usr/bin/ffmpeg", loglevel="info", bufsize="3000k")
INPUT = "rtmp://127.0.0.1:1935/live/abc123"


def test_relay_command_copies_streams_to_flv_push():
    destination = DestinationSpec(name="Twitch", url="rtmp://live.twitch.tv/app/key")

    argv = build_relay_command(FFMPEG, INPUT, destination)

    assert argv == [
        "/usr/bin/ffmpeg",
        "-hide_banner",
        "-loglevel", "info",
        "-re",
        "-i", INPUT,
        "-c:v", "copy",
        "-c:a", "copy",
        "-f", "flv",
        "-bufsize", "3000k",
        "rtmp://live.twitch.tv/app/key",
    ]


def test_segment_command_writes_hls_window(tmp_path):
    segmentation = SegmentationSpec(enabled=True, media_root=tmp_path, segment_duration=2, playlist_size=6)
    output_dir = segmentation.output_dir("live__abc123")

    argv = build_segment_command(FFMPEG, INPUT, segmentation, output_dir)

    assert argv[:10] == [
        "/usr/bin/ffmpeg", "-hide_banner", "-loglevel", "info", "-re", "-i", INPUT,
        "-c:v", "copy", "-c:a",
    ]
    assert argv[argv.index("-f") + 1] == "hls"
    assert argv[argv.index("-hls_time") + 1] == "2"
    assert argv[argv.index("-hls_list_size") + 1] == "6"
    assert argv[argv.index("-hls_flags") + 1] == "delete_segments"
    assert argv[argv.index("-hls_segment_filename") + 1] == str(
        Path(tmp_path) / "live__abc123" / "seg_%05d.ts"
    )
    assert argv[-1] == str(Path(tmp_path) / "live__abc123" / "index.m3u8")
