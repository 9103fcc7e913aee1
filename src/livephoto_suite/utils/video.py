import logging
from typing import Any, Dict, List

import ffmpeg
from pydantic import BaseModel, Field

logger: logging.Logger = logging.getLogger(__name__)


class VideoInfo(BaseModel):
    """Video information extracted from ffprobe."""

    width: int = Field(..., gt=0, description="Video width in pixels")
    height: int = Field(..., gt=0, description="Video height in pixels")
    codec_name: str = Field(..., description="Codec of the first video track (e.g., hevc)")
    duration_ms: int = Field(..., ge=0, description="Duration in milliseconds")
    track_count: int = Field(..., ge=1, description="Number of tracks in the container")


def probe_video(filename: str) -> Dict[str, Any]:
    """Run ffprobe on ``filename``.

    Raises:
        OSError: If ffprobe cannot open the file.
    """
    try:
        return ffmpeg.probe(filename)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="ignore").strip() if e.stderr else "unknown error"
        raise OSError(f"Cannot open video {filename}: {stderr}") from e


def probe_streams(filename: str) -> List[Dict[str, Any]]:
    return probe_video(filename).get("streams", [])


def _duration_ms(stream: Dict[str, Any], probe_format: Dict[str, Any]) -> int:
    for source in (stream, probe_format):
        value = source.get("duration")
        if value not in (None, "N/A"):
            return int(round(float(value) * 1000))
    return 0


def get_video_info(filename: str) -> VideoInfo:
    """Probe the first video track of ``filename``.

    Raises:
        OSError: If the file cannot be opened or has no video track.
    """
    probe = probe_video(filename)
    streams = probe.get("streams", [])
    video_streams = [s for s in streams if s.get("codec_type") == "video"]
    if not video_streams:
        raise OSError(f"No video track found in {filename}")
    stream = video_streams[0]

    video_info = VideoInfo(
        width=stream["width"],
        height=stream["height"],
        codec_name=stream.get("codec_name", "unknown"),
        duration_ms=_duration_ms(stream, probe.get("format", {})),
        track_count=len(streams),
    )
    logger.debug(
        f"Video detected: {video_info.width}x{video_info.height}, "
        f"{video_info.codec_name}, {video_info.duration_ms} ms, {video_info.track_count} tracks"
    )
    return video_info
