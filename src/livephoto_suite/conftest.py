"""Shared fixtures: short clips generated with ffmpeg's lavfi sources, small images."""

from pathlib import Path

import ffmpeg
import pytest
from PIL import Image


def _run(stream) -> None:
    ffmpeg.run(stream, overwrite_output=True, capture_stdout=True, capture_stderr=True)


@pytest.fixture(scope="session")
def sample_video(tmp_path_factory) -> Path:
    """One-second clip with two video tracks: 320x240 @ 30 fps and 160x120 @ 15 fps."""
    path = tmp_path_factory.mktemp("videos") / "clip.mov"
    main_track = ffmpeg.input("testsrc=size=320x240:rate=30", f="lavfi", t=1)
    second_track = ffmpeg.input("color=c=blue:size=160x120:rate=15", f="lavfi", t=1)
    _run(ffmpeg.output(main_track, second_track, str(path), vcodec="mpeg4", pix_fmt="yuv420p", g=10))
    return path


@pytest.fixture(scope="session")
def single_track_video(tmp_path_factory) -> Path:
    """One-second 320x240 @ 30 fps clip with a single video track."""
    path = tmp_path_factory.mktemp("videos") / "single.mov"
    track = ffmpeg.input("testsrc=size=320x240:rate=30", f="lavfi", t=1)
    _run(ffmpeg.output(track, str(path), vcodec="mpeg4", pix_fmt="yuv420p"))
    return path


@pytest.fixture
def sample_image() -> Image.Image:
    image = Image.new("RGB", (64, 48), (200, 30, 30))
    yield image
    image.close()


@pytest.fixture
def sample_image_file(tmp_path: Path) -> Path:
    path = tmp_path / "still.jpg"
    with Image.new("RGB", (80, 60), (30, 120, 200)) as image:
        exif = image.getexif()
        exif[0x010F] = "TestCamera"  # Make
        image.save(path, format="JPEG", quality=90, exif=exif)
    return path


@pytest.fixture
def probe_packets():
    """Return a function mapping stream index to [(pts, flags), ...] for a file."""
    def _probe(path: Path) -> dict[int, list[tuple]]:
        probe = ffmpeg.probe(str(path), show_packets=None)
        tracks: dict[int, list[tuple]] = {}
        for packet in probe.get("packets", []):
            tracks.setdefault(packet["stream_index"], []).append((packet.get("pts"), packet.get("flags")))
        return tracks
    return _probe
