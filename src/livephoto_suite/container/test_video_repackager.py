"""Integration tests for video repackaging: ffmpeg runs for real."""

from pathlib import Path

import ffmpeg
import pytest

from livephoto_suite.container.video_repackager import CONTENT_IDENTIFIER_KEY, repackage_video


def test_tracks_and_samples_are_preserved(sample_video, probe_packets, tmp_path: Path):
    out = tmp_path / "repackaged.mov"
    track_count = repackage_video(sample_video, out, "ASSET-1", 0)

    source_packets = probe_packets(sample_video)
    output_packets = probe_packets(out)
    assert track_count == len(source_packets) == 2
    assert sorted(output_packets) == sorted(source_packets)
    for index, packets in source_packets.items():
        assert output_packets[index] == packets


def test_track_order_and_geometry(sample_video, tmp_path: Path):
    out = tmp_path / "repackaged.mov"
    repackage_video(sample_video, out, "ASSET-1", 0)
    streams = ffmpeg.probe(str(out))["streams"]
    assert [(s["codec_type"], s["width"], s["height"]) for s in streams] == [
        ("video", 320, 240),
        ("video", 160, 120),
    ]


def test_content_identifier_tag(single_track_video, tmp_path: Path):
    out = tmp_path / "repackaged.mov"
    repackage_video(single_track_video, out, "0C9E5F8A-1111-4222-8333-944455556666", 12)
    tags = ffmpeg.probe(str(out))["format"].get("tags", {})
    assert tags.get(CONTENT_IDENTIFIER_KEY) == "0C9E5F8A-1111-4222-8333-944455556666"


def test_missing_source_raises_oserror(tmp_path: Path):
    with pytest.raises(OSError):
        repackage_video(tmp_path / "missing.mov", tmp_path / "out.mov", "A", 0)


def test_unreadable_source_raises_oserror(tmp_path: Path):
    source = tmp_path / "garbage.mov"
    source.write_bytes(b"this is not a video container")
    with pytest.raises(OSError):
        repackage_video(source, tmp_path / "out.mov", "A", 0)
