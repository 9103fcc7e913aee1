"""Integration tests for extract-metadata: ffprobe runs for real."""

import json
import struct
from pathlib import Path

import pytest
from typer.testing import CliRunner

from livephoto_suite.cli import app
from livephoto_suite.container.box_writer import XMP_UUID, build_ftyp_box, build_xmp, write_container
from livephoto_suite.container.still_image import encode_still_image
from livephoto_suite.extract_metadata.main import extract_metadata, read_xmp_fields, scan_ftyp_offsets
from livephoto_suite.models.metadata import EncodingConfig, LivePhotoMetadata, StillImageFormat

runner = CliRunner()


def _build(tmp_path, image, video, config=None, asset_id="EXTRACT-ME", main_frame_index=4,
           image_format=StillImageFormat.JPEG) -> Path:
    out = tmp_path / "live.heic"
    payload = encode_still_image(image, 90, image_format)
    write_container(payload, video, out, asset_id, LivePhotoMetadata(main_frame_index=main_frame_index), config)
    return out


def test_recovers_video_photo_and_identifier(sample_image, single_track_video, tmp_path: Path):
    out = _build(tmp_path, sample_image, single_track_video)
    metadata = extract_metadata(out)
    assert metadata is not None
    assert metadata.asset_identifier == "EXTRACT-ME"
    assert metadata.main_frame_index == 4
    assert (metadata.video_width, metadata.video_height) == (320, 240)
    assert 900 <= metadata.video_duration_ms <= 1100
    assert (metadata.photo_width, metadata.photo_height) == (64, 48)
    assert metadata.capture_timestamp > 0


def test_first_video_track_is_used(sample_image, sample_video, tmp_path: Path):
    out = _build(tmp_path, sample_image, sample_video)
    metadata = extract_metadata(out)
    assert (metadata.video_width, metadata.video_height) == (320, 240)


def test_heif_still_bounds(sample_image, single_track_video, tmp_path: Path):
    out = _build(tmp_path, sample_image, single_track_video, image_format=StillImageFormat.HEIF)
    metadata = extract_metadata(out)
    assert (metadata.photo_width, metadata.photo_height) == (64, 48)


def test_without_xmp_degrades_gracefully(sample_image, single_track_video, tmp_path: Path):
    out = _build(tmp_path, sample_image, single_track_video, config=EncodingConfig(embed_metadata=False))
    metadata = extract_metadata(out)
    assert metadata is not None
    assert metadata.asset_identifier == ""
    assert metadata.main_frame_index == 0
    assert metadata.video_width == 320


def test_without_iloc_falls_back_to_ftyp_scan(sample_image, single_track_video, tmp_path: Path):
    # ftyp + still + video, no meta box at all
    out = tmp_path / "bare.heic"
    payload = encode_still_image(sample_image, 90, StillImageFormat.JPEG)
    out.write_bytes(build_ftyp_box() + payload + single_track_video.read_bytes())
    metadata = extract_metadata(out)
    assert metadata is not None
    assert metadata.asset_identifier == ""
    assert metadata.video_width == 320
    assert (metadata.photo_width, metadata.photo_height) == (64, 48)


def test_no_video_region_returns_none(tmp_path: Path):
    out = tmp_path / "still-only.heic"
    out.write_bytes(build_ftyp_box() + b"\xff\xd8" + b"\x00" * 128)
    assert extract_metadata(out) is None


def test_missing_file_returns_none(tmp_path: Path):
    assert extract_metadata(tmp_path / "missing.heic") is None


def test_read_xmp_fields_bounded_to_uuid_box():
    xmp = build_xmp("ID-1", 9)
    box = struct.pack(">I", 24 + len(xmp)) + b"uuid" + XMP_UUID + xmp
    trailing = b'content.identifier="WRONG"'
    assert read_xmp_fields(box + trailing) == ("ID-1", 9)


@pytest.mark.parametrize("head", [b"", b"no xmp here", b"uuid" + b"\x00" * 16])
def test_read_xmp_fields_absent(head: bytes):
    assert read_xmp_fields(head) == ("", 0)


def test_cli_prints_json(sample_image, single_track_video, tmp_path: Path):
    out = _build(tmp_path, sample_image, single_track_video)
    result = runner.invoke(app, ["extract-metadata", str(out)])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["asset_identifier"] == "EXTRACT-ME"
    assert data["video_width"] == 320


def test_cli_missing_file(tmp_path: Path):
    result = runner.invoke(app, ["extract-metadata", str(tmp_path / "missing.heic")])
    assert result.exit_code == 50


@pytest.mark.parametrize("chunk_size", [1, 3, 5, 7, 64, 1024 * 1024])
def test_scan_ftyp_offsets_across_chunk_boundaries(tmp_path: Path, chunk_size: int):
    data = b"\x00" * 10 + b"\x00\x00\x00\x10ftyp" + b"x" * 13 + b"\x00\x00\x00\x10ftyp" + b"tail"
    path = tmp_path / "scan.bin"
    path.write_bytes(data)
    assert list(scan_ftyp_offsets(path, 0, chunk_size)) == [10, 10 + 8 + 13]


def test_scan_ftyp_offsets_skips_signatures_before_start(tmp_path: Path):
    path = tmp_path / "scan.bin"
    path.write_bytes(build_ftyp_box() + b"\x00" * 16 + b"\x00\x00\x00\x10ftypqt  ")
    assert list(scan_ftyp_offsets(path, 32)) == [48]
