"""Tests for the executor-backed LivePhotoEncoder."""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from livephoto_suite.encoder import LivePhotoEncoder
from livephoto_suite.models.metadata import (
    EncodingConfig,
    EncodingFailure,
    EncodingSuccess,
    LivePhotoMetadata,
    StillImageFormat,
    ValidationInvalid,
    ValidationValid,
)

CONFIG = EncodingConfig(image_format=StillImageFormat.JPEG)


def test_encode_validate_extract(sample_image, single_track_video, tmp_path: Path):
    out = tmp_path / "live.heic"
    metadata = LivePhotoMetadata(asset_identifier="ASYNC-ID", main_frame_index=2)

    async def run():
        with LivePhotoEncoder() as encoder:
            result = await encoder.encode(sample_image, single_track_video, out, metadata, CONFIG)
            validation = await encoder.validate(out)
            extracted = await encoder.extract_metadata(out)
        return result, validation, extracted

    result, validation, extracted = asyncio.run(run())
    assert isinstance(result, EncodingSuccess), result
    assert isinstance(validation, ValidationValid)
    assert extracted.asset_identifier == "ASYNC-ID"
    assert extracted.main_frame_index == 2


def test_concurrent_encodes_to_distinct_outputs(sample_image_file, single_track_video, tmp_path: Path):
    outputs = [tmp_path / f"live_{i}.heic" for i in range(3)]

    async def run():
        with LivePhotoEncoder() as encoder:
            return await asyncio.gather(*(
                encoder.encode_from_file(sample_image_file, single_track_video, out, LivePhotoMetadata(), CONFIG)
                for out in outputs
            ))

    results = asyncio.run(run())
    assert all(isinstance(r, EncodingSuccess) for r in results)
    identifiers = {r.metadata.asset_identifier for r in results}
    assert len(identifiers) == 3
    assert all(out.is_file() for out in outputs)


def test_failures_are_returned_not_raised(sample_image, tmp_path: Path):
    async def run():
        with LivePhotoEncoder() as encoder:
            encoded = await encoder.encode(
                sample_image, tmp_path / "missing.mov", tmp_path / "live.heic", LivePhotoMetadata()
            )
            validated = await encoder.validate(tmp_path / "missing.heic")
            extracted = await encoder.extract_metadata(tmp_path / "missing.heic")
        return encoded, validated, extracted

    encoded, validated, extracted = asyncio.run(run())
    assert isinstance(encoded, EncodingFailure)
    assert isinstance(validated, ValidationInvalid)
    assert extracted is None


def test_injected_executor_is_not_shut_down(tmp_path: Path):
    executor = ThreadPoolExecutor(max_workers=1)
    try:
        with LivePhotoEncoder(executor) as encoder:
            asyncio.run(encoder.validate(tmp_path / "missing.heic"))
        assert executor.submit(lambda: 42).result() == 42
    finally:
        executor.shutdown()
