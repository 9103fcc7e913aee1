"""Core logic for encode: package a still image and video clip into a live photo."""

import logging
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from PIL import Image
from rich.console import Console

from livephoto_suite.container.asset_identifier import allocate_asset_identifier
from livephoto_suite.container.box_writer import write_container
from livephoto_suite.container.still_image import encode_still_image, ensure_not_released
from livephoto_suite.container.video_repackager import repackage_video
from livephoto_suite.models.metadata import (
    EncodingConfig,
    EncodingFailure,
    EncodingResult,
    EncodingSuccess,
    ErrorKind,
    LivePhotoMetadata,
    StillImageFormat,
)
from livephoto_suite.utils.video import get_video_info

logger = logging.getLogger(__name__)

MAX_ENCODING_TIME_MS = 500


@contextmanager
def temporary_video_file(directory: Path) -> Iterator[Path]:
    """Yield a unique temporary .mov path in ``directory``, removed on exit.

    Removal failures are logged and never raised.
    """
    fd, name = tempfile.mkstemp(prefix="temp_", suffix=".mov", dir=directory)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove temporary video {path}: {e}")


def _exif_bytes(image: Image.Image) -> Optional[bytes]:
    exif = image.info.get("exif")
    if exif:
        return exif
    exif_data = image.getexif()
    return exif_data.tobytes() if len(exif_data) else None


def encode(
    main_image: Image.Image,
    video_file: Path,
    output_file: Path,
    metadata: LivePhotoMetadata,
    config: Optional[EncodingConfig] = None,
) -> EncodingResult:
    """Encode a still image and its video clip into a live photo container.

    Never raises: every failure is reported as an EncodingFailure.
    """
    config = config or EncodingConfig()
    video_file = Path(video_file)
    output_file = Path(output_file)
    start = time.monotonic()

    try:
        if not video_file.exists():
            return EncodingFailure(f"Video file does not exist: {video_file}", ErrorKind.INPUT_MISSING)

        try:
            ensure_not_released(main_image)
        except ValueError as e:
            return EncodingFailure(str(e), ErrorKind.INPUT_INVALID, e)

        output_file.parent.mkdir(parents=True, exist_ok=True)

        asset_id = allocate_asset_identifier(metadata.asset_identifier)
        logger.info(f"Encoding live photo {output_file} (asset {asset_id})")

        with temporary_video_file(output_file.parent) as temp_video:
            track_count = repackage_video(video_file, temp_video, asset_id, metadata.main_frame_index)
            logger.debug(f"Repackaged {track_count} tracks into {temp_video}")

            exif = _exif_bytes(main_image) if config.preserve_exif else None
            still_payload = encode_still_image(main_image, config.quality, config.image_format, exif)

            layout = write_container(
                still_payload=still_payload,
                video_file=temp_video,
                output_file=output_file,
                asset_identifier=asset_id,
                metadata=metadata,
                config=config,
            )
    except ValueError as e:
        logger.error(f"Encoding failed: {e}")
        return EncodingFailure(f"Encoding failed: {e}", ErrorKind.INPUT_INVALID, e)
    except Exception as e:
        logger.error(f"Encoding failed: {e}")
        return EncodingFailure(f"Encoding failed: {e}", ErrorKind.IO_FAILURE, e)

    encoding_time_ms = int((time.monotonic() - start) * 1000)
    if encoding_time_ms > MAX_ENCODING_TIME_MS:
        logger.warning(f"Encoding took {encoding_time_ms} ms (target {MAX_ENCODING_TIME_MS} ms)")
    logger.info(f"Live photo written: {output_file} ({layout.file_size:,} bytes, {encoding_time_ms} ms)")

    return EncodingSuccess(
        output_file=output_file,
        metadata=metadata.model_copy(update={"asset_identifier": asset_id}),
        encoding_time_ms=encoding_time_ms,
        layout=layout,
    )


def encode_from_file(
    main_image_file: Path,
    video_file: Path,
    output_file: Path,
    metadata: LivePhotoMetadata,
    config: Optional[EncodingConfig] = None,
) -> EncodingResult:
    """Decode ``main_image_file`` and encode it with ``video_file``.

    The decoded image is closed before returning.
    """
    try:
        with Image.open(main_image_file) as image:
            image.load()
            return encode(image, video_file, output_file, metadata, config)
    except FileNotFoundError as e:
        return EncodingFailure(f"Main image does not exist: {main_image_file}", ErrorKind.INPUT_MISSING, e)
    except OSError as e:
        return EncodingFailure(f"Failed to decode main image: {e}", ErrorKind.INPUT_INVALID, e)


def build_metadata(
    main_image_file: Path,
    video_file: Path,
    asset_identifier: str,
    main_frame_index: int,
    lut_name: Optional[str],
) -> LivePhotoMetadata:
    """Describe the inputs from their headers: photo bounds and video track info."""
    with Image.open(main_image_file) as image:
        photo_width, photo_height = image.size
    video_info = get_video_info(str(video_file))
    return LivePhotoMetadata(
        asset_identifier=asset_identifier,
        capture_timestamp=int(time.time() * 1000),
        main_frame_index=main_frame_index,
        video_duration_ms=video_info.duration_ms,
        video_width=video_info.width,
        video_height=video_info.height,
        photo_width=photo_width,
        photo_height=photo_height,
        lut_name=lut_name,
    )


def main(
    image_file: str,
    video_file: str,
    output_file: str,
    asset_identifier: str,
    main_frame_index: int,
    quality: int,
    image_format: str,
    embed_metadata: bool,
    preserve_exif: bool,
    lut_name: Optional[str],
    overwrite: bool,
) -> EncodingResult:
    """Entry point called from cli.py."""
    console = Console(stderr=True)

    output_path = Path(output_file)
    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Output file already exists: {output_file}. Use --overwrite to replace.")

    metadata = build_metadata(Path(image_file), Path(video_file), asset_identifier, main_frame_index, lut_name)
    config = EncodingConfig(
        quality=quality,
        embed_metadata=embed_metadata,
        preserve_exif=preserve_exif,
        image_format=StillImageFormat(image_format),
    )

    result = encode_from_file(Path(image_file), Path(video_file), output_path, metadata, config)
    if isinstance(result, EncodingSuccess):
        console.print(f"[dim]Asset identifier: {result.metadata.asset_identifier}[/dim]")
        console.print(f"[dim]Encoding time: {result.encoding_time_ms} ms[/dim]")
    return result
