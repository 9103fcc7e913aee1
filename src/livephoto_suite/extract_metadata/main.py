"""Core logic for extract-metadata: recover live photo metadata from a container."""

import html
import logging
import re
import shutil
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from livephoto_suite.container.box_writer import BUFFER_SIZE, PRIMARY_ITEM_ID, XMP_UUID
from livephoto_suite.container.still_image import read_image_bounds
from livephoto_suite.models.metadata import LivePhotoMetadata
from livephoto_suite.utils.boxes import ItemExtent, find_box, iter_boxes, parse_iloc
from livephoto_suite.utils.video import VideoInfo, get_video_info

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(rb'content\.identifier="([^"]*)"')
STILL_IMAGE_TIME_PATTERN = re.compile(rb'still-image-time="(\d+)"')

# Upper bound on fallback ftyp candidates tried when iloc is unusable.
MAX_VIDEO_CANDIDATES = 8


def read_xmp_fields(head: bytes) -> Tuple[str, int]:
    """Return (asset identifier, still-image time) from the XMP uuid box.

    Missing or unparsable values come back as "" and 0.
    """
    index = head.find(XMP_UUID)
    if index < 0:
        return "", 0

    region_end = len(head)
    if index >= 8 and head[index - 4 : index] == b"uuid":
        box_size = int.from_bytes(head[index - 8 : index - 4], "big")
        if box_size >= 8 + len(XMP_UUID):
            region_end = min(region_end, index - 8 + box_size)
    region = head[index + len(XMP_UUID) : region_end]

    asset_identifier = ""
    match = IDENTIFIER_PATTERN.search(region)
    if match:
        asset_identifier = html.unescape(match.group(1).decode("utf-8", errors="replace"))

    main_frame_index = 0
    match = STILL_IMAGE_TIME_PATTERN.search(region)
    if match:
        main_frame_index = int(match.group(1))

    return asset_identifier, main_frame_index


def locate_still_image(head: bytes, file_size: int) -> Tuple[Optional[ItemExtent], int]:
    """Find the primary item extent via ftyp/meta/iloc.

    Returns the extent (None if unusable) and the end offset of the meta box
    (0 if there is none).
    """
    boxes = iter_boxes(head)
    ftyp = next(boxes, None)
    if ftyp is None or ftyp.type != b"ftyp":
        return None, 0
    meta = next(boxes, None)
    if meta is None or meta.type != b"meta":
        return None, ftyp.end

    iloc = find_box(head, b"iloc", meta.body_start + 4, meta.end)
    if iloc is None:
        return None, meta.end
    try:
        extents = parse_iloc(head, iloc)
    except ValueError as e:
        logger.debug(f"Unparsable iloc box: {e}")
        return None, meta.end

    for extent in extents:
        if extent.item_id != PRIMARY_ITEM_ID:
            continue
        if extent.offset < meta.end or extent.offset + extent.length > file_size or extent.length == 0:
            logger.debug(f"iloc extent out of range: {extent}")
            return None, meta.end
        return extent, meta.end
    return None, meta.end


def _video_candidates(path: Path, still: Optional[ItemExtent], meta_end: int) -> List[int]:
    if still is not None:
        return [still.offset + still.length]

    candidates = list(scan_ftyp_offsets(path, meta_end))
    return list(reversed(candidates))[:MAX_VIDEO_CANDIDATES]


def scan_ftyp_offsets(path: Path, start: int, chunk_size: int = BUFFER_SIZE) -> Iterator[int]:
    """Yield box start offsets of every ``ftyp`` signature at or after ``start``.

    The file is read in chunks; consecutive chunks overlap by three bytes so a
    signature split across a boundary is still found.
    """
    overlap = len(b"ftyp") - 1
    with open(path, "rb") as f:
        f.seek(start + 4)
        base = start + 4
        tail = b""
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            window = tail + chunk
            window_base = base - len(tail)
            pos = window.find(b"ftyp")
            while pos >= 0:
                yield window_base + pos - 4
                pos = window.find(b"ftyp", pos + 1)
            base += len(chunk)
            tail = window[-overlap:]


def probe_video_region(path: Path, offset: int) -> VideoInfo:
    """Copy the trailing video region starting at ``offset`` and probe it.

    Raises:
        OSError: If the region cannot be opened as a video.
    """
    with tempfile.TemporaryDirectory(prefix="livephoto_") as tmpdir:
        region_path = Path(tmpdir) / "video.mov"
        with open(path, "rb") as f_in, open(region_path, "wb") as f_out:
            f_in.seek(offset)
            shutil.copyfileobj(f_in, f_out, BUFFER_SIZE)
        return get_video_info(str(region_path))


def _read_range(path: Path, offset: int, length: int) -> bytes:
    with open(path, "rb") as f:
        f.seek(offset)
        return f.read(length)


def extract_metadata(path: Path) -> Optional[LivePhotoMetadata]:
    """Recover metadata from a live photo container.

    Returns None only when no video region can be opened. Missing XMP gives an
    empty asset identifier and main frame index 0; an unreadable still gives
    zero photo dimensions.
    """
    path = Path(path)
    try:
        stat = path.stat()
        with open(path, "rb") as f:
            head = f.read(BUFFER_SIZE)
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
        return None

    still, meta_end = locate_still_image(head, stat.st_size)

    video_info = None
    video_offset = None
    for offset in _video_candidates(path, still, meta_end):
        try:
            video_info = probe_video_region(path, offset)
            video_offset = offset
            break
        except (OSError, KeyError, ValueError) as e:
            logger.debug(f"No video region at offset {offset}: {e}")
    if video_info is None:
        logger.warning(f"No readable video region in {path}")
        return None

    if still is None and video_offset > meta_end:
        still = ItemExtent(PRIMARY_ITEM_ID, meta_end, video_offset - meta_end)

    photo_width, photo_height = 0, 0
    if still is not None:
        try:
            photo_width, photo_height = read_image_bounds(_read_range(path, still.offset, still.length))
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot read still image bounds: {e}")

    asset_identifier, main_frame_index = read_xmp_fields(head)

    return LivePhotoMetadata(
        asset_identifier=asset_identifier,
        capture_timestamp=int(stat.st_mtime * 1000),
        main_frame_index=main_frame_index,
        video_duration_ms=video_info.duration_ms,
        video_width=video_info.width,
        video_height=video_info.height,
        photo_width=photo_width,
        photo_height=photo_height,
    )


def main(input_file: str) -> Optional[LivePhotoMetadata]:
    """Entry point called from cli.py."""
    return extract_metadata(Path(input_file))
