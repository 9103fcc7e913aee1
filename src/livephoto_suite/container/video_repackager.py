"""Track-faithful repackaging of the paired video clip."""

import logging
from pathlib import Path

import ffmpeg

from livephoto_suite.utils.video import probe_streams

logger = logging.getLogger(__name__)

CONTENT_IDENTIFIER_KEY = "com.apple.quicktime.content.identifier"


def repackage_video(
    source: Path,
    destination: Path,
    asset_identifier: str,
    main_frame_index: int,
) -> int:
    """Copy every track of ``source`` into a new QuickTime container.

    Packets are stream-copied in their original order with their timestamps
    and key-frame flags untouched. The asset identifier is written as the
    QuickTime content identifier key so the clip can be matched to its still.

    Args:
        source: Input video container.
        destination: Output path; overwritten if it exists.
        asset_identifier: Token shared with the still image.
        main_frame_index: Frame index of the still within the clip.

    Returns:
        Number of tracks written.

    Raises:
        OSError: If the source cannot be opened, has no tracks, or the output
            cannot be finalized.
    """
    streams = probe_streams(str(source))
    if not streams:
        raise OSError(f"Source video has no tracks: {source}")
    if not any(s.get("codec_type") == "video" for s in streams):
        logger.warning(f"Source video has no video track: {source}")

    logger.debug(
        f"Repackaging {len(streams)} tracks from {source} "
        f"(asset {asset_identifier}, main frame {main_frame_index})"
    )

    stream = ffmpeg.input(str(source)).output(
        str(destination),
        format="mov",
        map="0",
        c="copy",
        map_metadata="0",
        movflags="use_metadata_tags",
        metadata=f"{CONTENT_IDENTIFIER_KEY}={asset_identifier}",
    )
    try:
        ffmpeg.run(stream, overwrite_output=True, capture_stdout=True, capture_stderr=True)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="ignore").strip() if e.stderr else "unknown error"
        raise OSError(f"Failed to finalize repackaged video {destination}: {stderr}") from e

    return len(streams)
