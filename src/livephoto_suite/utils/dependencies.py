"""Shared utilities for checking external tool dependencies and their versions."""

import re
import subprocess


def parse_version_tuple(version_str: str) -> tuple[int, ...]:
    """Parse a version string like '6.1.1' or '4.4' into a tuple of ints."""
    return tuple(int(x) for x in version_str.split("."))


def check_ffmpeg_tool(
    tool: str,
    min_version: tuple[int, ...] = (4,),
) -> str:
    """Verify an FFmpeg tool (ffmpeg or ffprobe) is available and recent enough.

    Parses version from output like 'ffprobe version 6.1.1-3ubuntu5 ...' or
    'ffmpeg version n7.0 ...'. Git snapshot builds ('version N-112345-g...')
    are accepted without a range check.

    Returns:
        The detected version string.

    Raises:
        RuntimeError: If the tool is not found or version is too old.
    """
    try:
        result = subprocess.run(
            [tool, "-version"], capture_output=True, text=True, timeout=5, check=False,
        )
    except FileNotFoundError:
        raise RuntimeError(f"Required tool not found: {tool}")

    output = result.stdout + result.stderr
    snapshot = re.search(rf"{tool} version (N-\S+)", output)
    if snapshot:
        return snapshot.group(1)

    match = re.search(rf"{tool} version n?(\d+(?:\.\d+)*)", output)
    if not match:
        raise RuntimeError(f"Could not parse {tool} version from output: {output.strip()[:200]}")

    version_str = match.group(1)
    version = parse_version_tuple(version_str)

    if version < min_version:
        raise RuntimeError(
            f"{tool} version {version_str} is not supported. "
            f"Required: >= {'.'.join(map(str, min_version))}"
        )

    return version_str


def check_ffmpeg() -> str:
    """Verify both ffmpeg and ffprobe; returns the ffmpeg version."""
    check_ffmpeg_tool("ffprobe")
    return check_ffmpeg_tool("ffmpeg")
