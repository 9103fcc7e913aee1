"""Core logic for validate: check the structural signature of a live photo file."""

import logging
import struct
from pathlib import Path

from livephoto_suite.container.box_writer import RECOGNIZED_BRANDS
from livephoto_suite.models.metadata import ValidationInvalid, ValidationResult, ValidationValid

logger = logging.getLogger(__name__)

HEADER_SIZE = 12


def validate(path: Path) -> ValidationResult:
    """Check that ``path`` starts with an ftyp box carrying a recognized brand.

    Reads at most the first 12 bytes and never raises.
    """
    path = Path(path)
    try:
        if not path.is_file():
            return ValidationInvalid(f"File does not exist: {path}")

        file_size = path.stat().st_size
        with open(path, "rb") as f:
            header = f.read(HEADER_SIZE)

        if len(header) < HEADER_SIZE:
            return ValidationInvalid(f"File too short for an ftyp box: {len(header)} bytes")

        box_size, box_type, brand_bytes = struct.unpack(">I4s4s", header)
        if box_type != b"ftyp":
            return ValidationInvalid(f"Invalid ftyp box: found {box_type!r}")
        if box_size < HEADER_SIZE or box_size > file_size:
            return ValidationInvalid(f"Invalid ftyp box size: {box_size}")

        brand = brand_bytes.decode("ascii", errors="replace")
        if brand not in RECOGNIZED_BRANDS:
            return ValidationInvalid(f"Invalid brand: {brand}")

        return ValidationValid(file_size=file_size, brand=brand)
    except Exception as e:
        logger.debug(f"Validation of {path} failed: {e}")
        return ValidationInvalid(f"Validation error: {e}")


def main(input_file: str) -> ValidationResult:
    """Entry point called from cli.py."""
    result = validate(Path(input_file))
    logger.debug(f"Validation result for {input_file}: {result}")
    return result
