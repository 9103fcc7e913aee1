"""Shared Pydantic models and result types for live photo encoding."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class StillImageFormat(str, Enum):
    """Codec used for the still image payload."""
    HEIF = "heif"
    JPEG = "jpeg"
    WEBP = "webp"


class CaptureParams(BaseModel):
    """Camera parameters at capture time. Informational only."""
    model_config = ConfigDict(frozen=True)

    iso: int
    exposure_time_ns: int
    aperture: float
    focal_length: float
    white_balance: int


class LivePhotoMetadata(BaseModel):
    """Metadata describing a still image and its paired video clip."""
    model_config = ConfigDict(frozen=True)

    asset_identifier: str = ""
    capture_timestamp: int = Field(0, ge=0, description="Capture time in epoch milliseconds")
    main_frame_index: int = Field(0, ge=0, description="Index of the video frame matching the still")
    video_duration_ms: int = Field(0, ge=0)
    video_width: int = Field(0, ge=0)
    video_height: int = Field(0, ge=0)
    photo_width: int = Field(0, ge=0)
    photo_height: int = Field(0, ge=0)
    lut_name: Optional[str] = None
    capture_params: Optional[CaptureParams] = None


class EncodingConfig(BaseModel):
    """Options for a single encode call.

    ``enable_hardware_acceleration`` and ``target_file_size_mb`` are accepted
    for compatibility with capture-side callers but are not acted upon: the
    still encoder is software only and the video is stream-copied.
    """
    model_config = ConfigDict(frozen=True)

    quality: int = Field(95, ge=1, le=100, description="Still image quality (1-100)")
    enable_hardware_acceleration: bool = True
    embed_metadata: bool = True
    preserve_exif: bool = True
    target_file_size_mb: Optional[float] = Field(None, gt=0)
    image_format: StillImageFormat = StillImageFormat.HEIF


class ErrorKind(str, Enum):
    """Failure categories reported by the encoder."""
    INPUT_MISSING = "input_missing"
    INPUT_INVALID = "input_invalid"
    IO_FAILURE = "io_failure"
    FORMAT_MISMATCH = "format_mismatch"


@dataclass(frozen=True)
class ContainerLayout:
    """Byte layout of a written live photo container."""
    ftyp_size: int
    meta_size: int
    still_offset: int
    still_length: int
    video_offset: int
    video_length: int
    xmp_embedded: bool

    @property
    def file_size(self) -> int:
        return self.video_offset + self.video_length


@dataclass(frozen=True)
class EncodingSuccess:
    output_file: Path
    metadata: LivePhotoMetadata
    encoding_time_ms: int
    layout: ContainerLayout


@dataclass(frozen=True)
class EncodingFailure:
    reason: str
    kind: ErrorKind = ErrorKind.IO_FAILURE
    cause: Optional[BaseException] = None


EncodingResult = Union[EncodingSuccess, EncodingFailure]


@dataclass(frozen=True)
class ValidationValid:
    file_size: int
    brand: str


@dataclass(frozen=True)
class ValidationInvalid:
    reason: str


ValidationResult = Union[ValidationValid, ValidationInvalid]
