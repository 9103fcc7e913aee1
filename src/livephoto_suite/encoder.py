"""Background execution of live photo encode, validate and extract calls."""

from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from PIL import Image

from livephoto_suite.encode_live_photo.main import encode, encode_from_file
from livephoto_suite.extract_metadata.main import extract_metadata
from livephoto_suite.models.metadata import (
    EncodingConfig,
    EncodingResult,
    LivePhotoMetadata,
    ValidationResult,
)
from livephoto_suite.validate_live_photo.main import validate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LivePhotoEncoder:
    """Runs live photo I/O on a dedicated executor, off the caller's event loop.

    Each coroutine resolves with a complete result. Calls for distinct output
    files may run concurrently; there is no internal cancellation or timeout.
    """

    def __init__(self, executor: Optional[ThreadPoolExecutor] = None):
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="livephoto-io")

    def shutdown(self) -> None:
        """Shut down the executor if this encoder created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> LivePhotoEncoder:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args))

    async def encode(
        self,
        main_image: Image.Image,
        video_file: Path,
        output_file: Path,
        metadata: LivePhotoMetadata,
        config: Optional[EncodingConfig] = None,
    ) -> EncodingResult:
        return await self._run(encode, main_image, video_file, output_file, metadata, config)

    async def encode_from_file(
        self,
        main_image_file: Path,
        video_file: Path,
        output_file: Path,
        metadata: LivePhotoMetadata,
        config: Optional[EncodingConfig] = None,
    ) -> EncodingResult:
        return await self._run(encode_from_file, main_image_file, video_file, output_file, metadata, config)

    async def validate(self, path: Path) -> ValidationResult:
        return await self._run(validate, path)

    async def extract_metadata(self, path: Path) -> Optional[LivePhotoMetadata]:
        return await self._run(extract_metadata, path)
