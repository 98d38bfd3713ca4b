"""
Reference Image Normalizer
Resizes an arbitrary input image to the exact target video geometry and
re-encodes it as baseline JPEG under the provider's upload ceiling.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from vidlock.core.errors import ImageProcessingError

logger = logging.getLogger(__name__)


MAX_REFERENCE_BYTES = 15 * 1024 * 1024  # 15 MiB
DEFAULT_QUALITY = 92
REDUCED_QUALITY = 80
FIT_MODES = ("cover", "contain")
OUTPUT_MIME = "image/jpeg"


@dataclass
class NormalizedImage:
    """Image bytes ready to attach as the multipart reference."""
    data: bytes
    width: int
    height: int
    quality: int
    filename: str
    mime_type: str = OUTPUT_MIME


def parse_size(size: str) -> Tuple[int, int]:
    """Split a 'WIDTHxHEIGHT' token into positive integers."""
    try:
        width, height = (int(part) for part in size.lower().split("x", 1))
    except (AttributeError, ValueError) as e:
        raise ImageProcessingError(f"Invalid target size: {size!r}") from e
    if width <= 0 or height <= 0:
        raise ImageProcessingError(f"Invalid target size: {size!r}")
    return width, height


def reference_filename(width: int, height: int) -> str:
    return f"reference_{width}x{height}.jpg"


class ImageNormalizer:
    """Fits images to an exact WxH using cover (crop) or contain (letterbox)."""

    def __init__(
        self,
        max_bytes: int = MAX_REFERENCE_BYTES,
        quality: int = DEFAULT_QUALITY,
        reduced_quality: int = REDUCED_QUALITY,
        background: Tuple[int, int, int] = (0, 0, 0),
    ):
        self.max_bytes = max_bytes
        self.quality = quality
        self.reduced_quality = reduced_quality
        self.background = background

    def _encode(self, image: Image.Image, quality: int) -> bytes:
        buf = io.BytesIO()
        image.save(buf, format="JPEG", quality=quality, optimize=True, progressive=False)
        return buf.getvalue()

    def _fit(self, image: Image.Image, width: int, height: int, fit: str) -> Image.Image:
        if fit == "contain":
            return ImageOps.pad(
                image,
                (width, height),
                method=Image.Resampling.LANCZOS,
                color=self.background,
                centering=(0.5, 0.5),
            )
        return ImageOps.fit(
            image,
            (width, height),
            method=Image.Resampling.LANCZOS,
            centering=(0.5, 0.5),
        )

    def normalize(self, data: bytes, size: str, fit: str = "cover") -> NormalizedImage:
        """
        Produce a JPEG of exactly `size` pixels.

        If the first encode exceeds max_bytes, encode once more at reduced
        quality. A result that is still too large is returned as-is.
        """
        width, height = parse_size(size)
        limit = Image.MAX_IMAGE_PIXELS
        if limit and width * height > limit:
            raise ImageProcessingError(f"Target size {size} exceeds the {limit} pixel limit")
        fit = fit if fit in FIT_MODES else "cover"

        try:
            with Image.open(io.BytesIO(data)) as source:
                source = ImageOps.exif_transpose(source)
                if source.mode != "RGB":
                    source = source.convert("RGB")
                fitted = self._fit(source, width, height, fit)

            quality = self.quality
            encoded = self._encode(fitted, quality)
            if len(encoded) > self.max_bytes:
                logger.info(
                    f"[Image] {len(encoded)} bytes at q={quality} exceeds {self.max_bytes}; "
                    f"re-encoding at q={self.reduced_quality}"
                )
                quality = self.reduced_quality
                encoded = self._encode(fitted, quality)
                if len(encoded) > self.max_bytes:
                    logger.warning(f"[Image] Still {len(encoded)} bytes after re-encode; sending as-is")
        except (UnidentifiedImageError, OSError, ValueError, MemoryError, Image.DecompressionBombError) as e:
            raise ImageProcessingError(f"Could not process reference image: {e}") from e

        logger.info(f"[Image] Normalized reference to {width}x{height} ({fit}, {len(encoded)} bytes)")
        return NormalizedImage(
            data=encoded,
            width=width,
            height=height,
            quality=quality,
            filename=reference_filename(width, height),
        )

    async def normalize_async(self, data: bytes, size: str, fit: str = "cover") -> NormalizedImage:
        """Run normalize() off the event loop."""
        return await asyncio.to_thread(self.normalize, data, size, fit)
