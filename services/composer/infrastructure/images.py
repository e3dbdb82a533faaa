from __future__ import annotations

from pathlib import Path

from PIL import Image, UnidentifiedImageError

from services.composer.application.interfaces import ImageInspector
from services.composer.domain.assets import ImageMetadata
from services.composer.domain.errors import ProbeError


class PillowImageInspector(ImageInspector):
    """Reads still-image headers without decoding the pixel data."""

    def inspect(self, path: Path) -> ImageMetadata:
        path = Path(path)
        try:
            with Image.open(path) as image:
                width, height = image.size
                image_format = (image.format or "").lower()
        except (UnidentifiedImageError, OSError) as exc:
            raise ProbeError(f"Unable to read image {path.name}: {exc}") from exc
        return ImageMetadata(
            width=width,
            height=height,
            format=image_format,
            size=path.stat().st_size,
        )
