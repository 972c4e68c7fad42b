"""Image normalization for inline vision input.

Provides a small wrapper around Pillow that turns an uploaded image into
bytes the vision model accepts: decoded, downscaled so the long side fits
within `max_side`, and re-encoded as JPEG (or PNG when the image carries
transparency).

Public class: `VisionImageEncoder`

Example:
    encoder = VisionImageEncoder(max_side=2048)
    data_url = encoder.to_data_url(upload_bytes)
"""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from services.openai.media_inputs import to_image_data_url


class VisionImageEncoder:
    """Re-encode uploaded images for the vision model.

    Args:
        max_side: Maximum width and height in pixels. Larger images are
            downscaled preserving aspect ratio; smaller ones keep their size.
        jpeg_quality: Quality used when writing JPEG output.
    """

    def __init__(self, max_side: int = 2048, jpeg_quality: int = 85):
        self.max_side = max_side
        self.jpeg_quality = jpeg_quality

    def normalize(self, data: bytes) -> Tuple[bytes, str]:
        """Return `(image_bytes, mime_type)` ready for inline encoding.

        Raises:
            ValueError: If the bytes cannot be opened as an image.
        """
        if not data:
            raise ValueError("Image upload is empty")
        try:
            src = Image.open(io.BytesIO(data))
            src.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ValueError("Uploaded bytes are not a supported image format") from exc

        has_alpha = src.mode in ("RGBA", "LA") or (src.mode == "P" and "transparency" in src.info)
        src = src.convert("RGBA" if has_alpha else "RGB")
        src.thumbnail((self.max_side, self.max_side), Image.LANCZOS)

        out_io = io.BytesIO()
        if has_alpha:
            src.save(out_io, format="PNG", optimize=True)
            return out_io.getvalue(), "image/png"
        src.save(out_io, format="JPEG", quality=self.jpeg_quality)
        return out_io.getvalue(), "image/jpeg"

    def to_data_url(self, data: bytes) -> str:
        image_bytes, mime_type = self.normalize(data)
        return to_image_data_url(image_bytes, mime_type)
