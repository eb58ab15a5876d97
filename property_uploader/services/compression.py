"""Image compression for oversized blog images."""
from io import BytesIO
from pathlib import Path
from typing import Tuple

from PIL import Image


def compress_image(data: bytes, filename: str, max_size: int = 1920, quality: int = 80) -> Tuple[bytes, str]:
    """
    Downscale to fit ``max_size`` x ``max_size`` and re-encode as JPEG.

    Args:
        data: Original image bytes
        filename: Original filename, used for the output name
        max_size: Longest allowed edge in pixels
        quality: JPEG quality (1-95)

    Returns:
        Tuple of (jpeg bytes, filename with .jpg extension)

    Raises:
        OSError: if Pillow cannot decode the image
    """
    with Image.open(BytesIO(data)) as img:
        img.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)
        # JPEG has no alpha channel
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        out = BytesIO()
        img.save(out, format="JPEG", quality=quality, optimize=True)
    return out.getvalue(), f"{Path(filename).stem}.jpg"
