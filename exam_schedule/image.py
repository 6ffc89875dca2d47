"""
Uploaded schedule image handling.
업로드된 시험일정표 이미지를 검증하고 MIME 타입을 판별합니다.
"""

import io

from PIL import Image, UnidentifiedImageError

MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10 MB

_SUPPORTED_FORMATS = {"PNG", "JPEG", "WEBP", "GIF"}


def load_image(data: bytes) -> tuple[bytes, str]:
    """
    Validate image bytes.

    Args:
        data: Raw upload bytes

    Returns:
        (image_bytes, mime_type) tuple, the shape every extractor accepts

    Raises:
        ValueError: Empty, oversized, corrupt or unsupported image
    """
    if not data:
        raise ValueError("Image is empty")
    if len(data) > MAX_IMAGE_BYTES:
        raise ValueError(f"Image too large (max {MAX_IMAGE_BYTES // 1024 // 1024} MB)")

    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValueError(f"Not a readable image: {e}") from e

    if fmt not in _SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported image format: {fmt}")

    return data, Image.MIME[fmt]
