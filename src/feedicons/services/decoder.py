"""Decode favicon bytes with Pillow."""

from __future__ import annotations

import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from feedicons.models import FaviconImage

logger = logging.getLogger(__name__)


def decode_favicon(data: bytes) -> FaviconImage | None:
    """Decode *data* into a :class:`FaviconImage`.

    Blocking; call it from a worker thread.

    Parameters
    ----------
    data : bytes
        Raw bytes from disk or the network.

    Returns
    -------
    FaviconImage | None
        The decoded image, or ``None`` if Pillow cannot read the bytes.
    """
    if not data:
        return None

    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            image_format = img.format or "UNKNOWN"
            width, height = img.size
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
        SyntaxError,
    ) as exc:
        logger.debug("Could not decode %d bytes as an image: %s", len(data), exc)
        return None

    if width <= 0 or height <= 0:
        return None

    return FaviconImage(data=data, format=image_format, width=width, height=height)
