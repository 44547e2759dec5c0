"""URL and filename helpers for property images.

Stored image rows keep a *relative* public path such as
``/uploads/properties/prop-001/living room.jpg``. Everything the client sees is
derived from that path at read time.
"""

import logging
import os
import re
import time
from typing import Iterable, Optional
from urllib.parse import quote

from realty.config import settings

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[/\\:*?"<>|]')
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def build_image_url(relative_path: Optional[str], cache_bust: Optional[bool] = None) -> Optional[str]:
    if not relative_path:
        logger.warning("build_image_url called with an empty path")
        return None
    if cache_bust is None:
        cache_bust = settings.IMAGE_CACHE_BUST

    base_url = settings.PUBLIC_BASE_URL.rstrip("/")
    if not relative_path.startswith("/"):
        relative_path = "/" + relative_path

    # Each segment on its own so spaces and Cyrillic survive
    segments = relative_path.strip("/").split("/")
    encoded = "/" + "/".join(quote(segment, safe="") for segment in segments)

    url = base_url + encoded
    if cache_bust:
        separator = "&" if "?" in url else "?"
        url += f"{separator}v={int(time.time())}"
    return url


def thumbnail_path(image_path: Optional[str]) -> str:
    """``dir/name.ext`` -> ``dir/name_thumb.ext`` (extension defaults to jpg)."""
    if not image_path:
        return ""
    directory, filename = os.path.split(image_path)
    name, ext = os.path.splitext(filename)
    ext = ext.lstrip(".") or "jpg"
    thumb = f"{name}_thumb.{ext}"
    return f"{directory}/{thumb}" if directory else thumb


def _display_key(image: dict):
    return (
        not bool(image.get("is_main")),
        int(image.get("sort_order") or 0),
        str(image.get("id") or ""),
    )


def process_images(images: Iterable[dict]) -> list[dict]:
    """Attach public ``url``/``thumbnail_url`` and return images in display order.

    Rows without a stored ``image_url`` never reach the client.
    """
    processed = []
    for image in images:
        image_url = image.get("image_url")
        if not image_url:
            logger.warning("Skipping image with empty URL - id=%s", image.get("id"))
            continue

        url = build_image_url(image_url)
        if not url:
            continue

        item = dict(image)
        item["url"] = url
        # No stored thumbnail means thumbnailing failed; show the original
        stored_thumb = image.get("thumbnail_url")
        item["thumbnail_url"] = (build_image_url(stored_thumb) if stored_thumb else None) or url
        processed.append(item)

    processed.sort(key=_display_key)
    return processed


def preserve_original_filename(original_name: Optional[str]) -> str:
    """Keep the uploader's filename, stripping only what the filesystem can't hold."""
    if not original_name:
        return "image.jpg"

    original_name = os.path.basename(original_name.replace("\\", "/"))
    name, ext = os.path.splitext(original_name)
    ext = ext.lstrip(".").lower() or "jpg"

    name = _UNSAFE_CHARS.sub("", name)
    name = _CONTROL_CHARS.sub("", name)
    name = name.strip(" .")
    if not name:
        name = "image"
    return f"{name}.{ext}"


def unique_filename(directory: str, filename: str) -> str:
    """Append ``_1``, ``_2`` ... until the name and its thumbnail are free in ``directory``."""
    name, ext = os.path.splitext(filename)
    candidate = filename
    counter = 1
    while os.path.exists(os.path.join(directory, candidate)) or os.path.exists(
        os.path.join(directory, thumbnail_path(candidate))
    ):
        candidate = f"{name}_{counter}{ext}"
        counter += 1
    return candidate
