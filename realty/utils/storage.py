import logging
import os
from typing import Iterable, Optional

from realty.config import settings

logger = logging.getLogger(__name__)


def property_folder(folder_name: str) -> str:
    """Filesystem directory holding a property's images and documents."""
    return os.path.join(settings.UPLOADS_DIR, "properties", folder_name)


def property_public_base(folder_name: str) -> str:
    return f"{settings.UPLOADS_PUBLIC_BASE}/properties/{folder_name}"


def ensure_property_folder(folder_name: str) -> Optional[str]:
    path = property_folder(folder_name)
    try:
        os.makedirs(path, exist_ok=True)
    except OSError:
        logger.warning("Failed to create upload directory %s", path, exc_info=True)
        return None
    return path


def public_to_filesystem(public_path: Optional[str]) -> Optional[str]:
    """Map ``/uploads/properties/x/a.jpg`` to a path under ``UPLOADS_DIR``."""
    if not public_path:
        return None
    base = settings.UPLOADS_PUBLIC_BASE.rstrip("/")
    relative = public_path
    if relative.startswith(base + "/"):
        relative = relative[len(base) + 1:]
    else:
        relative = relative.lstrip("/")
    relative = relative.split("?", 1)[0]
    full = os.path.normpath(os.path.join(settings.UPLOADS_DIR, relative))
    root = os.path.normpath(settings.UPLOADS_DIR)
    if os.path.commonpath([root, full]) != root:
        logger.warning("Refusing path outside uploads root: %s", public_path)
        return None
    return full


def remove_files(paths: Iterable[Optional[str]]) -> dict:
    """Best-effort delete; failures are logged, never raised."""
    deleted, failed = [], []
    for path in paths:
        if not path:
            continue
        if not os.path.exists(path):
            continue
        try:
            os.remove(path)
            deleted.append(path)
        except OSError:
            logger.warning("Could not delete file %s", path, exc_info=True)
            failed.append(path)
    if failed:
        logger.warning("File cleanup left %d file(s) behind: %s", len(failed), failed)
    return {"deleted": deleted, "failed": failed}
