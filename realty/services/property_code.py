import logging
import os
import re

from sqlalchemy import select
from sqlalchemy.orm import Session

from realty.config import settings
from realty.models.property import Property

logger = logging.getLogger(__name__)

CODE_PREFIX = "prop-"
CODE_PATTERN = re.compile(r"^prop-(\d+)$")


def _max_code_in_database(db: Session) -> int:
    codes = db.execute(
        select(Property.property_code).where(Property.property_code.like(f"{CODE_PREFIX}%"))
    ).scalars()
    highest = 0
    for code in codes:
        match = CODE_PATTERN.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def _max_code_in_uploads() -> int:
    # Folders left behind by rolled-back inserts still reserve their number
    root = os.path.join(settings.UPLOADS_DIR, "properties")
    if not os.path.isdir(root):
        return 0
    highest = 0
    for entry in os.scandir(root):
        if not entry.is_dir():
            continue
        match = CODE_PATTERN.match(entry.name)
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def format_code(number: int) -> str:
    width = max(3, len(str(max(number - 1, 1))))
    return f"{CODE_PREFIX}{number:0{width}d}"


def next_property_code(db: Session) -> str:
    """Next free ``prop-NNN`` code, looking at both the table and the uploads tree."""
    highest = max(_max_code_in_database(db), _max_code_in_uploads())
    code = format_code(highest + 1)
    logger.debug("Allocated property code %s", code)
    return code
