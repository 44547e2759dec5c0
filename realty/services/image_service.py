import logging
import os
from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from realty.config import settings
from realty.models.property import Property
from realty.models.property_image import PropertyImage
from realty.utils import image_processor
from realty.utils.ids import generate_id
from realty.utils.image_helper import (
    preserve_original_filename,
    process_images,
    thumbnail_path,
    unique_filename,
)
from realty.utils.storage import (
    ensure_property_folder,
    property_public_base,
    public_to_filesystem,
    remove_files,
)

logger = logging.getLogger(__name__)

DISPLAY_ORDER = (
    PropertyImage.is_main.desc(),
    PropertyImage.sort_order.asc(),
    PropertyImage.id.asc(),
)


class ImageUploadError(Exception):
    """Upload rejected before anything was stored."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def image_to_dict(image: PropertyImage) -> dict:
    return {
        "id": image.id,
        "property_id": image.property_id,
        "image_url": image.image_url,
        "image_path": image.image_path,
        "thumbnail_url": image.thumbnail_url,
        "alt_text": image.alt_text,
        "sort_order": image.sort_order,
        "is_main": bool(image.is_main),
        "file_size": image.file_size,
        "mime_type": image.mime_type,
        "created_at": image.created_at,
    }


def image_file_paths(image: PropertyImage) -> list[str]:
    """Original and thumbnail on disk for an image row."""
    paths = []
    original = public_to_filesystem(image.image_path or image.image_url)
    if original:
        paths.append(original)
    # Rows without a stored thumbnail never wrote one; the derived name may
    # belong to another upload
    thumb = public_to_filesystem(image.thumbnail_url)
    if thumb and thumb not in paths:
        paths.append(thumb)
    return paths


class ImageService:
    def __init__(self, db: Session):
        self.db = db

    # Reads

    def get(self, image_id: str) -> Optional[PropertyImage]:
        return self.db.get(PropertyImage, image_id)

    def rows_for_property(self, property_id: str) -> list[PropertyImage]:
        return list(
            self.db.execute(
                select(PropertyImage)
                .where(PropertyImage.property_id == property_id)
                .order_by(*DISPLAY_ORDER)
            ).scalars()
        )

    def list_for_property(self, property_id: str) -> list[dict]:
        return process_images(image_to_dict(i) for i in self.rows_for_property(property_id))

    def list_for_properties(self, property_ids: Iterable[str]) -> dict[str, list[dict]]:
        """Display-ready images for many properties with a single query."""
        property_ids = list(property_ids)
        grouped: dict[str, list[dict]] = defaultdict(list)
        if not property_ids:
            return {}
        rows = self.db.execute(
            select(PropertyImage)
            .where(PropertyImage.property_id.in_(property_ids))
            .order_by(PropertyImage.property_id, *DISPLAY_ORDER)
        ).scalars()
        for image in rows:
            grouped[image.property_id].append(image_to_dict(image))
        return {pid: process_images(grouped.get(pid, [])) for pid in property_ids}

    def count_for_property(self, property_id: str) -> int:
        return self.db.execute(
            select(func.count(PropertyImage.id)).where(PropertyImage.property_id == property_id)
        ).scalar_one()

    def _next_sort_order(self, property_id: str) -> int:
        current = self.db.execute(
            select(func.max(PropertyImage.sort_order)).where(
                PropertyImage.property_id == property_id
            )
        ).scalar()
        return 0 if current is None else current + 1

    # Writes

    def create(self, data: dict) -> Optional[str]:
        """Insert an image row; never touches other images' main flag."""
        image_id = generate_id()
        try:
            sort_order = data.get("sort_order")
            if sort_order is None:
                sort_order = self._next_sort_order(data["property_id"])
            image = PropertyImage(
                id=image_id,
                property_id=data["property_id"],
                image_url=data.get("image_url"),
                image_path=data.get("image_path"),
                thumbnail_url=data.get("thumbnail_url"),
                alt_text=data.get("alt_text"),
                sort_order=sort_order,
                is_main=bool(data.get("is_main", False)),
                file_size=data.get("file_size") or 0,
                mime_type=data.get("mime_type") or "",
            )
            self.db.add(image)
            self.db.commit()
            return image_id
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[ImageService.create] insert failed", exc_info=True)
            return None

    def add_uploaded(
        self,
        prop: Property,
        contents: bytes,
        original_filename: Optional[str],
        content_type: Optional[str],
        alt_text: Optional[str] = None,
        sort_order: Optional[int] = None,
        is_main: bool = False,
    ) -> dict:
        """Validate, store and register an uploaded image.

        Raises ImageUploadError for anything the client got wrong. Files
        written here are removed again if the row cannot be saved.
        """
        if content_type not in image_processor.ALLOWED_IMAGE_TYPES:
            raise ImageUploadError(
                "Invalid file type. Only JPEG, PNG and WebP are allowed", 415
            )
        if len(contents) > settings.MAX_IMAGE_SIZE:
            raise ImageUploadError(
                f"File size too large. Maximum {settings.MAX_IMAGE_SIZE // (1024 * 1024)}MB allowed",
                413,
            )
        try:
            image_processor.verify_image(contents)
        except image_processor.InvalidImageError as exc:
            raise ImageUploadError(str(exc), 400) from exc

        existing = self.count_for_property(prop.id)
        if existing >= settings.MAX_IMAGES_PER_PROPERTY:
            raise ImageUploadError(
                f"Maximum {settings.MAX_IMAGES_PER_PROPERTY} images per property allowed", 400
            )
        if existing == 0:
            is_main = True

        folder_name = prop.property_code or prop.id
        folder = ensure_property_folder(folder_name)
        if folder is None:
            raise ImageUploadError("Upload directory not accessible", 500)
        public_base = property_public_base(folder_name)

        filename = unique_filename(folder, preserve_original_filename(original_filename))
        thumb_filename = os.path.basename(thumbnail_path(filename))
        file_path = os.path.join(folder, filename)
        thumb_file_path = os.path.join(folder, thumb_filename)

        created_files = []
        image_processor.save_optimized(contents, file_path, content_type)
        created_files.append(file_path)
        if image_processor.create_thumbnail(file_path, thumb_file_path, content_type):
            created_files.append(thumb_file_path)

        file_size = os.path.getsize(file_path)
        public_url = f"{public_base}/{filename}"
        thumb_url = f"{public_base}/{thumb_filename}" if thumb_file_path in created_files else None

        image_id = generate_id()
        try:
            if sort_order is None:
                sort_order = self._next_sort_order(prop.id)
            if is_main:
                self.db.execute(
                    update(PropertyImage)
                    .where(PropertyImage.property_id == prop.id)
                    .values(is_main=False)
                )
            self.db.add(
                PropertyImage(
                    id=image_id,
                    property_id=prop.id,
                    image_url=public_url,
                    image_path=public_url,
                    thumbnail_url=thumb_url,
                    alt_text=alt_text or None,
                    sort_order=sort_order,
                    is_main=is_main,
                    file_size=file_size,
                    mime_type=content_type,
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                "[ImageService.add_uploaded] insert failed for property %s, rolling back files",
                prop.id,
                exc_info=True,
            )
            remove_files(created_files)
            raise

        logger.info("Stored image %s for property %s at %s", image_id, prop.id, public_url)
        return {
            "id": image_id,
            "url": public_url,
            "thumbnail_url": thumb_url,
            "path": public_url,
            "property_id": prop.id,
            "is_main": is_main,
            "sort_order": sort_order,
            "file_size": file_size,
            "mime_type": content_type,
        }

    def set_main(self, property_id: str, image_id: str) -> bool:
        """Unset every main flag for the property, then set one, atomically."""
        try:
            self.db.execute(
                update(PropertyImage)
                .where(PropertyImage.property_id == property_id)
                .values(is_main=False)
            )
            result = self.db.execute(
                update(PropertyImage)
                .where(PropertyImage.id == image_id, PropertyImage.property_id == property_id)
                .values(is_main=True)
            )
            if result.rowcount != 1:
                self.db.rollback()
                return False
            self.db.commit()
            return True
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[ImageService.set_main] failed for image %s", image_id, exc_info=True)
            return False

    def update(self, image_id: str, values: dict) -> bool:
        image = self.get(image_id)
        if image is None or not values:
            return False
        try:
            for key, value in values.items():
                setattr(image, key, value)
            self.db.commit()
            return True
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[ImageService.update] failed for image %s", image_id, exc_info=True)
            return False

    def delete(self, image_id: str) -> Optional[dict]:
        """Delete one image, promoting a new main image when needed.

        Returns None when the image does not exist or the transaction failed,
        otherwise a report of the (post-commit, best-effort) file cleanup.
        """
        image = self.get(image_id)
        if image is None:
            return None

        property_id = image.property_id
        was_main = bool(image.is_main)
        paths = image_file_paths(image)
        promoted = None

        try:
            self.db.execute(delete(PropertyImage).where(PropertyImage.id == image_id))
            if was_main:
                promoted = self.db.execute(
                    select(PropertyImage.id)
                    .where(PropertyImage.property_id == property_id)
                    .order_by(PropertyImage.sort_order.asc(), PropertyImage.id.asc())
                    .limit(1)
                ).scalar()
                if promoted:
                    self.db.execute(
                        update(PropertyImage)
                        .where(PropertyImage.id == promoted)
                        .values(is_main=True)
                    )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[ImageService.delete] transaction failed for %s", image_id, exc_info=True)
            return None
        self.db.expire_all()

        if promoted:
            logger.info("Promoted image %s to main for property %s", promoted, property_id)
        report = remove_files(paths)
        return {
            "property_id": property_id,
            "promoted_image_id": promoted,
            "deleted_files": len(report["deleted"]),
            "failed_files": len(report["failed"]),
        }

    def delete_rows_for_property(self, property_id: str) -> list[str]:
        """Queue row deletion inside the caller's transaction; returns file paths."""
        paths = []
        for image in self.rows_for_property(property_id):
            paths.extend(image_file_paths(image))
        self.db.execute(delete(PropertyImage).where(PropertyImage.property_id == property_id))
        return paths

    def delete_by_property_id(self, property_id: str) -> Optional[dict]:
        try:
            paths = self.delete_rows_for_property(property_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                "[ImageService.delete_by_property_id] failed for property %s",
                property_id,
                exc_info=True,
            )
            return None
        self.db.expire_all()
        report = remove_files(paths)
        return {"deleted_files": len(report["deleted"]), "failed_files": len(report["failed"])}

    # Maintenance

    def check_integrity(self) -> dict:
        orphaned = list(
            self.db.execute(
                select(PropertyImage.id)
                .outerjoin(Property, Property.id == PropertyImage.property_id)
                .where(Property.id.is_(None))
            ).scalars()
        )

        missing_files = []
        for image in self.db.execute(select(PropertyImage)).scalars():
            path = public_to_filesystem(image.image_path or image.image_url)
            if not path or not os.path.exists(path):
                missing_files.append({"id": image.id, "property_id": image.property_id, "path": image.image_url})

        main_counts = self.db.execute(
            select(
                PropertyImage.property_id,
                func.count(PropertyImage.id),
                func.sum(case((PropertyImage.is_main.is_(True), 1), else_=0)),
            ).group_by(PropertyImage.property_id)
        ).all()
        multiple_main = [pid for pid, _, mains in main_counts if (mains or 0) > 1]
        without_main = [pid for pid, total, mains in main_counts if total > 0 and not mains]

        return {
            "orphaned_images": orphaned,
            "missing_files": missing_files,
            "multiple_main": multiple_main,
            "without_main": without_main,
            "healthy": not (orphaned or missing_files or multiple_main or without_main),
        }

    def repair_integrity(self) -> Optional[dict]:
        """Leave exactly one main image on every property that has images."""
        fixed = []
        try:
            property_ids = self.db.execute(
                select(PropertyImage.property_id).distinct()
            ).scalars().all()
            for property_id in property_ids:
                rows = self.rows_for_property(property_id)
                mains = [row for row in rows if row.is_main]
                if len(mains) == 1:
                    continue
                if mains:
                    keep = mains[0].id
                else:
                    keep = min(rows, key=lambda r: (r.sort_order, r.id)).id
                self.db.execute(
                    update(PropertyImage)
                    .where(PropertyImage.property_id == property_id)
                    .values(is_main=False)
                )
                self.db.execute(
                    update(PropertyImage).where(PropertyImage.id == keep).values(is_main=True)
                )
                fixed.append(property_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[ImageService.repair_integrity] failed", exc_info=True)
            return None
        self.db.expire_all()
        if fixed:
            logger.info("Repaired main image flag on %d properties", len(fixed))
        return {"repaired_properties": fixed}
