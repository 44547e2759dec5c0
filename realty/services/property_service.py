import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from realty.config import settings
from realty.models.property import Property, utcnow
from realty.schemas.property import (
    ActiveFilter,
    PropertyCreate,
    PropertyFilters,
    PropertyResponse,
)
from realty.services.document_service import DocumentService
from realty.services.image_service import ImageService
from realty.services.property_code import next_property_code
from realty.utils.ids import generate_id
from realty.utils.storage import ensure_property_folder, remove_files

logger = logging.getLogger(__name__)

KEYWORD_COLUMNS = (
    Property.title,
    Property.description,
    Property.city_region,
    Property.district,
    Property.address,
    Property.property_code,
    Property.property_type,
)

DEFAULT_ORDER = (
    # NULL sort_order goes after every explicit position
    case((Property.sort_order.is_(None), 1), else_=0),
    Property.sort_order.asc(),
    Property.created_at.desc(),
    Property.id.asc(),
)


def _contains(column, text: str):
    return func.lower(column).contains(text.lower(), autoescape=True)


def _duplicate_code(code: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Property code {code} already exists",
    )


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PropertyService:
    # Concurrent inserts can race for the same generated code
    CODE_ALLOCATION_ATTEMPTS = 3

    def __init__(self, db: Session):
        self.db = db

    # Search

    def build_conditions(self, filters: PropertyFilters) -> list:
        conditions = []

        if filters.keyword:
            conditions.append(or_(*(_contains(col, filters.keyword) for col in KEYWORD_COLUMNS)))
        if filters.transaction_type:
            conditions.append(Property.transaction_type == filters.transaction_type)
        if filters.city_region:
            conditions.append(_contains(Property.city_region, filters.city_region))
        if filters.district:
            conditions.append(_contains(Property.district, filters.district))
        if filters.property_type:
            conditions.append(Property.property_type == filters.property_type)

        if filters.price_min is not None:
            conditions.append(Property.price >= filters.price_min)
        if filters.price_max is not None:
            conditions.append(Property.price <= filters.price_max)
        if filters.area_min is not None:
            conditions.append(Property.area >= filters.area_min)
        if filters.area_max is not None:
            conditions.append(Property.area <= filters.area_max)

        if filters.featured is not None:
            conditions.append(Property.featured == filters.featured)
        if filters.active == ActiveFilter.ACTIVE_ONLY:
            conditions.append(Property.active.is_(True))

        return conditions

    def search(self, filters: PropertyFilters, limit: int, offset: int) -> dict:
        """One page of matching properties plus the unpaginated total."""
        conditions = self.build_conditions(filters)
        if settings.APP_DEBUG:
            logger.debug(
                "Property search filters=%s limit=%s offset=%s",
                filters.model_dump(mode="json"),
                limit,
                offset,
            )

        total = self.db.execute(
            select(func.count(Property.id)).where(*conditions)
        ).scalar_one()

        rows = list(
            self.db.execute(
                select(Property)
                .where(*conditions)
                .order_by(*DEFAULT_ORDER)
                .limit(limit)
                .offset(offset)
            ).scalars()
        )

        images = ImageService(self.db).list_for_properties(p.id for p in rows)
        items = [self.serialize(p, images.get(p.id, [])) for p in rows]
        return {"items": items, "total": total}

    def serialize(self, prop: Property, images: list[dict], documents: Optional[list[dict]] = None) -> dict:
        data = PropertyResponse.model_validate(prop).model_dump()
        data["images"] = images
        if documents is not None:
            data["documents"] = documents
        return data

    # Single property

    def get_model(self, identifier: str) -> Optional[Property]:
        """Human-readable code first, then the internal id."""
        identifier = (identifier or "").strip()
        if not identifier:
            return None
        prop = self.db.execute(
            select(Property).where(Property.property_code == identifier).limit(1)
        ).scalar_one_or_none()
        if prop is None:
            prop = self.db.get(Property, identifier)
        return prop

    def find_one(self, identifier: str) -> Optional[dict]:
        prop = self.get_model(identifier)
        if prop is None:
            return None
        return self.serialize(
            prop,
            ImageService(self.db).list_for_property(prop.id),
            DocumentService(self.db).summaries_for_property(prop.id),
        )

    # Writes

    def code_exists(self, code: str, exclude_id: Optional[str] = None) -> bool:
        query = select(Property.id).where(Property.property_code == code)
        if exclude_id:
            query = query.where(Property.id != exclude_id)
        return self.db.execute(query.limit(1)).first() is not None

    def _next_sort_order(self) -> int:
        return self.db.execute(
            select(func.coalesce(func.max(Property.sort_order), 0) + 1)
        ).scalar_one()

    def create(self, data: PropertyCreate) -> Optional[Property]:
        values = data.to_values()
        explicit_code = values.get("property_code")
        if explicit_code and self.code_exists(explicit_code):
            raise _duplicate_code(explicit_code)

        for attempt in range(1, self.CODE_ALLOCATION_ATTEMPTS + 1):
            row = dict(values)
            try:
                row["id"] = generate_id()
                if not explicit_code:
                    row["property_code"] = next_property_code(self.db)
                if row.get("sort_order") is None:
                    row["sort_order"] = self._next_sort_order()
                prop = Property(**row)
                self.db.add(prop)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if explicit_code:
                    raise _duplicate_code(explicit_code)
                if attempt < self.CODE_ALLOCATION_ATTEMPTS:
                    logger.warning(
                        "[PropertyService.create] code %s taken, retrying (%d)",
                        row.get("property_code"),
                        attempt,
                    )
                    continue
                logger.error("[PropertyService.create] could not allocate a code", exc_info=True)
                return None
            except SQLAlchemyError:
                self.db.rollback()
                logger.error("[PropertyService.create] transaction failed", exc_info=True)
                return None

            self.db.refresh(prop)
            ensure_property_folder(prop.property_code or prop.id)
            logger.info("Created property %s (%s)", prop.id, prop.property_code)
            return prop
        return None

    def is_stale(self, prop: Property, client_updated_at: Optional[datetime]) -> bool:
        """True when the client's copy is more than a second off the stored one."""
        if client_updated_at is None:
            return False
        stored = _as_utc(prop.updated_at)
        if stored is None:
            return False
        return abs((stored - _as_utc(client_updated_at)).total_seconds()) > 1

    def update(self, property_id: str, values: dict) -> bool:
        """Apply only the given fields; nothing to apply is a failure."""
        if not values:
            return False
        code = values.get("property_code")
        if code and self.code_exists(code, exclude_id=property_id):
            raise _duplicate_code(code)
        try:
            result = self.db.execute(
                update(Property)
                .where(Property.id == property_id)
                .values(**values, updated_at=utcnow())
            )
            if result.rowcount != 1:
                self.db.rollback()
                return False
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[PropertyService.update] transaction failed for %s", property_id, exc_info=True)
            return False
        self.db.expire_all()
        return True

    def delete(self, property_id: str) -> Optional[dict]:
        """Remove the property with its images and documents.

        Rows go in one transaction; files are removed only after commit and
        a failed file removal never undoes the deletion.
        """
        if self.db.get(Property, property_id) is None:
            return None
        try:
            paths = ImageService(self.db).delete_rows_for_property(property_id)
            paths += DocumentService(self.db).delete_rows_for_property(property_id)
            self.db.execute(delete(Property).where(Property.id == property_id))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[PropertyService.delete] transaction failed for %s", property_id, exc_info=True)
            return None
        self.db.expire_all()

        report = remove_files(paths)
        logger.info(
            "Deleted property %s (%d files removed, %d left behind)",
            property_id,
            len(report["deleted"]),
            len(report["failed"]),
        )
        return {"deleted_files": len(report["deleted"]), "failed_files": len(report["failed"])}

    def update_sort_orders(self, orders: list) -> bool:
        """All-or-nothing; an unknown id fails the whole batch."""
        try:
            now = utcnow()
            for item in orders:
                result = self.db.execute(
                    update(Property)
                    .where(Property.id == item.id)
                    .values(sort_order=item.sort_order, updated_at=now)
                )
                if result.rowcount != 1:
                    raise LookupError(item.id)
            self.db.commit()
        except LookupError as exc:
            self.db.rollback()
            logger.warning("[PropertyService.update_sort_orders] unknown property %s", exc)
            return False
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[PropertyService.update_sort_orders] transaction failed", exc_info=True)
            return False
        self.db.expire_all()
        return True

    def stats(self) -> dict:
        row = self.db.execute(
            select(
                func.count(Property.id),
                func.sum(case((Property.active.is_(True), 1), else_=0)),
                func.sum(case((Property.featured.is_(True), 1), else_=0)),
                func.avg(Property.price),
            )
        ).one()
        total, active, featured, average = row
        return {
            "total_properties": total or 0,
            "active_properties": int(active or 0),
            "featured_properties": int(featured or 0),
            "average_price": round(float(average), 2) if average is not None else None,
        }
