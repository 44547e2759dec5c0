import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from realty.models.content import Page, Section, Service
from realty.models.property import utcnow
from realty.schemas.content import (
    PageCreate,
    SectionCreate,
    ServiceCreate,
)
from realty.utils.ids import generate_id

logger = logging.getLogger(__name__)


class _CrudMixin:
    """Partial update and delete shared by the content services."""

    model = None

    def __init__(self, db: Session):
        self.db = db

    def get(self, item_id: str):
        return self.db.get(self.model, item_id)

    def _create(self, values: dict):
        item = self.model(id=generate_id(), **values)
        try:
            self.db.add(item)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[%s.create] insert failed", type(self).__name__, exc_info=True)
            return None
        self.db.refresh(item)
        return item

    def update(self, item_id: str, values: dict):
        item = self.get(item_id)
        if item is None:
            return None
        columns = self.model.__table__.columns
        # An explicit null can't clear a required column
        values = {
            key: value
            for key, value in values.items()
            if value is not None or columns[key].nullable
        }
        if not values:
            return item
        try:
            for key, value in values.items():
                setattr(item, key, value)
            item.updated_at = utcnow()
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[%s.update] failed for %s", type(self).__name__, item_id, exc_info=True)
            return None
        self.db.refresh(item)
        return item

    def delete(self, item_id: str) -> bool:
        item = self.get(item_id)
        if item is None:
            return False
        try:
            self.db.delete(item)
            self.db.commit()
            return True
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[%s.delete] failed for %s", type(self).__name__, item_id, exc_info=True)
            return False


class PageService(_CrudMixin):
    model = Page

    def list(self, include_inactive: bool = False) -> list[Page]:
        query = select(Page)
        if not include_inactive:
            query = query.where(Page.active.is_(True))
        return list(self.db.execute(query.order_by(Page.title.asc())).scalars())

    def get_by_slug(self, slug: str) -> Optional[Page]:
        return self.db.execute(
            select(Page).where(Page.slug == slug, Page.active.is_(True))
        ).scalar_one_or_none()

    def _ensure_slug_free(self, slug: str, exclude_id: Optional[str] = None):
        query = select(Page.id).where(Page.slug == slug)
        if exclude_id:
            query = query.where(Page.id != exclude_id)
        if self.db.execute(query).first() is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Page with slug '{slug}' already exists",
            )

    def create(self, data: PageCreate) -> Optional[Page]:
        self._ensure_slug_free(data.slug)
        return self._create(data.model_dump())

    def update(self, item_id: str, values: dict):
        if values.get("slug"):
            self._ensure_slug_free(values["slug"], exclude_id=item_id)
        return super().update(item_id, values)


class SectionService(_CrudMixin):
    model = Section

    def get(self, item_id: str):
        return self.db.execute(
            select(Section).options(joinedload(Section.page)).where(Section.id == item_id)
        ).scalar_one_or_none()

    def list(self, include_inactive: bool = False, section_type: Optional[str] = None) -> list[Section]:
        query = select(Section).options(joinedload(Section.page))
        if not include_inactive:
            query = query.where(Section.active.is_(True))
        if section_type:
            query = query.where(Section.section_type == section_type)
        query = query.order_by(Section.sort_order.asc(), Section.created_at.desc())
        return list(self.db.execute(query).scalars())

    def create(self, data: SectionCreate) -> Optional[Section]:
        if data.page_id and self.db.get(Page, data.page_id) is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Page not found"
            )
        return self._create(data.model_dump())

    def update_sort_orders(self, items: list) -> bool:
        try:
            for item in items:
                result = self.db.execute(
                    update(Section)
                    .where(Section.id == item.id)
                    .values(sort_order=item.sort_order, updated_at=utcnow())
                )
                if result.rowcount != 1:
                    self.db.rollback()
                    logger.warning("[SectionService.update_sort_orders] unknown section %s", item.id)
                    return False
            self.db.commit()
            return True
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[SectionService.update_sort_orders] failed", exc_info=True)
            return False


class ServiceCatalogService(_CrudMixin):
    """Agency services shown on the public site."""

    model = Service

    def list(self, include_inactive: bool = False) -> list[Service]:
        query = select(Service)
        if not include_inactive:
            query = query.where(Service.active.is_(True))
        return list(
            self.db.execute(query.order_by(Service.sort_order.asc(), Service.title.asc())).scalars()
        )

    def create(self, data: ServiceCreate) -> Optional[Service]:
        return self._create(data.model_dump())
