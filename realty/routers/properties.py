import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from typing import Annotated, Optional

from sqlalchemy.orm import Session
from starlette import status
from realty.config import settings
from realty.database import SessionLocal
from realty.schemas.property import (
    PropertyCreate,
    PropertyFilters,
    PropertyUpdate,
    SortOrderUpdate,
    clamp_pagination,
    pagination_meta,
)
from realty.dependencies import require_permission, Permission
from realty.services.image_service import ImageService
from realty.services.property_service import PropertyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/properties", tags=["properties"])

# Placeholders some clients send when they have no id yet
INVALID_IDENTIFIERS = {"", "undefined", "null"}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


db_dependency = Annotated[Session, Depends(get_db)]
admin_dependency = Annotated[
    dict, Depends(require_permission(Permission.MANAGE_PROPERTIES))
]
images_admin_dependency = Annotated[
    dict, Depends(require_permission(Permission.MANAGE_IMAGES))
]


@router.get("", status_code=status.HTTP_200_OK)
async def list_properties(
    db: db_dependency,
    keyword: Optional[str] = Query(None, description="Search title, description, location and code"),
    q: Optional[str] = Query(None, description="Alias for keyword"),
    transaction_type: Optional[str] = Query(None, description="sale or rent"),
    city_region: Optional[str] = Query(None, description="City/region (partial match)"),
    city: Optional[str] = Query(None, description="Alias for city_region"),
    district: Optional[str] = Query(None, description="District (partial match)"),
    property_type: Optional[str] = Query(None),
    price_min: Optional[str] = Query(None),
    price_max: Optional[str] = Query(None),
    area_min: Optional[str] = Query(None),
    area_max: Optional[str] = Query(None),
    featured: Optional[str] = Query(None, description="true/false; omit for both"),
    active: Optional[str] = Query(None, description="'all' includes inactive listings"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
):
    """
    Paginated property listing.

    Every filter is optional; blank values and unparsable numeric bounds are
    ignored. Inactive properties are hidden unless ``active=all``.
    """
    filters = PropertyFilters.from_query(
        keyword=keyword if keyword is not None else q,
        transaction_type=transaction_type,
        city_region=city_region if city_region is not None else city,
        district=district,
        property_type=property_type,
        price_min=price_min,
        price_max=price_max,
        area_min=area_min,
        area_max=area_max,
        featured=featured,
        active=active,
    )
    page, limit, offset = clamp_pagination(
        page if page is not None else 1,
        limit if limit is not None else settings.DEFAULT_PAGE_SIZE,
        default_limit=settings.DEFAULT_PAGE_SIZE,
        max_limit=settings.MAX_PAGE_SIZE,
    )
    result = PropertyService(db).search(filters, limit, offset)
    return {
        "success": True,
        "data": result["items"],
        "meta": pagination_meta(page, limit, result["total"]),
    }


@router.get("/stats", status_code=status.HTTP_200_OK)
async def property_stats(db: db_dependency):
    return {"success": True, "data": PropertyService(db).stats()}


@router.get("/{identifier}", status_code=status.HTTP_200_OK)
async def get_property(db: db_dependency, identifier: str):
    if identifier.strip() in INVALID_IDENTIFIERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid property ID"
        )
    data = PropertyService(db).find_one(identifier)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Property not found"
        )
    return {"success": True, "data": data}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_property(
    db: db_dependency, property: PropertyCreate, current_user: admin_dependency
):
    service = PropertyService(db)
    created = service.create(property)
    if created is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create property",
        )
    logger.info("Property %s created by %s", created.id, current_user.get("email"))
    return {"success": True, "data": service.find_one(created.id)}


@router.patch("", status_code=status.HTTP_200_OK)
async def update_sort_orders(
    db: db_dependency, payload: SortOrderUpdate, current_user: admin_dependency
):
    if not PropertyService(db).update_sort_orders(payload.orders):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to update sort order",
        )
    return {"success": True, "message": "Sort order updated"}


@router.put("/{property_id}", status_code=status.HTTP_200_OK)
async def update_property(
    db: db_dependency,
    property: PropertyUpdate,
    current_user: admin_dependency,
    property_id: str,
):
    service = PropertyService(db)
    existing = service.get_model(property_id)
    if existing is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Property not found"
        )
    if service.is_stale(existing, property.updated_at):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "success": False,
                "error": "Property was modified by someone else. Reload and try again.",
                "current_updated_at": existing.updated_at.isoformat(),
            },
        )

    values = property.to_values()
    if not values:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update"
        )
    if not service.update(existing.id, values):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update property",
        )
    return {"success": True, "data": service.find_one(existing.id)}


@router.delete("/{property_id}", status_code=status.HTTP_200_OK)
async def delete_property(
    db: db_dependency, current_user: admin_dependency, property_id: str
):
    service = PropertyService(db)
    existing = service.get_model(property_id)
    if existing is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Property not found"
        )
    report = service.delete(existing.id)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete property",
        )
    return {"success": True, "message": "Property deleted", "data": report}


def _image_of_property(db: Session, property_id: str, image_id: str):
    prop = PropertyService(db).get_model(property_id)
    if prop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Property not found"
        )
    image = ImageService(db).get(image_id)
    if image is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Image not found"
        )
    if image.property_id != prop.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Image does not belong to this property",
        )
    return prop, image


@router.api_route(
    "/{property_id}/images/{image_id}/main",
    methods=["PUT", "PATCH"],
    status_code=status.HTTP_200_OK,
)
async def set_main_image(
    db: db_dependency,
    current_user: images_admin_dependency,
    property_id: str,
    image_id: str,
):
    prop, image = _image_of_property(db, property_id, image_id)
    service = ImageService(db)
    if not service.set_main(prop.id, image.id):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to set main image",
        )
    db.expire_all()
    return {"success": True, "data": service.list_for_property(prop.id)}


@router.delete("/{property_id}/images/{image_id}", status_code=status.HTTP_200_OK)
async def delete_property_image(
    db: db_dependency,
    current_user: images_admin_dependency,
    property_id: str,
    image_id: str,
):
    _, image = _image_of_property(db, property_id, image_id)
    report = ImageService(db).delete(image.id)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete image",
        )
    return {"success": True, "message": "Image deleted", "data": report}
