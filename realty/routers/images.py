import logging
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session
from typing import Annotated, Optional

from realty.database import SessionLocal
from realty.dependencies import require_permission, Permission
from realty.models.property import Property
from realty.schemas.image import ImageUpdate, SetMainRequest
from realty.schemas.property import parse_tristate
from realty.services.image_service import ImageService, ImageUploadError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/images", tags=["images"])


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


db_dependency = Annotated[Session, Depends(get_db)]
user_dependency = Annotated[dict, Depends(require_permission(Permission.MANAGE_IMAGES))]
maintenance_dependency = Annotated[
    dict, Depends(require_permission(Permission.RUN_MAINTENANCE))
]


def _parse_sort_order(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        return max(0, int(raw))
    except ValueError:
        return None


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_image(
    db: db_dependency,
    current_user: user_dependency,
    property_id: str = Form(...),
    alt_text: Optional[str] = Form(None),
    sort_order: Optional[str] = Form(None),
    is_main: Optional[str] = Form(None),
    image: UploadFile = File(...),
):
    prop = db.get(Property, property_id)
    if prop is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Property not found"
        )

    contents = await image.read()
    try:
        data = ImageService(db).add_uploaded(
            prop,
            contents,
            image.filename,
            image.content_type,
            alt_text=alt_text,
            sort_order=_parse_sort_order(sort_order),
            is_main=parse_tristate(is_main) is True,
        )
    except ImageUploadError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    return {"success": True, "message": "Image uploaded successfully", "data": data}


@router.get("/property/{property_id}", status_code=status.HTTP_200_OK)
async def get_property_images(db: db_dependency, property_id: str):
    return {"success": True, "data": ImageService(db).list_for_property(property_id)}


@router.get("/integrity", status_code=status.HTTP_200_OK)
async def check_integrity(db: db_dependency, current_user: maintenance_dependency):
    return {"success": True, "data": ImageService(db).check_integrity()}


@router.post("/integrity/repair", status_code=status.HTTP_200_OK)
async def repair_integrity(db: db_dependency, current_user: maintenance_dependency):
    result = ImageService(db).repair_integrity()
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to repair image integrity",
        )
    return {"success": True, "data": result}


@router.post("/set-main", status_code=status.HTTP_200_OK)
async def set_main(db: db_dependency, current_user: user_dependency, payload: SetMainRequest):
    service = ImageService(db)
    if not service.set_main(payload.property_id, payload.image_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found for this property",
        )
    db.expire_all()
    return {"success": True, "data": service.list_for_property(payload.property_id)}


@router.put("/{image_id}", status_code=status.HTTP_200_OK)
async def update_image(
    db: db_dependency, current_user: user_dependency, image_id: str, payload: ImageUpdate
):
    service = ImageService(db)
    image = service.get(image_id)
    if image is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Image with id {image_id} not found",
        )
    values = payload.model_dump(exclude_unset=True)
    if values.get("sort_order") is None:
        values.pop("sort_order", None)
    if not values:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update"
        )
    if not service.update(image_id, values):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update image",
        )
    return {"success": True, "message": "Image updated"}


@router.delete("/{image_id}", status_code=status.HTTP_200_OK)
async def delete_image(db: db_dependency, current_user: user_dependency, image_id: str):
    service = ImageService(db)
    if service.get(image_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Image with id {image_id} not found",
        )
    report = service.delete(image_id)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete image",
        )
    logger.info("Image %s deleted by %s", image_id, current_user.get("email"))
    return {
        "success": True,
        "message": "Image deleted successfully",
        "data": {
            "deleted_files": report["deleted_files"],
            "failed_files": report["failed_files"],
            "promoted_image_id": report["promoted_image_id"],
        },
    }
