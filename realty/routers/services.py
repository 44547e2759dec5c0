from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Annotated, Optional

from realty.database import SessionLocal
from realty.dependencies import require_permission, Permission
from realty.schemas.content import ServiceCreate, ServiceResponse, ServiceUpdate
from realty.schemas.property import parse_tristate
from realty.services.content_service import ServiceCatalogService

router = APIRouter(prefix="/services", tags=["services"])


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


db_dependency = Annotated[Session, Depends(get_db)]
user_dependency = Annotated[dict, Depends(require_permission(Permission.MANAGE_CONTENT))]


def _dump(service) -> dict:
    return ServiceResponse.model_validate(service).model_dump()


@router.get("", status_code=status.HTTP_200_OK)
async def list_services(
    db: db_dependency,
    all: Optional[str] = Query(None, description="true includes inactive services"),
):
    services = ServiceCatalogService(db).list(include_inactive=parse_tristate(all) is True)
    return {"success": True, "data": [_dump(s) for s in services]}


@router.get("/{service_id}", status_code=status.HTTP_200_OK)
async def get_service(db: db_dependency, service_id: str):
    service = ServiceCatalogService(db).get(service_id)
    if service is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return {"success": True, "data": _dump(service)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_service(
    db: db_dependency, current_user: user_dependency, payload: ServiceCreate
):
    service = ServiceCatalogService(db).create(payload)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create service",
        )
    return {"success": True, "data": _dump(service)}


@router.put("/{service_id}", status_code=status.HTTP_200_OK)
async def update_service(
    db: db_dependency,
    current_user: user_dependency,
    service_id: str,
    payload: ServiceUpdate,
):
    catalog = ServiceCatalogService(db)
    if catalog.get(service_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    service = catalog.update(service_id, payload.model_dump(exclude_unset=True))
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update service",
        )
    return {"success": True, "data": _dump(service)}


@router.delete("/{service_id}", status_code=status.HTTP_200_OK)
async def delete_service(db: db_dependency, current_user: user_dependency, service_id: str):
    if not ServiceCatalogService(db).delete(service_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return {"success": True, "message": "Service deleted successfully"}
