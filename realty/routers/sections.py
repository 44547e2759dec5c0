from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Annotated, Optional

from realty.database import SessionLocal
from realty.dependencies import require_permission, Permission
from realty.schemas.content import (
    SectionCreate,
    SectionResponse,
    SectionSortOrder,
    SectionUpdate,
)
from realty.schemas.property import parse_tristate
from realty.services.content_service import SectionService

router = APIRouter(prefix="/sections", tags=["sections"])


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


db_dependency = Annotated[Session, Depends(get_db)]
user_dependency = Annotated[dict, Depends(require_permission(Permission.MANAGE_CONTENT))]


def _dump(section) -> dict:
    return SectionResponse.model_validate(section).model_dump()


@router.get("", status_code=status.HTTP_200_OK)
async def list_sections(
    db: db_dependency,
    type: Optional[str] = Query(None, description="Filter by section type"),
    all: Optional[str] = Query(None, description="true includes inactive sections"),
):
    sections = SectionService(db).list(
        include_inactive=parse_tristate(all) is True,
        section_type=(type or "").strip() or None,
    )
    return {"success": True, "data": [_dump(s) for s in sections]}


@router.post("/sort-order", status_code=status.HTTP_200_OK)
async def update_section_order(
    db: db_dependency, current_user: user_dependency, payload: SectionSortOrder
):
    if not SectionService(db).update_sort_orders(payload.sections):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to update sort order",
        )
    return {"success": True, "message": "Sort order updated"}


@router.get("/{section_id}", status_code=status.HTTP_200_OK)
async def get_section(db: db_dependency, section_id: str):
    section = SectionService(db).get(section_id)
    if section is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    return {"success": True, "data": _dump(section)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_section(
    db: db_dependency, current_user: user_dependency, payload: SectionCreate
):
    section = SectionService(db).create(payload)
    if section is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create section",
        )
    return {"success": True, "data": _dump(section)}


@router.put("/{section_id}", status_code=status.HTTP_200_OK)
async def update_section(
    db: db_dependency,
    current_user: user_dependency,
    section_id: str,
    payload: SectionUpdate,
):
    service = SectionService(db)
    if service.get(section_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    section = service.update(section_id, payload.model_dump(exclude_unset=True))
    if section is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update section",
        )
    return {"success": True, "data": _dump(section)}


@router.delete("/{section_id}", status_code=status.HTTP_200_OK)
async def delete_section(db: db_dependency, current_user: user_dependency, section_id: str):
    if not SectionService(db).delete(section_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    return {"success": True, "message": "Section deleted successfully"}
