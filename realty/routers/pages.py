from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Annotated, Optional

from realty.database import SessionLocal
from realty.dependencies import require_permission, Permission
from realty.schemas.content import PageCreate, PageResponse, PageUpdate
from realty.schemas.property import parse_tristate
from realty.services.content_service import PageService

router = APIRouter(prefix="/pages", tags=["pages"])


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


db_dependency = Annotated[Session, Depends(get_db)]
user_dependency = Annotated[dict, Depends(require_permission(Permission.MANAGE_CONTENT))]


def _dump(page) -> dict:
    return PageResponse.model_validate(page).model_dump()


@router.get("", status_code=status.HTTP_200_OK)
async def list_pages(
    db: db_dependency,
    all: Optional[str] = Query(None, description="true includes inactive pages"),
):
    pages = PageService(db).list(include_inactive=parse_tristate(all) is True)
    return {"success": True, "data": [_dump(p) for p in pages]}


@router.get("/slug/{slug}", status_code=status.HTTP_200_OK)
async def get_page_by_slug(db: db_dependency, slug: str):
    page = PageService(db).get_by_slug(slug)
    if page is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    return {"success": True, "data": _dump(page)}


@router.get("/{page_id}", status_code=status.HTTP_200_OK)
async def get_page(db: db_dependency, page_id: str):
    page = PageService(db).get(page_id)
    if page is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    return {"success": True, "data": _dump(page)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_page(db: db_dependency, current_user: user_dependency, payload: PageCreate):
    page = PageService(db).create(payload)
    if page is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create page",
        )
    return {"success": True, "data": _dump(page)}


@router.put("/{page_id}", status_code=status.HTTP_200_OK)
async def update_page(
    db: db_dependency, current_user: user_dependency, page_id: str, payload: PageUpdate
):
    service = PageService(db)
    if service.get(page_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    page = service.update(page_id, payload.model_dump(exclude_unset=True))
    if page is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update page",
        )
    return {"success": True, "data": _dump(page)}


@router.delete("/{page_id}", status_code=status.HTTP_200_OK)
async def delete_page(db: db_dependency, current_user: user_dependency, page_id: str):
    if not PageService(db).delete(page_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    return {"success": True, "message": "Page deleted successfully"}
