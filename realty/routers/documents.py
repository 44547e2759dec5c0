import os
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from typing import Annotated

from realty.database import SessionLocal
from realty.dependencies import require_permission, Permission
from realty.models.property import Property
from realty.services.document_service import (
    PDF_MIME,
    DocumentService,
    DocumentUploadError,
)

router = APIRouter(prefix="/documents", tags=["documents"])


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


db_dependency = Annotated[Session, Depends(get_db)]
user_dependency = Annotated[
    dict, Depends(require_permission(Permission.MANAGE_DOCUMENTS))
]


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_document(
    db: db_dependency,
    current_user: user_dependency,
    property_id: str = Form(...),
    document: UploadFile = File(...),
):
    prop = db.get(Property, property_id)
    if prop is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Property not found"
        )
    contents = await document.read()
    try:
        data = DocumentService(db).upload(
            prop, contents, document.filename, document.content_type
        )
    except DocumentUploadError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    return {"success": True, "message": "Document uploaded successfully", "data": data}


@router.get("/property/{property_id}", status_code=status.HTTP_200_OK)
async def list_property_documents(db: db_dependency, property_id: str):
    return {
        "success": True,
        "data": DocumentService(db).summaries_for_property(property_id),
    }


def _serve(db: Session, document_id: str) -> FileResponse:
    service = DocumentService(db)
    document = service.get(document_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Document not found"
        )
    path = service.file_path(document)
    if not path or not os.path.isfile(path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="File not found"
        )
    return FileResponse(
        path,
        media_type=PDF_MIME,
        filename=document.original_filename,
        content_disposition_type="inline",
    )


@router.get("/serve/{document_id}")
async def serve_document(db: db_dependency, document_id: str):
    return _serve(db, document_id)


@router.get("/{document_id}")
async def get_document(db: db_dependency, document_id: str):
    return _serve(db, document_id)


@router.delete("/{document_id}", status_code=status.HTTP_200_OK)
async def delete_document(db: db_dependency, current_user: user_dependency, document_id: str):
    service = DocumentService(db)
    if service.get(document_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Document not found"
        )
    report = service.delete(document_id)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete document",
        )
    return {"success": True, "message": "Document deleted successfully", "data": report}
