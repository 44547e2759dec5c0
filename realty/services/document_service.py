import logging
import os
import time
import uuid
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from realty.config import settings
from realty.models.document import Document
from realty.models.property import Property
from realty.utils.ids import generate_id
from realty.utils.storage import (
    ensure_property_folder,
    property_public_base,
    public_to_filesystem,
    remove_files,
)

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
PDF_SIGNATURE = b"%PDF"


class DocumentUploadError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def document_url(document_id: str) -> str:
    return f"/documents/serve/{document_id}"


def document_summary(document: Document) -> dict:
    return {
        "id": document.id,
        "filename": document.original_filename,
        "size": document.file_size,
        "url": document_url(document.id),
    }


class DocumentService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, document_id: str) -> Optional[Document]:
        return self.db.get(Document, document_id)

    def list_for_property(self, property_id: str) -> list[Document]:
        return list(
            self.db.execute(
                select(Document)
                .where(Document.property_id == property_id)
                .order_by(Document.created_at.asc(), Document.id.asc())
            ).scalars()
        )

    def summaries_for_property(self, property_id: str) -> list[dict]:
        return [document_summary(d) for d in self.list_for_property(property_id)]

    def file_path(self, document: Document) -> Optional[str]:
        return public_to_filesystem(document.file_path)

    def upload(
        self,
        prop: Property,
        contents: bytes,
        original_filename: Optional[str],
        content_type: Optional[str],
    ) -> dict:
        if content_type != PDF_MIME or not contents.startswith(PDF_SIGNATURE):
            raise DocumentUploadError("Only PDF files are allowed")
        if len(contents) > settings.MAX_DOCUMENT_SIZE:
            raise DocumentUploadError(
                f"File size exceeds {settings.MAX_DOCUMENT_SIZE // (1024 * 1024)}MB limit"
            )

        folder_name = prop.property_code or prop.id
        folder = ensure_property_folder(folder_name)
        if folder is None:
            raise DocumentUploadError("Failed to save file", 500)

        filename = f"{uuid.uuid4().hex[:13]}_{int(time.time())}.pdf"
        disk_path = os.path.join(folder, filename)
        with open(disk_path, "wb") as fh:
            fh.write(contents)

        document = Document(
            id=generate_id(),
            property_id=prop.id,
            filename=filename,
            original_filename=os.path.basename(original_filename or filename),
            file_path=f"{property_public_base(folder_name)}/{filename}",
            file_size=len(contents),
            mime_type=PDF_MIME,
        )
        try:
            self.db.add(document)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[DocumentService.upload] insert failed, removing %s", disk_path, exc_info=True)
            remove_files([disk_path])
            raise
        self.db.refresh(document)
        return document_summary(document)

    def delete_rows_for_property(self, property_id: str) -> list[str]:
        """Queue row deletion inside the caller's transaction; returns file paths."""
        paths = [self.file_path(d) for d in self.list_for_property(property_id)]
        self.db.execute(delete(Document).where(Document.property_id == property_id))
        return [p for p in paths if p]

    def delete(self, document_id: str) -> Optional[dict]:
        document = self.get(document_id)
        if document is None:
            return None
        path = self.file_path(document)
        try:
            self.db.delete(document)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("[DocumentService.delete] failed for %s", document_id, exc_info=True)
            return None
        report = remove_files([path])
        return {"deleted_files": len(report["deleted"]), "failed_files": len(report["failed"])}
