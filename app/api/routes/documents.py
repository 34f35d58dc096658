import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.core import storage
from app.core.access import can_mutate, can_upload, can_view
from app.core.audit import log_audit
from app.core.auth import get_current_user
from app.core.errors import ArchiveError, InvalidArgumentError
from app.models.enums import DocumentType
from app.models.user import User
from app.schemas.document import DocumentCreate, DocumentFilters, DocumentOut, DocumentPage, DocumentUpdate
from app.services import documents as document_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=403, detail=detail)


@router.get("", response_model=List[DocumentOut])
def list_documents(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    include_private: bool = Query(False, description="Include private documents of your OPD (all OPDs for admin)"),
):
    """
    Documents visible to the current user, newest upload first.
    Without include_private only public documents are returned, for admins too.
    """
    return document_service.list_documents(db, current_user.id, include_private=include_private)


@router.get("/search", response_model=DocumentPage)
def search_documents(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    q: Optional[str] = Query(None, description="search title/description/tags"),
    opd_id: Optional[int] = Query(None),
    document_type: Optional[DocumentType] = Query(None),
    date_from: Optional[datetime] = Query(None, description="ISO date-time, inclusive"),
    date_to: Optional[datetime] = Query(None, description="ISO date-time, inclusive"),
    tags: Optional[str] = Query(None),
    include_private: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(document_service.DEFAULT_PAGE_SIZE, ge=1, le=document_service.MAX_PAGE_SIZE),
):
    filters = DocumentFilters(
        q=q,
        opd_id=opd_id,
        document_type=document_type,
        date_from=date_from,
        date_to=date_to,
        tags=tags,
        include_private=include_private,
    )
    items, total = document_service.search_documents(db, current_user.id, filters, page=page, limit=limit)
    return {"items": items, "total": total, "page": page, "limit": limit}


@router.get("/{document_id}", response_model=DocumentOut)
def get_document(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    document = document_service.get_document(db, document_id)
    if not can_view(current_user, document):
        raise _forbidden("You do not have access to this document.")
    return document


@router.get("/{document_id}/download")
def download_document(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    document = document_service.get_document(db, document_id)
    if not can_view(current_user, document):
        raise _forbidden("You do not have access to this document.")
    path = storage.resolve(document.file_path)
    return FileResponse(path, media_type=document.mime_type, filename=document.file_name)


@router.post("", response_model=DocumentOut, status_code=201)
async def upload_document(
    file: UploadFile = File(..., description="Document to upload (pdf, image, word, excel)"),
    title: str = Form(..., min_length=1),
    description: Optional[str] = Form(None),
    opd_id: Optional[int] = Form(None, description="Defaults to the uploader's OPD"),
    created_date: Optional[datetime] = Form(None),
    tags: Optional[str] = Form(None, description="comma-separated"),
    is_public: bool = Form(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Store the uploaded file and create its document record.
    Admins may upload to any OPD, pengelola only to their own, staf not at all.
    """
    if not title.strip():
        raise InvalidArgumentError("title must not be blank")

    target_opd_id = opd_id if opd_id is not None else current_user.opd_id
    if target_opd_id is None:
        raise InvalidArgumentError("opd_id is required")
    if not can_upload(current_user, target_opd_id):
        raise _forbidden("You cannot upload documents to this OPD.")

    data = await file.read()
    stored = storage.store_upload(data, file.filename, file.content_type)

    try:
        document = document_service.create_document(
            db,
            DocumentCreate(
                title=title,
                description=description,
                file_path=stored.file_path,
                file_name=stored.file_name,
                file_size=stored.file_size,
                document_type=stored.document_type,
                mime_type=stored.mime_type,
                opd_id=target_opd_id,
                uploaded_by=current_user.id,
                created_date=created_date,
                tags=tags,
                is_public=is_public,
            ),
        )
    except ArchiveError:
        storage.release(stored.file_path)
        raise
    except ValidationError as e:
        storage.release(stored.file_path)
        raise InvalidArgumentError(f"Invalid document metadata: {e.errors()[0]['msg']}")

    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="document",
        entity_id=str(document.id),
        opd_id=document.opd_id,
        source="api",
        description=f"Document uploaded: {document.title} ({document.file_name})",
    )
    return document


@router.patch("/{document_id}", response_model=DocumentOut)
def update_document(
    document_id: int,
    payload: DocumentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    document = document_service.get_document(db, document_id)
    if not can_mutate(current_user, document):
        raise _forbidden("You cannot edit this document.")

    new_opd_id = payload.model_dump(exclude_unset=True).get("opd_id")
    if new_opd_id is not None and new_opd_id != document.opd_id and not can_upload(current_user, new_opd_id):
        raise _forbidden("You cannot move documents to this OPD.")

    document = document_service.update_document(db, document_id, payload)
    log_audit(
        db,
        actor=current_user,
        action="updated",
        entity_type="document",
        entity_id=str(document.id),
        opd_id=document.opd_id,
        source="api",
        description=f"Document updated: {document.title}",
    )
    return document


@router.delete("/{document_id}")
def delete_document(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    document = document_service.get_document(db, document_id)
    if not can_mutate(current_user, document):
        raise _forbidden("You cannot delete this document.")

    title, file_path, opd_id = document.title, document.file_path, document.opd_id
    document_service.delete_document(db, document_id)

    try:
        storage.release(file_path)
    except OSError:
        logger.exception("Failed to release stored file %s for document %s", file_path, document_id)

    log_audit(
        db,
        actor=current_user,
        action="deleted",
        entity_type="document",
        entity_id=str(document_id),
        opd_id=opd_id,
        source="api",
        description=f"Document deleted: {title}",
    )
    return {"success": True}
