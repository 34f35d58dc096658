"""
Document query engine and document CRUD.

Read scope always comes from app.core.access.visibility_clause so the list
and search operations can never disagree about what a requester may see.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.access import is_admin, visibility_clause
from app.core.errors import InvalidArgumentError, NotFoundError
from app.models.document import Document
from app.models.opd import OPD
from app.models.user import User
from app.schemas.document import DocumentCreate, DocumentFilters, DocumentUpdate

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Newest upload first; id breaks ties between identical timestamps
ORDERING = (Document.upload_date.desc(), Document.id.desc())


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def get_requester(db: Session, requester_id: int) -> User:
    requester = db.query(User).filter(User.id == requester_id).first()
    if not requester:
        raise NotFoundError(f"User with id {requester_id} not found")
    if not is_admin(requester) and requester.opd_id is None:
        logger.warning("User %s has role %s but no OPD; limited to public documents",
                       requester.id, requester.role)
    return requester


def apply_document_filters(q, filters: DocumentFilters):
    if filters.q and filters.q.strip():
        like = _like(filters.q.strip())
        q = q.filter(
            Document.title.ilike(like, escape="\\")
            | Document.description.ilike(like, escape="\\")
            | Document.tags.ilike(like, escape="\\")
        )

    if filters.opd_id is not None:
        q = q.filter(Document.opd_id == filters.opd_id)

    if filters.document_type is not None:
        q = q.filter(Document.document_type == filters.document_type)

    if filters.tags and filters.tags.strip():
        q = q.filter(Document.tags.ilike(_like(filters.tags.strip()), escape="\\"))

    if filters.date_from is not None:
        q = q.filter(Document.upload_date >= filters.date_from)
    if filters.date_to is not None:
        q = q.filter(Document.upload_date <= filters.date_to)

    return q


def visible_documents(db: Session, requester: User, include_private: bool = False):
    q = db.query(Document)
    clause = visibility_clause(requester, include_private)
    if clause is not None:
        q = q.filter(clause)
    return q


def list_documents(db: Session, requester_id: int, include_private: bool = False) -> List[Document]:
    requester = get_requester(db, requester_id)
    return visible_documents(db, requester, include_private).order_by(*ORDERING).all()


def search_documents(
    db: Session,
    requester_id: int,
    filters: Optional[DocumentFilters] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> Tuple[List[Document], int]:
    """
    Search the documents visible to the requester.

    All active filters are ANDed with the requester's read scope. Pages are
    one-based; total counts every match regardless of the page window.

    Returns:
        (items for the requested page, total number of matches)
    """
    if page < 1:
        raise InvalidArgumentError("page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise InvalidArgumentError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

    filters = filters or DocumentFilters()
    requester = get_requester(db, requester_id)

    q = apply_document_filters(visible_documents(db, requester, filters.include_private), filters)
    total = q.count()
    items = q.order_by(*ORDERING).offset((page - 1) * limit).limit(limit).all()
    return items, total


def get_document(db: Session, document_id: int) -> Document:
    document = db.query(Document).filter(Document.id == document_id).first()
    if not document:
        raise NotFoundError(f"Document with id {document_id} not found")
    return document


def _require_opd(db: Session, opd_id: int) -> None:
    if not db.query(OPD.id).filter(OPD.id == opd_id).first():
        raise NotFoundError(f"OPD with id {opd_id} not found")


def create_document(db: Session, payload: DocumentCreate) -> Document:
    _require_opd(db, payload.opd_id)
    if not db.query(User.id).filter(User.id == payload.uploaded_by).first():
        raise NotFoundError(f"User with id {payload.uploaded_by} not found")

    document = Document(**payload.model_dump())
    db.add(document)
    db.commit()
    db.refresh(document)
    logger.info("Document %s created in OPD %s by user %s",
                document.id, document.opd_id, document.uploaded_by)
    return document


def update_document(db: Session, document_id: int, payload: DocumentUpdate) -> Document:
    document = get_document(db, document_id)

    data = payload.model_dump(exclude_unset=True)
    if "opd_id" in data and data["opd_id"] != document.opd_id:
        _require_opd(db, data["opd_id"])

    for k, v in data.items():
        setattr(document, k, v)

    db.commit()
    db.refresh(document)
    logger.info("Document %s updated: %s", document.id, ", ".join(sorted(data)) or "no fields")
    return document


def delete_document(db: Session, document_id: int) -> bool:
    """Remove the row. Releasing the stored file is the caller's job."""
    document = get_document(db, document_id)
    db.delete(document)
    db.commit()
    logger.info("Document %s deleted", document_id)
    return True
