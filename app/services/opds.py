import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import BlockedError, ConflictError, NotFoundError
from app.models.document import Document
from app.models.opd import OPD
from app.models.user import User
from app.schemas.opd import OPDCreate, OPDUpdate

logger = logging.getLogger(__name__)

HAS_USERS = "has_users"
HAS_DOCUMENTS = "has_documents"
HAS_DEPENDENTS = "has_dependents"

BLOCKED_MESSAGES = {
    HAS_USERS: "Cannot delete OPD with associated users",
    HAS_DOCUMENTS: "Cannot delete OPD with associated documents",
    HAS_DEPENDENTS: "Cannot delete OPD: users or documents were added while deleting",
}


def list_opds(db: Session) -> List[OPD]:
    return db.query(OPD).order_by(OPD.name, OPD.id).all()


def get_opd(db: Session, opd_id: int) -> OPD:
    opd = db.query(OPD).filter(OPD.id == opd_id).first()
    if not opd:
        raise NotFoundError(f"OPD with id {opd_id} not found")
    return opd


def _ensure_code_free(db: Session, code: str, exclude_id: Optional[int] = None) -> None:
    q = db.query(OPD.id).filter(OPD.code == code)
    if exclude_id is not None:
        q = q.filter(OPD.id != exclude_id)
    if q.first():
        raise ConflictError(f"OPD code '{code}' already exists")


def _commit_unique(db: Session, code: str) -> None:
    # Unique index is the last word when two requests race on the same code
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"OPD code '{code}' already exists")


def create_opd(db: Session, payload: OPDCreate) -> OPD:
    _ensure_code_free(db, payload.code)

    opd = OPD(**payload.model_dump())
    db.add(opd)
    _commit_unique(db, payload.code)
    db.refresh(opd)
    logger.info("OPD %s (%s) created", opd.id, opd.code)
    return opd


def update_opd(db: Session, opd_id: int, payload: OPDUpdate) -> OPD:
    opd = get_opd(db, opd_id)

    data = payload.model_dump(exclude_unset=True)
    if "code" in data:
        _ensure_code_free(db, data["code"], exclude_id=opd.id)

    for k, v in data.items():
        setattr(opd, k, v)

    _commit_unique(db, opd.code)
    db.refresh(opd)
    return opd


def opd_delete_blocker(db: Session, opd_id: int) -> Optional[str]:
    """
    Return why the OPD cannot be deleted, or None when it can.

    Users are checked before documents, so an OPD with both reports
    "has_users".
    """
    if db.query(User.id).filter(User.opd_id == opd_id).first():
        return HAS_USERS
    if db.query(Document.id).filter(Document.opd_id == opd_id).first():
        return HAS_DOCUMENTS
    return None


def delete_opd(db: Session, opd_id: int) -> bool:
    """
    Hard delete an OPD that nothing references.

    The dependent check and the delete share one transaction. A dependent
    row inserted concurrently is caught by the foreign keys at commit time
    and reported as blocked instead of surfacing a constraint error.
    """
    opd = get_opd(db, opd_id)

    reason = opd_delete_blocker(db, opd_id)
    if reason:
        logger.warning("Refusing to delete OPD %s: %s", opd_id, reason)
        raise BlockedError(BLOCKED_MESSAGES[reason], reason=reason)

    db.delete(opd)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("OPD %s gained dependents during delete", opd_id)
        raise BlockedError(BLOCKED_MESSAGES[HAS_DEPENDENTS], reason=HAS_DEPENDENTS)

    logger.info("OPD %s deleted", opd_id)
    return True
