from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.api.deps import get_db
from app.core.audit import log_audit
from app.core.auth import get_current_admin, get_current_user
from app.models.user import User
from app.schemas.opd import OPDCreate, OPDOut, OPDUpdate
from app.services import opds as opd_service

router = APIRouter(prefix="/opds", tags=["opds"])


@router.get("", response_model=List[OPDOut])
def list_opds(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return opd_service.list_opds(db)


@router.get("/{opd_id}", response_model=OPDOut)
def get_opd(
    opd_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return opd_service.get_opd(db, opd_id)


@router.post("", response_model=OPDOut, status_code=201)
def create_opd(
    payload: OPDCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    opd = opd_service.create_opd(db, payload)
    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="opd",
        entity_id=str(opd.id),
        opd_id=opd.id,
        description=f"OPD created: {opd.code}",
    )
    return opd


@router.patch("/{opd_id}", response_model=OPDOut)
def update_opd(
    opd_id: int,
    payload: OPDUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    opd = opd_service.update_opd(db, opd_id, payload)
    log_audit(
        db,
        actor=current_user,
        action="updated",
        entity_type="opd",
        entity_id=str(opd.id),
        opd_id=opd.id,
        description=f"OPD updated: {opd.code}",
    )
    return opd


@router.delete("/{opd_id}")
def delete_opd(
    opd_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    """
    Delete an OPD. Refused with 409 and reason has_users / has_documents
    while anything still references it.
    """
    opd_service.delete_opd(db, opd_id)
    log_audit(
        db,
        actor=current_user,
        action="deleted",
        entity_type="opd",
        entity_id=str(opd_id),
        description=f"OPD deleted: {opd_id}",
    )
    return {"success": True}
