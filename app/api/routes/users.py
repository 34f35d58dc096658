from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from app.api.deps import get_db
from app.core.audit import log_audit
from app.core.auth import get_current_admin
from app.models.user import User
from app.schemas.user import UserCreate, UserOut, UserUpdate
from app.services import users as user_service

# User management is admin only
router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserOut])
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    return user_service.list_users(db)


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    return user_service.get_user(db, user_id)


@router.post("", response_model=UserOut, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    user = user_service.create_user(db, payload)
    log_audit(
        db,
        actor=current_user,
        action="created",
        entity_type="user",
        entity_id=str(user.id),
        opd_id=user.opd_id,
        description=f"User created: {user.username} ({user.role.value})",
    )
    return user


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    user = user_service.update_user(db, user_id, payload)
    log_audit(
        db,
        actor=current_user,
        action="updated",
        entity_type="user",
        entity_id=str(user.id),
        opd_id=user.opd_id,
        description=f"User updated: {user.username}",
    )
    return user


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    """
    Deactivate a user. The row is kept so documents keep their uploader.
    """
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself!")

    user_service.delete_user(db, user_id)
    log_audit(
        db,
        actor=current_user,
        action="deleted",
        entity_type="user",
        entity_id=str(user_id),
        description=f"User deactivated: {user_id}",
    )
    return {"success": True}
