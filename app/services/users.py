import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError
from app.core.security import get_password_hash, verify_password
from app.models.enums import UserRole
from app.models.opd import OPD
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.id).all()


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"User with id {user_id} not found")
    return user


def _ensure_unique(db: Session, username: Optional[str], email: Optional[str],
                   exclude_id: Optional[int] = None) -> None:
    for column, value, label in ((User.username, username, "Username"), (User.email, email, "Email")):
        if value is None:
            continue
        q = db.query(User.id).filter(column == value)
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        if q.first():
            raise ConflictError(f"{label} '{value}' already registered")


def _commit_unique(db: Session) -> None:
    # Unique indexes catch a username or email taken by a concurrent request
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Username or email already registered")


def _require_opd(db: Session, opd_id: Optional[int]) -> None:
    if opd_id is not None and not db.query(OPD.id).filter(OPD.id == opd_id).first():
        raise NotFoundError(f"OPD with id {opd_id} not found")


def create_user(db: Session, payload: UserCreate) -> User:
    _ensure_unique(db, payload.username, payload.email)
    _require_opd(db, payload.opd_id)

    if payload.role != UserRole.ADMIN and payload.opd_id is None:
        logger.warning("Creating %s user %s without an OPD", payload.role.value, payload.username)

    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        full_name=payload.full_name,
        role=payload.role,
        opd_id=payload.opd_id,
        is_active=True,
    )
    db.add(user)
    _commit_unique(db)
    db.refresh(user)
    logger.info("User %s (%s) created", user.id, user.username)
    return user


def update_user(db: Session, user_id: int, payload: UserUpdate) -> User:
    user = get_user(db, user_id)

    data = payload.model_dump(exclude_unset=True)
    _ensure_unique(db, data.get("username"), data.get("email"), exclude_id=user.id)
    if "opd_id" in data:
        _require_opd(db, data["opd_id"])

    password = data.pop("password", None)
    if password is not None:
        user.password_hash = get_password_hash(password)

    for k, v in data.items():
        setattr(user, k, v)

    _commit_unique(db)
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> bool:
    """Soft delete: the row stays so uploaded documents keep their uploader."""
    user = get_user(db, user_id)
    user.is_active = False
    db.commit()
    logger.info("User %s deactivated", user_id)
    return True


def authenticate(db: Session, username: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.username == username).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
