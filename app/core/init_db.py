import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import get_password_hash
from app.models.enums import UserRole
from app.models.user import User

logger = logging.getLogger(__name__)


def init_db(db: Session) -> None:
    """
    Create the first admin account on startup if it does not exist yet.
    Does nothing unless FIRST_ADMIN_PASSWORD is configured.
    """
    if not settings.FIRST_ADMIN_PASSWORD:
        return

    username = settings.FIRST_ADMIN_USERNAME
    if db.query(User.id).filter(User.username == username).first():
        logger.info("Admin '%s' already exists, skipping creation", username)
        return

    db.add(
        User(
            username=username,
            email=settings.FIRST_ADMIN_EMAIL,
            password_hash=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
            full_name="Administrator",
            role=UserRole.ADMIN,
            opd_id=None,
            is_active=True,
        )
    )
    db.commit()
    logger.info("Admin '%s' created", username)
