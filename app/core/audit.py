from typing import Optional

from app.models.audit_log import AuditLog
from app.models.user import User
from sqlalchemy.orm import Session


def _role_value(actor: User) -> Optional[str]:
    role = actor.role
    return getattr(role, "value", role)


def log_audit(
    db: Session,
    *,
    actor: User,
    action: str,
    entity_type: str,
    entity_id: str,
    opd_id: Optional[int] = None,
    source: str = "api",
    description: Optional[str] = None,
) -> AuditLog:
    log = AuditLog(
        actor_id=actor.id,
        actor_username=actor.username,
        actor_role=_role_value(actor),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        opd_id=opd_id,
        source=source,
        description=description,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log
