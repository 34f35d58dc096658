from sqlalchemy import Column, String, DateTime, Integer
from sqlalchemy.sql import func
from app.core.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, nullable=False, index=True)
    actor_username = Column(String, nullable=True, index=True)
    actor_role = Column(String, nullable=True)
    action = Column(String, nullable=False, index=True)  # created/updated/deleted/login
    entity_type = Column(String, nullable=False, index=True)  # document/opd/user
    entity_id = Column(String, nullable=False, index=True)
    opd_id = Column(Integer, nullable=True, index=True)
    source = Column(String, nullable=True, index=True)  # api/system
    description = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
