from sqlalchemy import Column, String, Integer, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class OPD(Base):
    """Organisasi Perangkat Daerah: the unit that owns documents and scopes users."""
    __tablename__ = "opds"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    code = Column(String, nullable=False, unique=True, index=True)  # e.g. "DISDIK"
    description = Column(Text, nullable=True)

    # No cascade: deleting an OPD with dependents is refused by the service layer
    users = relationship("User", back_populates="opd", passive_deletes="all")
    documents = relationship("Document", back_populates="opd", passive_deletes="all")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
