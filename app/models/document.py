from sqlalchemy import Column, String, Integer, BigInteger, DateTime, Boolean, Enum, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.enums import DocumentType


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (CheckConstraint("file_size > 0", name="ck_documents_file_size_positive"),)

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Storage reference returned by app.core.storage
    file_path = Column(String, nullable=False)
    file_name = Column(String, nullable=False)  # original filename from the upload
    file_size = Column(BigInteger, nullable=False)
    mime_type = Column(String, nullable=False)
    document_type = Column(
        Enum(DocumentType, name="document_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )

    opd_id = Column(Integer, ForeignKey("opds.id"), nullable=False, index=True)
    opd = relationship("OPD", back_populates="documents")

    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    uploader = relationship("User", back_populates="documents")

    upload_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    created_date = Column(DateTime(timezone=True), nullable=True)  # business metadata, set by the uploader
    tags = Column(String, nullable=True)  # comma-separated
    is_public = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now(), nullable=False)
