from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..db import Base
from ..enums import DocumentType, DocumentStatus


class Document(Base):
    __tablename__ = "documents"
    
    id = Column(Integer, primary_key=True, index=True)
    sender_company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    recipient_company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    document_type = Column(Enum(DocumentType), nullable=True)
    original_filename = Column(String, nullable=False)
    file_path = Column(String, nullable=False)  # Stored upload location
    mime_type = Column(String, nullable=True)
    status = Column(Enum(DocumentStatus), nullable=False, default=DocumentStatus.SENT)
    confidence_score = Column(Float, nullable=True)
    created_by = Column(Integer, nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    sender_company = relationship("Company", foreign_keys=[sender_company_id])
    recipient_company = relationship("Company", foreign_keys=[recipient_company_id])
    extracted_fields = relationship("ExtractedField", back_populates="document", cascade="all, delete-orphan")
    field_corrections = relationship("FieldCorrection", back_populates="document", cascade="all, delete-orphan")
