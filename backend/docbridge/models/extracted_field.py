from sqlalchemy import Column, Integer, String, DateTime, Text, Float, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..db import Base


class ExtractedField(Base):
    """
    One named datum pulled from a document during background processing
    (e.g. invoice_number, total_amount, document_structure).
    At most one row exists per (document_id, field_name); re-extraction and
    human review overwrite the value in place.
    """
    __tablename__ = "extracted_fields"
    __table_args__ = (
        UniqueConstraint("document_id", "field_name", name="uq_extracted_fields_document_field"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    field_name = Column(String, nullable=False, index=True)
    field_value = Column(Text, nullable=True)  # Large values allowed, e.g. raw text prefix
    confidence_score = Column(Float, nullable=True)  # 0.0 to 1.0
    is_verified = Column(Boolean, nullable=False, default=False)  # Confirmed during review
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    document = relationship("Document", back_populates="extracted_fields")
