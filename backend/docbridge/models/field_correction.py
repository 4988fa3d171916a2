from sqlalchemy import Column, Integer, String, DateTime, Text, Float, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..db import Base


class FieldCorrection(Base):
    """
    Audit trail of values submitted during human review of a processed document.
    One row per submitted (field_name, original_value, mapped_value) tuple.
    """
    __tablename__ = "field_corrections"
    
    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    field_name = Column(String, nullable=False, index=True)  # Same as ExtractedField.field_name
    original_value = Column(Text, nullable=True)  # Value the reviewer started from
    mapped_value = Column(Text, nullable=False)  # Value the reviewer confirmed
    confidence_score = Column(Float, nullable=True)
    corrected_by = Column(Integer, nullable=True)  # Reviewing user, if known
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    document = relationship("Document", back_populates="field_corrections")
