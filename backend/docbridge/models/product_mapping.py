from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from ..db import Base


class ProductMapping(Base):
    """
    Learned translation of one company's product code into another's.
    (from_company_id, to_company_id, from_product_code) is the natural key;
    repeated observations of the same key update the row and bump usage_count.
    """
    __tablename__ = "product_mappings"
    __table_args__ = (
        UniqueConstraint(
            "from_company_id", "to_company_id", "from_product_code",
            name="uq_product_mappings_pair_code",
        ),
        CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1",
            name="ck_product_mappings_confidence_range",
        ),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    from_company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    to_company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    from_product_code = Column(String, nullable=False)
    to_product_code = Column(String, nullable=False)
    confidence_score = Column(Float, nullable=False, default=0.0)  # Clamped to [0, 1]
    usage_count = Column(Integer, nullable=False, default=0)  # Never decreases
    is_manual = Column(Boolean, nullable=False, default=False)
    created_by = Column(Integer, nullable=True)
    last_used = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
