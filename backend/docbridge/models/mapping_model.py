from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from ..db import Base
from ..types import JSONBCompat


class MappingModel(Base):
    """
    Pattern-based prediction model trained for one company pair.
    Replaced wholesale on every training run.
    """
    __tablename__ = "mapping_models"
    __table_args__ = (
        UniqueConstraint("from_company_id", "to_company_id", name="uq_mapping_models_pair"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    from_company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    to_company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    model_type = Column(String, nullable=False, default="pattern_based")
    patterns = Column(JSONBCompat, nullable=False)  # first token -> [{output, confidence}]
    training_samples = Column(Integer, nullable=False, default=0)
    accuracy = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
