from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from ..enums import SuggestionMethod
from .document import Pagination


class CompanyPairRequest(BaseModel):
    """Source and target company of a mapping relationship"""
    from_company_id: int = Field(description="Company whose product codes are translated")
    to_company_id: int = Field(description="Company whose product codes are produced")


class TrainingResponse(BaseModel):
    """Outcome of training the pattern model for a company pair"""
    trained: bool
    message: str
    mappings_count: int = 0
    training_samples: int = 0
    model_accuracy: Optional[float] = None


class SuggestionResponse(BaseModel):
    """Suggested target code for a source product code"""
    product_code: str
    suggestion: Optional[str] = None
    confidence: float = 0.0
    method: SuggestionMethod
    mapping_id: Optional[int] = None
    based_on: Optional[str] = None
    error: Optional[str] = None
    blended_suggestion: Optional[str] = Field(None, description="Closest similar mapping when requested")
    blended_confidence: Optional[float] = Field(None, description="Mean of similarity and the mapping's stored confidence")


class ConfidenceDistribution(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0


class LearningStatsResponse(BaseModel):
    """Aggregate learning state for a company pair"""
    total_mappings: int
    avg_confidence: float
    total_usage: int
    manual_mappings: int
    auto_mappings: int
    confidence_distribution: ConfidenceDistribution
    average_usage_per_mapping: float
    learning_progress: float = Field(ge=0.0, le=1.0)


class ReviewCandidate(BaseModel):
    """Frequently used mapping that still has low confidence"""
    id: int
    from_product_code: str
    to_product_code: str
    confidence_score: float
    usage_count: int
    needs_review: bool


class ReviewCandidatesResponse(BaseModel):
    suggestions: List[ReviewCandidate]
    total: int


class FeedbackRequest(BaseModel):
    """Reviewer verdict on a suggested mapping"""
    accepted: bool
    adjustment: Optional[float] = Field(None, gt=0.0, le=1.0, description="Confidence step; defaults to the configured adjustment")


class FeedbackResponse(BaseModel):
    success: bool
    mapping_id: int
    previous_confidence: float
    new_confidence: float
    retraining_recommended: bool


class ProductMappingResponse(BaseModel):
    """Stored product mapping"""
    id: int
    from_company_id: int
    to_company_id: int
    from_product_code: str
    to_product_code: str
    confidence_score: float
    usage_count: int
    is_manual: bool
    last_used: Optional[datetime] = None

    class Config:
        from_attributes = True


class MappingListResponse(BaseModel):
    mappings: List[ProductMappingResponse]
    pagination: Pagination
