# Document schemas
from .document import (
    DocumentResponse,
    ProcessDocumentResponse,
    ExtractedFieldResponse,
    DocumentFieldsResponse,
    ReviewFieldResponse,
    DocumentReviewResponse,
    ReviewMappingRequest,
    ReviewSubmissionRequest,
    ReviewItemResult,
    ReviewSubmissionResponse,
    Pagination,
    ProcessingQueueItem,
    ProcessingQueueResponse
)

# Mapping schemas
from .mapping import (
    CompanyPairRequest,
    TrainingResponse,
    SuggestionResponse,
    ConfidenceDistribution,
    LearningStatsResponse,
    ReviewCandidate,
    ReviewCandidatesResponse,
    FeedbackRequest,
    FeedbackResponse,
    ProductMappingResponse,
    MappingListResponse
)

# Make all schemas available at package level
__all__ = [
    # Document
    "DocumentResponse",
    "ProcessDocumentResponse",
    "ExtractedFieldResponse",
    "DocumentFieldsResponse",
    "ReviewFieldResponse",
    "DocumentReviewResponse",
    "ReviewMappingRequest",
    "ReviewSubmissionRequest",
    "ReviewItemResult",
    "ReviewSubmissionResponse",
    "Pagination",
    "ProcessingQueueItem",
    "ProcessingQueueResponse",
    # Mapping
    "CompanyPairRequest",
    "TrainingResponse",
    "SuggestionResponse",
    "ConfidenceDistribution",
    "LearningStatsResponse",
    "ReviewCandidate",
    "ReviewCandidatesResponse",
    "FeedbackRequest",
    "FeedbackResponse",
    "ProductMappingResponse",
    "MappingListResponse"
]
