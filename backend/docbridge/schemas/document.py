from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from ..enums import DocumentType, DocumentStatus


class DocumentResponse(BaseModel):
    """Schema for document response"""
    id: int
    sender_company_id: int
    recipient_company_id: int
    document_type: Optional[DocumentType] = None
    original_filename: str
    status: DocumentStatus
    confidence_score: Optional[float] = None
    delivered_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProcessDocumentResponse(BaseModel):
    """Acknowledgement that background processing was queued"""
    document_id: int
    task_id: str
    status: str = "queued"
    document_type: Optional[DocumentType] = Field(None, description="Type assumed from the file extension until processing completes")


class ExtractedFieldResponse(BaseModel):
    """Schema for a stored document field"""
    id: int
    field_name: str
    field_value: Optional[str] = None
    confidence_score: Optional[float] = None
    is_verified: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentFieldsResponse(BaseModel):
    """Response for document fields endpoint"""
    document_id: int
    status: DocumentStatus
    document_type: Optional[DocumentType] = None
    fields: List[ExtractedFieldResponse]


class ReviewFieldResponse(BaseModel):
    """Field as shown to a reviewer, with a mapping suggestion for product identifiers"""
    field_name: str
    field_value: Optional[str] = None
    confidence_score: Optional[float] = None
    is_verified: bool
    suggested_mapping: Optional[str] = None
    mapping_confidence: float = 0.0
    mapping_id: Optional[int] = None


class DocumentReviewResponse(BaseModel):
    """Processed document ready for human review"""
    id: int
    document_type: Optional[DocumentType] = None
    original_filename: str
    sender_company_id: int
    recipient_company_id: int
    status: DocumentStatus
    processed_at: Optional[datetime] = None
    content: List[ReviewFieldResponse]
    processing_status: str = "ready_for_review"


class ReviewMappingRequest(BaseModel):
    """A reviewer-confirmed value for one field"""
    field_name: str = Field(..., min_length=1, description="Name of the field being confirmed")
    original_value: Optional[str] = Field(None, description="Value as extracted")
    mapped_value: str = Field(..., description="Value confirmed by the reviewer")
    confidence_score: float = Field(1.0, ge=0.0, le=1.0)


class ReviewSubmissionRequest(BaseModel):
    """Request to apply reviewed values to a processed document"""
    mappings: List[ReviewMappingRequest] = Field(min_length=1, description="Reviewed fields to apply")
    user_id: Optional[int] = Field(None, description="Reviewing user, recorded on corrections and manual mappings")


class ReviewItemResult(BaseModel):
    """Outcome of one submitted field"""
    field_name: str
    original_value: Optional[str] = None
    mapped_value: str
    success: bool
    product_mapping_id: Optional[int] = None
    error: Optional[str] = None


class ReviewSubmissionResponse(BaseModel):
    """Response for review submission"""
    message: str
    document_id: int
    total_mappings: int
    successful_mappings: int
    failed_mappings: int
    results: List[ReviewItemResult]


class Pagination(BaseModel):
    limit: int
    offset: int
    count: int


class ProcessingQueueItem(BaseModel):
    """Processed document waiting in a recipient's review queue"""
    id: int
    document_type: Optional[DocumentType] = None
    original_filename: str
    sender_company_id: int
    sender_company_name: Optional[str] = None
    status: DocumentStatus
    processed_at: Optional[datetime] = None


class ProcessingQueueResponse(BaseModel):
    processing_queue: List[ProcessingQueueItem]
    pagination: Pagination
