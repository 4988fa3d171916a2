from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
import logging

from ..dependencies import get_db
from ..schemas import (
    DocumentReviewResponse,
    ReviewSubmissionRequest,
    ReviewSubmissionResponse,
    ReviewItemResult,
    Pagination,
    ProcessingQueueItem,
    ProcessingQueueResponse
)
from ..exceptions import DocumentNotFoundError, DocumentNotReadyError
from ..services.review_service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/processing", tags=["processing"])


@router.get("/queue", response_model=ProcessingQueueResponse)
async def get_processing_queue(
    recipient_company_id: int = Query(..., description="Company whose inbox is listed"),
    limit: int = Query(20, ge=1, le=100, description="Maximum number of documents"),
    offset: int = Query(0, ge=0, description="Number of documents to skip"),
    db: Session = Depends(get_db)
):
    """Processed documents waiting for review, most recently processed first"""
    documents = ReviewService.get_processing_queue(db, recipient_company_id, limit=limit, offset=offset)
    items = [
        ProcessingQueueItem(
            id=document.id,
            document_type=document.document_type,
            original_filename=document.original_filename,
            sender_company_id=document.sender_company_id,
            sender_company_name=document.sender_company.name if document.sender_company else None,
            status=document.status,
            processed_at=document.processed_at
        )
        for document in documents
    ]
    return ProcessingQueueResponse(
        processing_queue=items,
        pagination=Pagination(limit=limit, offset=offset, count=len(items))
    )


@router.get("/{document_id}", response_model=DocumentReviewResponse)
async def get_document_for_review(
    document_id: int,
    db: Session = Depends(get_db)
):
    """
    Get a processed document's fields for review.

    Product description and product code fields carry the best stored
    mapping for the sender/recipient pair, if any.
    """
    try:
        return ReviewService.get_document_for_review(db, document_id)
    except DocumentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )
    except DocumentNotReadyError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.post("/{document_id}", response_model=ReviewSubmissionResponse)
async def submit_review(
    document_id: int,
    request: ReviewSubmissionRequest,
    db: Session = Depends(get_db)
):
    """
    Apply reviewer-confirmed values to a document.

    Every item is logged as a correction and stored as a verified field.
    Confirmed product identifiers become manual product mappings. Items are
    applied independently; failures are reported per item.
    """
    try:
        results = ReviewService.submit_review(
            db,
            document_id,
            [mapping.model_dump() for mapping in request.mappings],
            user_id=request.user_id
        )
    except DocumentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )

    successful = sum(1 for result in results if result["success"])
    return ReviewSubmissionResponse(
        message="Document reviewed successfully" if successful == len(results) else "Document reviewed with errors",
        document_id=document_id,
        total_mappings=len(results),
        successful_mappings=successful,
        failed_mappings=len(results) - successful,
        results=[ReviewItemResult(**result) for result in results]
    )
