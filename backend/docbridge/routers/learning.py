from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
import logging

from ..dependencies import get_db
from ..schemas import (
    CompanyPairRequest,
    TrainingResponse,
    SuggestionResponse,
    LearningStatsResponse,
    ReviewCandidatesResponse,
    FeedbackRequest,
    FeedbackResponse,
    MappingListResponse,
    Pagination,
    ProductMappingResponse
)
from ..exceptions import MappingNotFoundError
from ..services.feedback_service import FeedbackService
from ..services.mapping_learning_service import MappingLearningService
from ..services.mapping_store import MappingStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/learning", tags=["learning"])


@router.post("/train", response_model=TrainingResponse)
async def train_mappings(
    request: CompanyPairRequest,
    db: Session = Depends(get_db)
):
    """
    Train the pattern model for a company pair from its stored mappings.

    Fewer than the minimum number of mappings is reported as trained=false,
    not as an error.
    """
    result = MappingLearningService(db).train_mappings(request.from_company_id, request.to_company_id)
    return TrainingResponse(**result.to_dict())


@router.get("/suggest", response_model=SuggestionResponse)
async def suggest_mapping(
    from_company_id: int = Query(..., description="Source company ID"),
    to_company_id: int = Query(..., description="Target company ID"),
    product_code: str = Query(..., min_length=1, description="Source product code to translate"),
    include_blended: bool = Query(False, description="Also score the closest similar mapping"),
    db: Session = Depends(get_db)
):
    service = MappingLearningService(db)
    suggestion = service.suggest(from_company_id, to_company_id, product_code)
    response = SuggestionResponse(product_code=product_code, **suggestion.to_dict())

    if include_blended:
        blended = service.blended_suggestion(from_company_id, to_company_id, product_code)
        if blended is not None:
            response.blended_suggestion = blended.suggestion
            response.blended_confidence = blended.confidence

    return response


@router.get("/stats", response_model=LearningStatsResponse)
async def get_learning_stats(
    from_company_id: int = Query(..., description="Source company ID"),
    to_company_id: int = Query(..., description="Target company ID"),
    db: Session = Depends(get_db)
):
    return MappingLearningService(db).get_learning_stats(from_company_id, to_company_id)


@router.get("/review-candidates", response_model=ReviewCandidatesResponse)
async def get_review_candidates(
    from_company_id: int = Query(..., description="Source company ID"),
    to_company_id: int = Query(..., description="Target company ID"),
    limit: int = Query(10, ge=1, le=100, description="Maximum number of candidates"),
    db: Session = Depends(get_db)
):
    """Frequently used mappings that still need a reviewer's confirmation"""
    candidates = MappingStore(db).get_review_candidates(from_company_id, to_company_id, limit)
    return ReviewCandidatesResponse(suggestions=candidates, total=len(candidates))


@router.get("/mappings", response_model=MappingListResponse)
async def list_mappings(
    from_company_id: int = Query(..., description="Source company ID"),
    to_company_id: int = Query(..., description="Target company ID"),
    limit: int = Query(50, ge=1, le=500, description="Maximum number of mappings"),
    offset: int = Query(0, ge=0, description="Number of mappings to skip"),
    db: Session = Depends(get_db)
):
    """Stored mappings for a company pair, highest confidence then most used first"""
    mappings = MappingStore(db).find_by_companies(from_company_id, to_company_id, limit=limit, offset=offset)
    return MappingListResponse(
        mappings=[ProductMappingResponse.model_validate(mapping) for mapping in mappings],
        pagination=Pagination(limit=limit, offset=offset, count=len(mappings))
    )


@router.delete("/mappings/{mapping_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_mapping(
    mapping_id: int,
    db: Session = Depends(get_db)
) -> None:
    if MappingStore(db).delete_mapping(mapping_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Mapping not found"
        )


@router.post("/mappings/{mapping_id}/feedback", response_model=FeedbackResponse)
async def apply_feedback(
    mapping_id: int,
    request: FeedbackRequest,
    db: Session = Depends(get_db)
):
    try:
        result = FeedbackService.apply_feedback(db, mapping_id, request.accepted, request.adjustment)
    except MappingNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Mapping not found"
        )
    return FeedbackResponse(**result.to_dict())
