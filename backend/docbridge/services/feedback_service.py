import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models
from ..core.settings import get_settings
from ..exceptions import MappingNotFoundError
from .mapping_store import MappingStore, clamp_confidence

logger = logging.getLogger(__name__)


@dataclass
class FeedbackResult:
    success: bool
    mapping_id: int
    previous_confidence: float
    new_confidence: float
    retraining_recommended: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FeedbackService:
    """Accept/reject signals from reviewers adjusting a mapping's confidence."""

    @staticmethod
    def apply_feedback(
        db: Session,
        mapping_id: int,
        accepted: bool,
        adjustment: Optional[float] = None
    ) -> FeedbackResult:
        """
        Raise or lower a mapping's confidence by adjustment, clamped to [0, 1].

        The write also counts as a use of the mapping. A change larger than
        the retraining threshold is logged and flagged on the result; it does
        not retrain anything itself.

        Raises:
            MappingNotFoundError: No mapping with mapping_id exists
        """
        settings = get_settings()
        if adjustment is None:
            adjustment = settings.feedback_default_adjustment

        # Row lock on PostgreSQL; SQLite ignores FOR UPDATE
        mapping = db.scalars(
            select(models.ProductMapping)
            .where(models.ProductMapping.id == mapping_id)
            .with_for_update()
        ).first()
        if mapping is None:
            raise MappingNotFoundError(mapping_id)

        previous = mapping.confidence_score
        if accepted:
            target = min(1.0, previous + adjustment)
        else:
            target = max(0.0, previous - adjustment)

        updated = MappingStore(db).update_confidence(mapping_id, clamp_confidence(target))
        delta = updated.confidence_score - previous
        retraining_recommended = abs(delta) > settings.retraining_delta_threshold

        if retraining_recommended:
            logger.warning(
                f"Mapping {mapping_id} confidence moved {previous:.2f} -> {updated.confidence_score:.2f}; "
                f"companies {updated.from_company_id}->{updated.to_company_id} should be retrained"
            )
        else:
            logger.info(
                f"Applied {'accept' if accepted else 'reject'} feedback to mapping {mapping_id}: "
                f"{previous:.2f} -> {updated.confidence_score:.2f}"
            )

        return FeedbackResult(
            success=True,
            mapping_id=mapping_id,
            previous_confidence=previous,
            new_confidence=updated.confidence_score,
            retraining_recommended=retraining_recommended,
        )
