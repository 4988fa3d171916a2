"""
Persistence and lookup of learned product-code mappings between companies.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.orm import Session

from .. import models
from ..db import dialect_insert
from ..exceptions import MappingNotFoundError

logger = logging.getLogger(__name__)

REVIEW_CONFIDENCE_CEILING = 0.8
NEEDS_REVIEW_THRESHOLD = 0.7

_WORD = re.compile(r"\w+")


def clamp_confidence(value: Optional[float]) -> float:
    if value is None:
        return 0.0
    return max(0.0, min(1.0, float(value)))


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def tokenize(text: Optional[str]) -> List[str]:
    return _WORD.findall((text or "").lower())


def calculate_similarity(text1: Optional[str], text2: Optional[str]) -> float:
    """Jaccard similarity of the lower-cased word sets of two codes"""
    words1 = set(tokenize(text1))
    words2 = set(tokenize(text2))
    if not words1 or not words2:
        return 0.0
    return len(words1 & words2) / len(words1 | words2)


class MappingStore:
    """Read and write ProductMapping rows for company pairs."""

    def __init__(self, db: Session):
        self.db = db

    def _ordered_for_pair(self, from_company_id: int, to_company_id: int):
        return (
            select(models.ProductMapping)
            .where(
                models.ProductMapping.from_company_id == from_company_id,
                models.ProductMapping.to_company_id == to_company_id,
            )
            .order_by(
                models.ProductMapping.confidence_score.desc(),
                models.ProductMapping.usage_count.desc(),
                models.ProductMapping.id,
            )
        )

    def find_by_id(self, mapping_id: int) -> Optional[models.ProductMapping]:
        return self.db.get(models.ProductMapping, mapping_id)

    def find_by_companies(
        self,
        from_company_id: int,
        to_company_id: int,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[models.ProductMapping]:
        """All mappings for the pair, highest confidence then most used first"""
        stmt = self._ordered_for_pair(from_company_id, to_company_id).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.scalars(stmt))

    def find_best_match(
        self,
        from_company_id: int,
        to_company_id: int,
        product_code: str
    ) -> Optional[models.ProductMapping]:
        """Top stored mapping whose source code contains product_code, ignoring case"""
        if not product_code:
            return None
        stmt = self._ordered_for_pair(from_company_id, to_company_id).where(
            models.ProductMapping.from_product_code.ilike(_like_pattern(product_code), escape="\\")
        ).limit(1)
        return self.db.scalars(stmt).first()

    def find_similar(
        self,
        from_company_id: int,
        to_company_id: int,
        search_term: str,
        limit: int = 10
    ) -> List[models.ProductMapping]:
        """Mappings where either code contains search_term, ignoring case"""
        if not search_term:
            return []
        pattern = _like_pattern(search_term)
        stmt = self._ordered_for_pair(from_company_id, to_company_id).where(
            or_(
                models.ProductMapping.from_product_code.ilike(pattern, escape="\\"),
                models.ProductMapping.to_product_code.ilike(pattern, escape="\\"),
            )
        ).limit(limit)
        return list(self.db.scalars(stmt))

    def create_or_update(self, mapping_data: Dict[str, Any], commit: bool = True) -> models.ProductMapping:
        """
        Upsert a mapping on (from_company_id, to_company_id, from_product_code).

        A new key is inserted with the supplied usage_count (default 0). An
        existing key gets the new target code and confidence, usage_count + 1
        and a fresh last_used, in one INSERT ... ON CONFLICT statement so
        concurrent upserts of the same key cannot double-insert or lose an
        increment.
        """
        confidence = clamp_confidence(mapping_data.get("confidence_score"))
        stmt = dialect_insert(self.db, models.ProductMapping).values(
            from_company_id=mapping_data["from_company_id"],
            to_company_id=mapping_data["to_company_id"],
            from_product_code=mapping_data["from_product_code"],
            to_product_code=mapping_data["to_product_code"],
            confidence_score=confidence,
            usage_count=max(0, int(mapping_data.get("usage_count", 0))),
            is_manual=bool(mapping_data.get("is_manual", False)),
            created_by=mapping_data.get("created_by"),
            last_used=func.now(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["from_company_id", "to_company_id", "from_product_code"],
            set_={
                "to_product_code": stmt.excluded.to_product_code,
                "confidence_score": stmt.excluded.confidence_score,
                "usage_count": models.ProductMapping.usage_count + 1,
                "last_used": func.now(),
                "updated_at": func.now(),
            },
        ).returning(models.ProductMapping)

        mapping = self.db.scalars(stmt, execution_options={"populate_existing": True}).one()
        if commit:
            self.db.commit()

        logger.info(
            f"Upserted mapping {mapping.id}: {mapping.from_product_code} -> {mapping.to_product_code} "
            f"(companies {mapping.from_company_id}->{mapping.to_company_id}, "
            f"confidence: {mapping.confidence_score:.2f}, usage: {mapping.usage_count})"
        )
        return mapping

    def update_confidence(self, mapping_id: int, new_confidence: float) -> models.ProductMapping:
        """Replace confidence, bump usage_count and refresh last_used in one write"""
        self.db.execute(
            update(models.ProductMapping)
            .where(models.ProductMapping.id == mapping_id)
            .values(
                confidence_score=clamp_confidence(new_confidence),
                usage_count=models.ProductMapping.usage_count + 1,
                last_used=func.now(),
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        mapping = self.db.get(models.ProductMapping, mapping_id, populate_existing=True)
        if mapping is None:
            raise MappingNotFoundError(mapping_id)
        return mapping

    def delete_mapping(self, mapping_id: int) -> Optional[models.ProductMapping]:
        mapping = self.find_by_id(mapping_id)
        if mapping is None:
            return None
        self.db.delete(mapping)
        self.db.commit()
        logger.info(f"Deleted mapping {mapping_id}")
        return mapping

    def get_mapping_stats(self, from_company_id: int, to_company_id: int) -> Dict[str, Any]:
        row = self.db.execute(
            select(
                func.count(models.ProductMapping.id),
                func.avg(models.ProductMapping.confidence_score),
                func.sum(models.ProductMapping.usage_count),
                func.sum(case((models.ProductMapping.is_manual.is_(True), 1), else_=0)),
                func.sum(case((models.ProductMapping.is_manual.is_(False), 1), else_=0)),
            ).where(
                models.ProductMapping.from_company_id == from_company_id,
                models.ProductMapping.to_company_id == to_company_id,
            )
        ).one()

        total, avg_confidence, total_usage, manual, auto = row
        return {
            "total_mappings": total or 0,
            "avg_confidence": round(float(avg_confidence), 3) if avg_confidence is not None else 0.0,
            "total_usage": int(total_usage or 0),
            "manual_mappings": int(manual or 0),
            "auto_mappings": int(auto or 0),
        }

    def get_review_candidates(
        self,
        from_company_id: int,
        to_company_id: int,
        limit: int = 10
    ) -> List[Dict[str, Any]]:
        """Frequently used mappings whose confidence is still below 0.8"""
        mappings = self.db.scalars(
            select(models.ProductMapping)
            .where(
                models.ProductMapping.from_company_id == from_company_id,
                models.ProductMapping.to_company_id == to_company_id,
                models.ProductMapping.confidence_score < REVIEW_CONFIDENCE_CEILING,
            )
            .order_by(
                models.ProductMapping.usage_count.desc(),
                models.ProductMapping.confidence_score.asc(),
            )
            .limit(limit)
        )
        return [
            {
                "id": mapping.id,
                "from_product_code": mapping.from_product_code,
                "to_product_code": mapping.to_product_code,
                "confidence_score": mapping.confidence_score,
                "usage_count": mapping.usage_count,
                "needs_review": mapping.confidence_score < NEEDS_REVIEW_THRESHOLD,
            }
            for mapping in mappings
        ]
