"""
Product mapping suggestion and training.

Suggestions resolve in a fixed order: a confident stored match, then the
pattern-based model trained for the company pair, then token similarity
against stored mappings. The pattern model is a plain value returned by
train_mappings and persisted per company pair; there is no process-wide
model cache.
"""

import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .. import models
from ..core.settings import get_settings
from ..db import dialect_insert
from ..enums import SuggestionMethod
from .mapping_store import MappingStore, calculate_similarity, clamp_confidence

logger = logging.getLogger(__name__)

PATTERN_MODEL_TYPE = "pattern_based"
BLENDED_CANDIDATE_LIMIT = 5
HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5
TARGET_USAGE_PER_MAPPING = 10

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")
_SPECIAL_CHAR = re.compile(r"[^a-zA-Z0-9\s]")
_DIGIT = re.compile(r"\d")


@dataclass
class MappingFeatures:
    length: int
    word_count: int
    has_numbers: bool
    has_special_chars: bool
    first_word: str
    last_word: str
    alphanumeric_ratio: float


@dataclass
class PatternPrediction:
    output: str
    confidence: float


@dataclass
class PatternModel:
    """First token of a normalized source code -> historically observed targets"""
    patterns: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    model_type: str = PATTERN_MODEL_TYPE
    training_samples: int = 0
    accuracy: Optional[float] = None
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def predict(self, features: MappingFeatures) -> Optional[PatternPrediction]:
        if self.model_type != PATTERN_MODEL_TYPE:
            return None
        candidates = self.patterns.get(features.first_word) or []
        if not candidates:
            return None
        best = max(candidates, key=lambda candidate: candidate["confidence"])
        return PatternPrediction(output=best["output"], confidence=best["confidence"])


@dataclass
class TrainingResult:
    trained: bool
    message: str
    mappings_count: int = 0
    training_samples: int = 0
    model_accuracy: Optional[float] = None
    model: Optional[PatternModel] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("model")
        return data


@dataclass
class Suggestion:
    suggestion: Optional[str] = None
    confidence: float = 0.0
    method: SuggestionMethod = SuggestionMethod.NONE
    mapping_id: Optional[int] = None
    based_on: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["method"] = self.method.value
        return data


def extract_features(product_code: str) -> MappingFeatures:
    """
    Describe a product code for the pattern model.

    Args:
        product_code: Source product code as stored

    Returns:
        MappingFeatures of the lower-cased, trimmed code; an empty code
        still counts as one word
    """
    normalized = (product_code or "").lower().strip()
    words = normalized.split()
    alphanumeric = _NON_ALPHANUMERIC.sub("", normalized)

    return MappingFeatures(
        length=len(normalized),
        word_count=len(words) if words else 1,
        has_numbers=bool(_DIGIT.search(normalized)),
        has_special_chars=bool(_SPECIAL_CHAR.search(normalized)),
        first_word=words[0] if words else "",
        last_word=words[-1] if words else "",
        alphanumeric_ratio=len(alphanumeric) / max(len(normalized), 1),
    )


def create_model(mappings: List[models.ProductMapping]) -> PatternModel:
    """
    Build a pattern model from stored mappings.

    Args:
        mappings: Training mappings for one company pair

    Returns:
        PatternModel keyed by the first word of each source code
    """
    patterns: Dict[str, List[Dict[str, Any]]] = {}
    for mapping in mappings:
        first_word = extract_features(mapping.from_product_code).first_word
        patterns.setdefault(first_word, []).append({
            "output": mapping.to_product_code,
            "confidence": mapping.confidence_score,
        })
    # Highest confidence first so the stored model reads in prediction order
    for candidates in patterns.values():
        candidates.sort(key=lambda candidate: candidate["confidence"], reverse=True)

    return PatternModel(patterns=patterns, training_samples=len(mappings))


def calculate_model_accuracy(model: PatternModel, mappings: List[models.ProductMapping]) -> float:
    """Share of mappings whose target the model predicts exactly"""
    if not mappings:
        return 0.0
    correct = 0
    for mapping in mappings:
        prediction = model.predict(extract_features(mapping.from_product_code))
        if prediction and prediction.output == mapping.to_product_code:
            correct += 1
    return correct / len(mappings)


class MappingLearningService:
    """Train pattern models and suggest target product codes for a company pair."""

    def __init__(self, db: Session, store: Optional[MappingStore] = None):
        self.db = db
        self.store = store or MappingStore(db)
        self.settings = get_settings()

    def train_mappings(self, from_company_id: int, to_company_id: int) -> TrainingResult:
        """
        Train and store the pattern model for a company pair.

        Args:
            from_company_id: Company whose codes are translated
            to_company_id: Company whose codes are produced

        Returns:
            TrainingResult; trained=False when the pair has too few mappings
        """
        mappings = self.store.find_by_companies(from_company_id, to_company_id)

        if len(mappings) < self.settings.min_training_samples:
            logger.info(
                f"Not enough mappings to train companies {from_company_id}->{to_company_id}: {len(mappings)}"
            )
            return TrainingResult(
                trained=False,
                message="Not enough data for training",
                mappings_count=len(mappings),
            )

        model = create_model(mappings)
        model.accuracy = calculate_model_accuracy(model, mappings)
        self.save_model(from_company_id, to_company_id, model)

        logger.info(
            f"Trained mapping model for companies {from_company_id}->{to_company_id}: "
            f"{model.training_samples} samples, accuracy {model.accuracy:.2f}"
        )
        return TrainingResult(
            trained=True,
            message="Model trained successfully",
            mappings_count=len(mappings),
            training_samples=model.training_samples,
            model_accuracy=model.accuracy,
            model=model,
        )

    def save_model(self, from_company_id: int, to_company_id: int, model: PatternModel) -> models.MappingModel:
        """Store the pair's model, replacing any earlier one in a single upsert"""
        stmt = dialect_insert(self.db, models.MappingModel).values(
            from_company_id=from_company_id,
            to_company_id=to_company_id,
            model_type=model.model_type,
            patterns=model.patterns,
            training_samples=model.training_samples,
            accuracy=model.accuracy,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["from_company_id", "to_company_id"],
            set_={
                "model_type": stmt.excluded.model_type,
                "patterns": stmt.excluded.patterns,
                "training_samples": stmt.excluded.training_samples,
                "accuracy": stmt.excluded.accuracy,
                "created_at": func.now(),
            },
        ).returning(models.MappingModel)

        record = self.db.scalars(stmt, execution_options={"populate_existing": True}).one()
        self.db.commit()
        return record

    def load_model(self, from_company_id: int, to_company_id: int) -> Optional[PatternModel]:
        record = self.db.scalars(
            select(models.MappingModel).where(
                models.MappingModel.from_company_id == from_company_id,
                models.MappingModel.to_company_id == to_company_id,
            )
        ).first()
        if record is None:
            return None
        return PatternModel(
            patterns=record.patterns or {},
            model_type=record.model_type,
            training_samples=record.training_samples,
            accuracy=record.accuracy,
            created_at=record.created_at.isoformat() if record.created_at else "",
        )

    def suggest(
        self,
        from_company_id: int,
        to_company_id: int,
        product_code: str,
        model: Optional[PatternModel] = None
    ) -> Suggestion:
        """
        Best-guess target code for product_code.

        Args:
            model: Pattern model to consult; defaults to the stored model for the pair

        Returns:
            Suggestion with method exact_match, pattern_based, similarity_based,
            none, or error when lookup itself failed
        """
        try:
            exact = self.store.find_best_match(from_company_id, to_company_id, product_code)
            if exact and exact.confidence_score > self.settings.suggestion_exact_threshold:
                return Suggestion(
                    suggestion=exact.to_product_code,
                    confidence=exact.confidence_score,
                    method=SuggestionMethod.EXACT_MATCH,
                    mapping_id=exact.id,
                )

            if model is None:
                model = self.load_model(from_company_id, to_company_id)
            if model is not None:
                prediction = model.predict(extract_features(product_code))
                if prediction and prediction.confidence > self.settings.suggestion_pattern_threshold:
                    return Suggestion(
                        suggestion=prediction.output,
                        confidence=prediction.confidence,
                        method=SuggestionMethod.PATTERN_BASED,
                    )

            candidates = self._similar_candidates(
                from_company_id, to_company_id, product_code, self.settings.similarity_candidate_limit
            )
            if candidates:
                best, similarity = max(
                    ((mapping, calculate_similarity(product_code, mapping.from_product_code)) for mapping in candidates),
                    key=lambda scored: scored[1],
                )
                return Suggestion(
                    suggestion=best.to_product_code,
                    confidence=similarity,
                    method=SuggestionMethod.SIMILARITY_BASED,
                    mapping_id=best.id,
                    based_on=best.from_product_code,
                )

            return Suggestion()

        except Exception as e:
            # A failed query leaves the session unusable until rolled back
            self.db.rollback()
            logger.error(f"Error suggesting mapping for '{product_code}': {e}")
            return Suggestion(method=SuggestionMethod.ERROR, error=str(e))

    def _similar_candidates(
        self,
        from_company_id: int,
        to_company_id: int,
        product_code: str,
        limit: int
    ) -> List[models.ProductMapping]:
        candidates = self.store.find_similar(from_company_id, to_company_id, product_code, limit)
        if candidates:
            return candidates

        # A whole code rarely occurs inside another; widen to its leading word token
        tokens = re.findall(r"\w+", (product_code or "").lower())
        if tokens and tokens[0] != (product_code or "").lower():
            return self.store.find_similar(from_company_id, to_company_id, tokens[0], limit)
        return []

    def blended_suggestion(
        self,
        from_company_id: int,
        to_company_id: int,
        product_code: str
    ) -> Optional[Suggestion]:
        """
        Closest similar mapping scored by the mean of similarity and stored confidence.

        Returns:
            Suggestion with method similarity_based, or None when no stored
            mapping resembles product_code
        """
        candidates = self._similar_candidates(
            from_company_id, to_company_id, product_code, BLENDED_CANDIDATE_LIMIT
        )
        if not candidates:
            return None

        best, similarity = max(
            ((mapping, calculate_similarity(product_code, mapping.from_product_code)) for mapping in candidates),
            key=lambda scored: scored[1],
        )
        confidence = clamp_confidence((similarity + (best.confidence_score or 0.0)) / 2)
        return Suggestion(
            suggestion=best.to_product_code,
            confidence=confidence,
            method=SuggestionMethod.SIMILARITY_BASED,
            mapping_id=best.id,
            based_on=best.from_product_code,
        )

    def get_learning_stats(self, from_company_id: int, to_company_id: int) -> Dict[str, Any]:
        """
        Store statistics plus confidence distribution and learning progress.

        Args:
            from_company_id: Company whose codes are translated
            to_company_id: Company whose codes are produced

        Returns:
            Dictionary with the mapping stats, confidence_distribution,
            average_usage_per_mapping and learning_progress
        """
        mappings = self.store.find_by_companies(from_company_id, to_company_id)
        stats = self.store.get_mapping_stats(from_company_id, to_company_id)

        high = sum(1 for m in mappings if m.confidence_score > HIGH_CONFIDENCE)
        medium = sum(1 for m in mappings if MEDIUM_CONFIDENCE < m.confidence_score <= HIGH_CONFIDENCE)
        low = sum(1 for m in mappings if m.confidence_score <= MEDIUM_CONFIDENCE)
        total_usage = sum(m.usage_count for m in mappings)

        return {
            **stats,
            "confidence_distribution": {"high": high, "medium": medium, "low": low},
            "average_usage_per_mapping": total_usage / len(mappings) if mappings else 0,
            "learning_progress": self.calculate_learning_progress(mappings),
        }

    @staticmethod
    def calculate_learning_progress(mappings: List[models.ProductMapping]) -> float:
        if not mappings:
            return 0.0
        avg_confidence = sum(m.confidence_score for m in mappings) / len(mappings)
        avg_usage = sum(m.usage_count for m in mappings) / len(mappings)
        return (min(1.0, avg_confidence) + min(1.0, avg_usage / TARGET_USAGE_PER_MAPPING)) / 2
