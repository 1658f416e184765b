"""
Match feedback log. Records are inserted once and never updated or deleted.
"""
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from jobmatch.models.models import FeedbackAck, MatchFeedback
from jobmatch.services.store import created_between, id_filter
from jobmatch.utils.exceptions import DatabaseError, EntityNotFound, InvalidFeedbackScore, MissingRequiredField
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

# Lower bounds of the [0, 0.2), [0.2, 0.4), ... buckets; 0.8 and above falls to the default
FEEDBACK_BOUNDARIES = [0, 0.2, 0.4, 0.6, 0.8]


def validate_feedback_score(feedback_score: Any) -> float:
    if isinstance(feedback_score, bool):
        raise InvalidFeedbackScore("feedback_score must be a number", value=feedback_score)
    try:
        score = float(feedback_score)
    except (TypeError, ValueError):
        raise InvalidFeedbackScore("feedback_score must be a number", value=feedback_score)
    if math.isnan(score) or not 0.0 <= score <= 1.0:
        raise InvalidFeedbackScore(value=feedback_score)
    return score


class FeedbackStore:
    def __init__(self, feedback_coll=None, training_coll=None):
        if feedback_coll is None or training_coll is None:
            from jobmatch.services import db
            feedback_coll = feedback_coll if feedback_coll is not None else db.feedback_coll
            training_coll = training_coll if training_coll is not None else db.training_data_coll
        self.feedback = feedback_coll
        # match ids are the training record ids handed out by /match-score
        self.matches = training_coll

    async def _ensure_match_exists(self, match_id: str) -> None:
        try:
            match = await self.matches.find_one(id_filter(match_id), {"_id": 1})
        except Exception as e:
            raise DatabaseError(
                "Failed to look up match record",
                operation="record_feedback",
                collection="ai_training_data",
                cause=e,
            ) from e
        if not match:
            raise EntityNotFound("Match record not found", entity_type="match", entity_id=match_id)

    async def record_feedback(
        self, match_id: Optional[Any], feedback_score: Optional[Any], comments: Optional[str] = None
    ) -> FeedbackAck:
        if match_id is None or (isinstance(match_id, str) and not match_id.strip()):
            raise MissingRequiredField("match_id and feedback_score are required", field="match_id")
        if feedback_score is None or (isinstance(feedback_score, str) and not feedback_score.strip()):
            raise MissingRequiredField("match_id and feedback_score are required", field="feedback_score")

        score = validate_feedback_score(feedback_score)
        await self._ensure_match_exists(str(match_id))
        record = MatchFeedback(
            match_id=str(match_id),
            feedback_score=score,
            feedback_comments=comments or "",
        )

        try:
            result = await self.feedback.insert_one(record.model_dump())
        except Exception as e:
            raise DatabaseError(
                "Failed to record match feedback",
                operation="record_feedback",
                collection="match_feedback",
                cause=e,
            ) from e

        logger.info(f"AI feedback received: match_id={record.match_id}, score={score}")
        return FeedbackAck(
            feedback_id=str(result.inserted_id),
            match_id=record.match_id,
            feedback_score=score,
        )

    async def score_distribution(self, start: Optional[datetime], end: Optional[datetime]) -> List[Dict[str, Any]]:
        """Feedback counts per score bucket; only non-empty buckets are returned."""
        pipeline = [
            {"$match": created_between(start, end)},
            {"$bucket": {
                "groupBy": "$feedback_score",
                "boundaries": FEEDBACK_BOUNDARIES,
                "default": "excellent",
                "output": {"count": {"$sum": 1}},
            }},
        ]
        cursor = self.feedback.aggregate(pipeline)
        return await cursor.to_list(length=None)
