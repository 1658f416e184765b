"""
Mongo-backed profile store and training-data sink
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId

from jobmatch.models.models import CandidateProfile, JobPosting, StructuredProfile, TrainingRecord
from jobmatch.utils.exceptions import DatabaseError, EntityNotFound
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

ACTIVE_AVAILABILITY = ["actively_looking", "open_to_opportunities"]


def id_filter(entity_id: Any) -> Dict[str, Any]:
    """Match either an ObjectId or a plain string/int primary key."""
    if isinstance(entity_id, str):
        try:
            return {"_id": {"$in": [ObjectId(entity_id), entity_id]}}
        except (InvalidId, TypeError):
            pass
    return {"_id": entity_id}


def created_between(start: Optional[datetime], end: Optional[datetime]) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if start or end:
        query["created_at"] = {}
        if start:
            query["created_at"]["$gte"] = start
        if end:
            query["created_at"]["$lte"] = end
    return query


def to_dict(doc):
    if not doc:
        return None
    doc = {k: str(v) if isinstance(v, ObjectId) else v for k, v in doc.items()}
    doc["id"] = str(doc.pop("_id"))
    return doc


class ProfileStore:
    """Read access to jobs and job seekers; write access to parsed résumés"""

    def __init__(self, jobs_coll=None, job_seekers_coll=None):
        if jobs_coll is None or job_seekers_coll is None:
            from jobmatch.services import db
            jobs_coll = jobs_coll if jobs_coll is not None else db.jobs_coll
            job_seekers_coll = job_seekers_coll if job_seekers_coll is not None else db.job_seekers_coll
        self.jobs = jobs_coll
        self.job_seekers = job_seekers_coll

    async def get_job_document(self, job_id) -> Dict[str, Any]:
        doc = await self.jobs.find_one(id_filter(job_id))
        if not doc:
            raise EntityNotFound("Job not found", entity_type="job", entity_id=job_id)
        return to_dict(doc)

    async def get_candidate_document(self, candidate_id) -> Dict[str, Any]:
        doc = await self.job_seekers.find_one(id_filter(candidate_id))
        if not doc:
            raise EntityNotFound("Job seeker profile not found", entity_type="candidate", entity_id=candidate_id)
        return to_dict(doc)

    async def get_job_posting(self, job_id) -> JobPosting:
        return JobPosting(**await self.get_job_document(job_id))

    async def get_candidate_profile(self, candidate_id) -> CandidateProfile:
        return CandidateProfile(**await self.get_candidate_document(candidate_id))

    async def recent_jobs(self, limit: int) -> List[Dict[str, Any]]:
        now = datetime.utcnow()
        cursor = self.jobs.find({
            "status": "active",
            "deleted_at": None,
            "$or": [{"expires_at": None}, {"expires_at": {"$gt": now}}],
        }).sort("posted_at", -1).limit(limit)
        return [to_dict(d) for d in await cursor.to_list(length=limit)]

    async def active_candidates(self, limit: int) -> List[Dict[str, Any]]:
        cursor = self.job_seekers.find({
            "availability_status": {"$in": ACTIVE_AVAILABILITY},
        }).sort("updated_at", -1).limit(limit)
        return [to_dict(d) for d in await cursor.to_list(length=limit)]

    async def jobs_posted_since(self, since: datetime) -> List[Dict[str, Any]]:
        cursor = self.jobs.find(
            {"status": "active", "created_at": {"$gte": since}, "skills_required": {"$ne": None}},
            {"skills_required": 1, "salary_max": 1},
        )
        return [to_dict(d) for d in await cursor.to_list(length=None)]

    async def save_structured_profile(self, candidate_id, profile: StructuredProfile) -> None:
        """Replace the stored parsed résumé; never merged with a previous upload."""
        update: Dict[str, Any] = {
            "resume_parsed_data": profile.model_dump(),
            "updated_at": datetime.utcnow(),
        }
        if profile.summary:
            update["summary"] = profile.summary
        if profile.personal_info.name:
            update["headline"] = profile.personal_info.name
        skills = profile.skills.technical + profile.skills.soft
        if skills:
            update["skills"] = skills

        try:
            result = await self.job_seekers.update_one(id_filter(candidate_id), {"$set": update})
        except Exception as e:
            raise DatabaseError(
                "Failed to save structured profile",
                operation="save_structured_profile",
                collection="job_seekers",
                cause=e,
            ) from e
        if result.matched_count == 0:
            raise EntityNotFound("Job seeker profile not found", entity_type="candidate", entity_id=candidate_id)
        logger.info(f"Saved structured profile for candidate {candidate_id}")


class AnalyticsSink:
    """Append-only training data log; writes never raise"""

    def __init__(self, training_coll=None):
        if training_coll is None:
            from jobmatch.services import db
            training_coll = db.training_data_coll
        self.training = training_coll

    async def append_training_record(
        self, data_type: str, input_data: Dict[str, Any], output_data: Dict[str, Any]
    ) -> Optional[str]:
        record = TrainingRecord(data_type=data_type, input_data=input_data, output_data=output_data)
        try:
            result = await self.training.insert_one(record.model_dump())
        except Exception as e:
            logger.warning(f"Failed to append {data_type} training record: {e}")
            return None
        return str(result.inserted_id)

    async def count_records(self, start: Optional[datetime], end: Optional[datetime]) -> int:
        return await self.training.count_documents(created_between(start, end))

    async def type_counts(self, start: Optional[datetime], end: Optional[datetime]) -> List[Dict[str, Any]]:
        """Record counts per data_type, largest first, computed server-side."""
        pipeline = [
            {"$match": created_between(start, end)},
            {"$group": {"_id": "$data_type", "count": {"$sum": 1}}},
            {"$sort": {"count": -1, "_id": 1}},
        ]
        cursor = self.training.aggregate(pipeline)
        return [{"data_type": d["_id"], "count": d["count"]} for d in await cursor.to_list(length=None)]
