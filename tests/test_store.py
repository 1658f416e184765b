import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId

from jobmatch.models.models import StructuredProfile
from jobmatch.services.store import AnalyticsSink, ProfileStore, created_between, id_filter, to_dict
from jobmatch.utils.exceptions import DatabaseError, EntityNotFound


def cursor_returning(docs):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


@pytest.fixture
def jobs_coll():
    return MagicMock()


@pytest.fixture
def job_seekers_coll():
    return MagicMock()


@pytest.fixture
def store(jobs_coll, job_seekers_coll):
    return ProfileStore(jobs_coll=jobs_coll, job_seekers_coll=job_seekers_coll)


class TestHelpers:
    def test_id_filter_object_id_string(self):
        oid = ObjectId()

        query = id_filter(str(oid))

        assert query == {"_id": {"$in": [oid, str(oid)]}}

    def test_id_filter_plain_ids(self):
        assert id_filter("job-42") == {"_id": "job-42"}
        assert id_filter(42) == {"_id": 42}

    def test_to_dict(self):
        oid, employer = ObjectId(), ObjectId()

        doc = to_dict({"_id": oid, "employer_id": employer, "title": "Engineer"})

        assert doc == {"id": str(oid), "employer_id": str(employer), "title": "Engineer"}
        assert to_dict(None) is None

    def test_created_between(self):
        start, end = datetime(2024, 1, 1), datetime(2024, 2, 1)

        assert created_between(None, None) == {}
        assert created_between(start, None) == {"created_at": {"$gte": start}}
        assert created_between(start, end) == {"created_at": {"$gte": start, "$lte": end}}


class TestProfileStore:
    """Test cases for job and job seeker lookups"""

    @pytest.mark.asyncio
    async def test_get_job_posting(self, store, jobs_coll):
        jobs_coll.find_one = AsyncMock(return_value={
            "_id": 7,
            "title": "Data Engineer",
            "skills_required": None,
            "salary_max": 120000,
        })

        job = await store.get_job_posting("7")

        assert job.id == "7"
        assert job.title == "Data Engineer"
        assert job.skills_required == []

    @pytest.mark.asyncio
    async def test_get_job_posting_not_found(self, store, jobs_coll):
        jobs_coll.find_one = AsyncMock(return_value=None)

        with pytest.raises(EntityNotFound) as exc_info:
            await store.get_job_posting("missing")

        assert exc_info.value.details == {"entity_type": "job", "entity_id": "missing"}

    @pytest.mark.asyncio
    async def test_get_candidate_profile_fills_nulls(self, store, job_seekers_coll):
        job_seekers_coll.find_one = AsyncMock(return_value={
            "_id": "seeker-1",
            "skills": None,
            "experience_years": None,
            "preferred_locations": None,
            "current_location": "Pune",
        })

        candidate = await store.get_candidate_profile("seeker-1")

        assert candidate.skills == []
        assert candidate.experience_years == 0
        assert candidate.preferred_locations == []

    @pytest.mark.asyncio
    async def test_recent_jobs_query(self, store, jobs_coll):
        cursor = cursor_returning([{"_id": "j1", "title": "A"}])
        jobs_coll.find = MagicMock(return_value=cursor)

        jobs = await store.recent_jobs(25)

        assert jobs == [{"id": "j1", "title": "A"}]
        query = jobs_coll.find.call_args.args[0]
        assert query["status"] == "active"
        assert query["deleted_at"] is None
        assert {"expires_at": None} in query["$or"]
        cursor.sort.assert_called_once_with("posted_at", -1)
        cursor.limit.assert_called_once_with(25)

    @pytest.mark.asyncio
    async def test_active_candidates_query(self, store, job_seekers_coll):
        cursor = cursor_returning([])
        job_seekers_coll.find = MagicMock(return_value=cursor)

        await store.active_candidates(10)

        query = job_seekers_coll.find.call_args.args[0]
        assert query == {"availability_status": {"$in": ["actively_looking", "open_to_opportunities"]}}
        cursor.sort.assert_called_once_with("updated_at", -1)

    @pytest.mark.asyncio
    async def test_save_structured_profile(self, store, job_seekers_coll):
        job_seekers_coll.update_one = AsyncMock(return_value=MagicMock(matched_count=1))
        profile = StructuredProfile(
            personal_info={"name": "Jane Doe"},
            summary="Backend engineer",
            skills={"technical": ["Python"], "soft": ["Mentoring"]},
        )

        await store.save_structured_profile("seeker-1", profile)

        query, update = job_seekers_coll.update_one.await_args.args
        assert query == {"_id": "seeker-1"}
        fields = update["$set"]
        assert fields["resume_parsed_data"]["education"] == []
        assert fields["summary"] == "Backend engineer"
        assert fields["headline"] == "Jane Doe"
        assert fields["skills"] == ["Python", "Mentoring"]
        assert "updated_at" in fields

    @pytest.mark.asyncio
    async def test_save_structured_profile_keeps_existing_fields_when_empty(self, store, job_seekers_coll):
        job_seekers_coll.update_one = AsyncMock(return_value=MagicMock(matched_count=1))

        await store.save_structured_profile("seeker-1", StructuredProfile())

        fields = job_seekers_coll.update_one.await_args.args[1]["$set"]
        assert "summary" not in fields
        assert "skills" not in fields

    @pytest.mark.asyncio
    async def test_save_structured_profile_unknown_candidate(self, store, job_seekers_coll):
        job_seekers_coll.update_one = AsyncMock(return_value=MagicMock(matched_count=0))

        with pytest.raises(EntityNotFound):
            await store.save_structured_profile("missing", StructuredProfile())

    @pytest.mark.asyncio
    async def test_save_structured_profile_database_error(self, store, job_seekers_coll):
        job_seekers_coll.update_one = AsyncMock(side_effect=Exception("write concern error"))

        with pytest.raises(DatabaseError):
            await store.save_structured_profile("seeker-1", StructuredProfile())


class TestAnalyticsSink:
    """Test cases for the training-data log"""

    @pytest.mark.asyncio
    async def test_append_training_record(self):
        coll = MagicMock()
        coll.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId("65a000000000000000000001")))
        sink = AnalyticsSink(training_coll=coll)

        record_id = await sink.append_training_record("job_match_score", {"job_id": "j1"}, {"total_score": 80})

        assert record_id == "65a000000000000000000001"
        stored = coll.insert_one.await_args.args[0]
        assert stored["data_type"] == "job_match_score"
        assert stored["input_data"] == {"job_id": "j1"}
        assert stored["output_data"] == {"total_score": 80}

    @pytest.mark.asyncio
    async def test_append_failure_is_swallowed(self):
        coll = MagicMock()
        coll.insert_one = AsyncMock(side_effect=Exception("disk full"))
        sink = AnalyticsSink(training_coll=coll)

        assert await sink.append_training_record("job_match_score", {}, {}) is None

    @pytest.mark.asyncio
    async def test_count_records_runs_on_server(self):
        coll = MagicMock()
        coll.count_documents = AsyncMock(return_value=12)
        sink = AnalyticsSink(training_coll=coll)
        start = datetime(2024, 1, 1)

        assert await sink.count_records(start, None) == 12
        coll.count_documents.assert_awaited_once_with({"created_at": {"$gte": start}})
        coll.find.assert_not_called()

    @pytest.mark.asyncio
    async def test_type_counts_groups_by_data_type(self):
        coll = MagicMock()
        cursor = cursor_returning([
            {"_id": "job_match_score", "count": 9},
            {"_id": "resume_parse", "count": 3},
        ])
        coll.aggregate = MagicMock(return_value=cursor)
        sink = AnalyticsSink(training_coll=coll)

        counts = await sink.type_counts(None, None)

        assert counts == [
            {"data_type": "job_match_score", "count": 9},
            {"data_type": "resume_parse", "count": 3},
        ]
        pipeline = coll.aggregate.call_args.args[0]
        assert pipeline[0] == {"$match": {}}
        assert pipeline[1] == {"$group": {"_id": "$data_type", "count": {"$sum": 1}}}
        assert pipeline[2]["$sort"]["count"] == -1
        coll.find.assert_not_called()
