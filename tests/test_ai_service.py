import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from jobmatch.models.models import CandidateProfile, JobPosting
from jobmatch.services.ai_service import AIMatchingService
from jobmatch.utils.exceptions import EntityNotFound, MissingRequiredField, UnsupportedFormat

PROFILE_REPLY = json.dumps({
    "personal_info": {"name": "Jane Doe"},
    "summary": "Backend engineer",
    "skills": {"technical": ["Python"]},
})


@pytest.fixture
def store():
    store = MagicMock()
    store.get_job_posting = AsyncMock(return_value=JobPosting(
        id="job-1",
        title="Backend Developer",
        skills_required=["JavaScript", "Node.js"],
        experience_min=1,
        experience_max=3,
        location="Mumbai, Maharashtra",
    ))
    store.get_candidate_profile = AsyncMock(return_value=CandidateProfile(
        id="seeker-1",
        skills=["javascript", "react"],
        experience_years=2,
        current_location="Mumbai, Maharashtra",
        current_position="Frontend Developer",
    ))
    store.save_structured_profile = AsyncMock()
    store.jobs_posted_since = AsyncMock(return_value=[])
    return store


@pytest.fixture
def analytics():
    analytics = MagicMock()
    analytics.append_training_record = AsyncMock(return_value="rec-1")
    analytics.count_records = AsyncMock(return_value=1)
    analytics.type_counts = AsyncMock(return_value=[{"data_type": "job_match_score", "count": 1}])
    return analytics


@pytest.fixture
def feedback():
    feedback = MagicMock()
    feedback.score_distribution = AsyncMock(return_value=[{"_id": "excellent", "count": 1}])
    return feedback


def make_service(store, analytics, feedback, backend, **kwargs):
    return AIMatchingService(store=store, analytics=analytics, feedback=feedback, backend=backend, **kwargs)


class TestParseResume:
    """Test cases for résumé parsing through the service"""

    @pytest.mark.asyncio
    async def test_parse_without_update(self, store, analytics, feedback, stub_backend):
        service = make_service(store, analytics, feedback, stub_backend(PROFILE_REPLY))

        profile = await service.parse_resume(b"Jane Doe\nPython", "cv.txt")

        assert profile.personal_info.name == "Jane Doe"
        assert profile.education == []
        store.save_structured_profile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_parse_with_update(self, store, analytics, feedback, stub_backend):
        service = make_service(store, analytics, feedback, stub_backend(PROFILE_REPLY))

        profile = await service.parse_resume(b"Jane Doe\nPython", "cv.txt", update_profile=True, candidate_id="seeker-1")

        store.save_structured_profile.assert_awaited_once_with("seeker-1", profile)

    @pytest.mark.asyncio
    async def test_update_requires_candidate(self, store, analytics, feedback, stub_backend):
        backend = stub_backend(PROFILE_REPLY)
        service = make_service(store, analytics, feedback, backend)

        with pytest.raises(MissingRequiredField):
            await service.parse_resume(b"Jane Doe", "cv.txt", update_profile=True)

        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_format_checked_before_external_parser(self, store, analytics, feedback, stub_backend):
        parser = MagicMock()
        parser.enabled = True
        service = make_service(store, analytics, feedback, stub_backend(PROFILE_REPLY), external_parser=parser)

        with pytest.raises(UnsupportedFormat):
            await service.parse_resume(b"\x89PNG", "photo.png")

        parser.parse.assert_not_called()


class TestComputeMatchScore:
    """Test cases for single job/candidate scoring"""

    @pytest.mark.asyncio
    async def test_score_and_match_id(self, store, analytics, feedback, stub_backend):
        service = make_service(store, analytics, feedback, stub_backend("50"))

        result, match_id = await service.compute_match_score("job-1", "seeker-1")

        assert result.total_score == 73
        assert match_id == "rec-1"

    @pytest.mark.asyncio
    async def test_identical_inputs_identical_results(self, store, analytics, feedback, stub_backend):
        service = make_service(store, analytics, feedback, stub_backend("50"))

        first, _ = await service.compute_match_score("job-1", "seeker-1")
        second, _ = await service.compute_match_score("job-1", "seeker-1")

        assert first == second

    @pytest.mark.asyncio
    @pytest.mark.parametrize("job_id,candidate_id", [(None, "seeker-1"), ("job-1", ""), (None, None)])
    async def test_missing_ids(self, store, analytics, feedback, stub_backend, job_id, candidate_id):
        service = make_service(store, analytics, feedback, stub_backend("50"))

        with pytest.raises(MissingRequiredField):
            await service.compute_match_score(job_id, candidate_id)

    @pytest.mark.asyncio
    async def test_unknown_job(self, store, analytics, feedback, stub_backend):
        store.get_job_posting = AsyncMock(side_effect=EntityNotFound("Job not found"))
        service = make_service(store, analytics, feedback, stub_backend("50"))

        with pytest.raises(EntityNotFound):
            await service.compute_match_score("missing", "seeker-1")


class TestRecommendations:
    @pytest.mark.asyncio
    async def test_defaults_from_settings(self, store, analytics, feedback, stub_backend):
        ranker = MagicMock()
        ranker.rank_jobs_for_candidate = AsyncMock(return_value=[])
        ranker.rank_candidates_for_job = AsyncMock(return_value=[])
        service = make_service(store, analytics, feedback, stub_backend("50"), ranker=ranker)

        await service.get_job_recommendations("seeker-1")
        await service.get_candidate_recommendations("job-1", limit=3, min_score=0)

        ranker.rank_jobs_for_candidate.assert_awaited_once_with("seeker-1", limit=10, min_score=60)
        ranker.rank_candidates_for_job.assert_awaited_once_with("job-1", limit=3, min_score=0)


class TestCareerGuidance:
    """Test cases for suggestions and résumé analysis"""

    @pytest.mark.asyncio
    async def test_search_suggestions(self, store, analytics, feedback, stub_backend):
        reply = json.dumps({"keywords": ["react", "frontend"], "job_titles": ["UI Engineer"]})
        service = make_service(store, analytics, feedback, stub_backend(reply))

        suggestions = await service.generate_search_suggestions("seeker-1")

        assert suggestions.keywords == ["react", "frontend"]
        assert suggestions.job_titles == ["UI Engineer"]

    @pytest.mark.asyncio
    async def test_search_suggestions_fallback(self, store, analytics, feedback, stub_backend):
        service = make_service(store, analytics, feedback, stub_backend("I would suggest React roles"))

        suggestions = await service.generate_search_suggestions("seeker-1")

        assert "Software Engineer" in suggestions.job_titles

    @pytest.mark.asyncio
    async def test_analyze_resume_text(self, store, analytics, feedback, stub_backend):
        reply = json.dumps({"score": 82, "strengths": ["Metrics"], "weaknesses": [], "suggestions": ["Add links"]})
        service = make_service(store, analytics, feedback, stub_backend(reply))

        analysis = await service.analyze_resume(resume_text="Jane Doe, Python engineer")

        assert analysis.score == 82
        assert analysis.suggestions == ["Add links"]

    @pytest.mark.asyncio
    async def test_analyze_resume_fallback_on_backend_failure(self, store, analytics, feedback, stub_backend):
        service = make_service(store, analytics, feedback, stub_backend(RuntimeError("offline")))

        analysis = await service.analyze_resume(file_bytes=b"Jane Doe", filename="cv.txt")

        assert analysis.score == 70
        assert analysis.strengths

    @pytest.mark.asyncio
    async def test_analyze_resume_requires_input(self, store, analytics, feedback, stub_backend):
        service = make_service(store, analytics, feedback, stub_backend("{}"))

        with pytest.raises(MissingRequiredField):
            await service.analyze_resume()

    @pytest.mark.asyncio
    async def test_training_stats(self, store, analytics, feedback, stub_backend):
        service = make_service(store, analytics, feedback, stub_backend("{}"))

        stats = await service.training_stats()

        assert stats.total == 1
        assert stats.feedback_distribution == [{"score_range": "excellent", "count": 1}]
        assert stats.by_type == [{"data_type": "job_match_score", "count": 1}]
        analytics.count_records.assert_awaited_once_with(None, None)
        feedback.score_distribution.assert_awaited_once_with(None, None)

    @pytest.mark.asyncio
    async def test_skill_suggestions_window(self, store, analytics, feedback, stub_backend):
        service = make_service(store, analytics, feedback, stub_backend("{}"))

        with patch("jobmatch.services.ai_service.insights.skill_suggestions", return_value=[]) as mock_suggest:
            await service.skill_suggestions(["python"])

        since = store.jobs_posted_since.await_args.args[0]
        assert since is not None
        mock_suggest.assert_called_once_with([], ["python"])
