import pytest
from unittest.mock import AsyncMock

from jobmatch.models.models import CandidateProfile, JobPosting, MatchResult
from jobmatch.services.matching import (
    MatchScorer,
    combine_scores,
    education_match,
    experience_match,
    location_match,
    parse_semantic_score,
    round_half_up,
    semantic_match,
    skills_match,
)


@pytest.fixture
def mumbai_job():
    return JobPosting(
        id="job-1",
        title="Backend Developer",
        description="Build Node.js services",
        skills_required=["JavaScript", "Node.js"],
        experience_min=1,
        experience_max=3,
        location="Mumbai, Maharashtra",
    )


@pytest.fixture
def mumbai_candidate():
    return CandidateProfile(
        id="seeker-1",
        skills=["javascript", "react"],
        experience_years=2,
        current_location="Mumbai, Maharashtra",
    )


class TestSkillsMatch:
    """Test cases for skill overlap scoring"""

    def test_no_required_skills_is_full_match(self):
        assert skills_match([], ["python"]) == 100
        assert skills_match([], []) == 100

    def test_no_candidate_skills_is_zero(self):
        assert skills_match(["python"], []) == 0
        assert skills_match(["python", "sql"], None) == 0

    def test_exact_match_is_case_insensitive(self):
        assert skills_match(["Python", "SQL"], ["python", " sql "]) == 100

    def test_partial_substring_match_counts_half(self):
        # "java" is a substring of "javascript"
        assert skills_match(["java"], ["javascript"]) == 50
        assert skills_match(["javascript"], ["java"]) == 50

    def test_unmatched_required_skill_counts_zero(self):
        assert skills_match(["JavaScript", "Node.js"], ["javascript", "react"]) == 50


class TestExperienceMatch:
    """Test cases for experience range scoring"""

    def test_inclusive_bounds(self):
        assert experience_match(3, 3, 5) == 100
        assert experience_match(5, 3, 5) == 100

    def test_under_minimum_penalty(self):
        assert experience_match(1, 3, 5) == 70
        assert experience_match(0, 10, 12) == 0

    def test_over_maximum_penalty_with_floor(self):
        assert experience_match(9, 3, 5) == 80
        assert experience_match(30, 3, 5) == 50

    def test_missing_bounds(self):
        assert experience_match(0, None, None) == 100
        assert experience_match(40, 2, None) == 100
        assert experience_match(None, 2, 4) == 70


class TestLocationMatch:
    """Test cases for location scoring"""

    def test_no_job_location(self):
        assert location_match(None, "Berlin") == 100
        assert location_match("", None) == 100

    def test_exact_location(self):
        assert location_match("Mumbai, Maharashtra", "Mumbai, Maharashtra") == 100

    def test_preferred_location(self):
        assert location_match("Pune", "Berlin", ["Delhi", "Pune, Maharashtra"]) == 90

    def test_shared_location_part(self):
        assert location_match("Pune, Maharashtra", "Mumbai, Maharashtra") == 70

    def test_unrelated_location(self):
        assert location_match("Berlin", "Mumbai") == 30
        assert location_match("Berlin", None, []) == 30


class TestEducationMatch:
    def test_no_requirement(self):
        assert education_match(None) == 100
        assert education_match("  ") == 100

    def test_requirement_is_neutral(self):
        assert education_match("bachelors") == 75


class TestSemanticScore:
    """Test cases for parsing and degrading the model-derived score"""

    def test_first_number_is_used(self):
        assert parse_semantic_score("85") == 85
        assert parse_semantic_score("Score: 72 out of 100") == 72

    def test_fraction_rounds_half_up(self):
        assert parse_semantic_score("72.5") == 73

    def test_unparsable_defaults_to_50(self):
        assert parse_semantic_score("a strong fit") == 50
        assert parse_semantic_score("") == 50

    def test_out_of_range_defaults_to_50(self):
        assert parse_semantic_score("150") == 50
        assert parse_semantic_score("-5") == 50

    def test_backend_failure_defaults_to_50(self, stub_backend, mumbai_job, mumbai_candidate):
        backend = stub_backend(RuntimeError("model offline"))
        assert semantic_match(mumbai_job, mumbai_candidate, backend) == 50

    def test_backend_request_settings(self, stub_backend, mumbai_job, mumbai_candidate):
        backend = stub_backend("64")
        assert semantic_match(mumbai_job, mumbai_candidate, backend) == 64
        call = backend.calls[0]
        assert call["temperature"] == 0.1
        assert call["max_tokens"] == 10
        assert "Backend Developer" in call["prompt"]


class TestCombineScores:
    def test_round_half_up(self):
        assert round_half_up(72.5) == 73
        assert round_half_up(72.4) == 72
        assert round_half_up(0.5) == 1

    def test_weighted_total(self):
        result = combine_scores(50, 100, 50, 100, 100)
        assert result.total_score == 73
        assert result.weights.skills == 0.35

    @pytest.mark.parametrize("components", [
        (0, 0, 0, 0, 0),
        (100, 100, 100, 100, 100),
        (33.3, 66.6, 12, 99.9, 0.4),
    ])
    def test_total_is_bounded_integer(self, components):
        result = combine_scores(*components)
        assert isinstance(result.total_score, int)
        assert 0 <= result.total_score <= 100


class TestMatchScorer:
    """Test cases for the async scorer and its analytics record"""

    @pytest.mark.asyncio
    async def test_end_to_end_score(self, stub_backend, mumbai_job, mumbai_candidate):
        scorer = MatchScorer(stub_backend("50"))

        result = await scorer.score(mumbai_job, mumbai_candidate)

        assert result.skills_match == 50
        assert result.experience_match == 100
        assert result.location_match == 100
        assert result.semantic_match == 50
        assert result.education_match == 100
        assert result.total_score == 73

    @pytest.mark.asyncio
    async def test_repeated_scoring_is_identical(self, stub_backend, mumbai_job, mumbai_candidate):
        scorer = MatchScorer(stub_backend("50"))

        first = await scorer.score(mumbai_job, mumbai_candidate)
        second = await scorer.score(mumbai_job, mumbai_candidate)

        assert first == second

    @pytest.mark.asyncio
    async def test_analytics_record_is_appended(self, stub_backend, mumbai_job, mumbai_candidate):
        sink = AsyncMock()
        sink.append_training_record = AsyncMock(return_value="rec-1")
        scorer = MatchScorer(stub_backend("50"), sink)

        result, record_id = await scorer.score_with_record(mumbai_job, mumbai_candidate)

        assert record_id == "rec-1"
        data_type, input_data, output_data = sink.append_training_record.await_args.args
        assert data_type == "job_match_score"
        assert input_data == {"job_id": "job-1", "job_seeker_profile_id": "seeker-1"}
        assert output_data["total_score"] == result.total_score

    @pytest.mark.asyncio
    async def test_analytics_failure_does_not_fail_scoring(self, stub_backend, mumbai_job, mumbai_candidate):
        sink = AsyncMock()
        sink.append_training_record = AsyncMock(side_effect=RuntimeError("mongo down"))
        scorer = MatchScorer(stub_backend("50"), sink)

        result, record_id = await scorer.score_with_record(mumbai_job, mumbai_candidate)

        assert isinstance(result, MatchResult)
        assert result.total_score == 73
        assert record_id is None

    @pytest.mark.asyncio
    async def test_semantic_failure_degrades(self, stub_backend, mumbai_job, mumbai_candidate):
        scorer = MatchScorer(stub_backend("not a number"))

        result = await scorer.score(mumbai_job, mumbai_candidate)

        assert result.semantic_match == 50
        assert result.total_score == 73
