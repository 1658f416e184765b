"""
Job/candidate match scoring.

Four deterministic sub-scores (skills, experience, location, education) and
one model-derived semantic score, combined with fixed weights into a 0-100
total.
"""
import asyncio
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from jobmatch.helpers.prompts import SemanticMatchRequest, complete_request
from jobmatch.models.models import CandidateProfile, JobPosting, MatchResult, MatchWeights
from jobmatch.utils.llm import TextGenerationBackend
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

WEIGHTS = MatchWeights()

EXACT_SKILL_WEIGHT = 1.0
PARTIAL_SKILL_WEIGHT = 0.5

UNDER_EXPERIENCE_PENALTY = 15   # points per year short
OVER_EXPERIENCE_PENALTY = 5     # points per year over
OVER_EXPERIENCE_FLOOR = 50
DEFAULT_EXPERIENCE_MAX = 100

LOCATION_EXACT = 100
LOCATION_PREFERRED = 90
LOCATION_SHARED_PART = 70
LOCATION_OTHER = 30

EDUCATION_NEUTRAL = 75
SEMANTIC_DEFAULT = 50

TRAINING_RECORD_TYPE = "job_match_score"

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _normalize(skills: Iterable[str]) -> List[str]:
    return [s.lower().strip() for s in skills if isinstance(s, str) and s.strip()]


def skills_match(job_skills: List[str], candidate_skills: List[str]) -> float:
    """Exact matches count 1.0, substring matches either way count 0.5.

    Substring matching lets "java" partially satisfy "javascript"; kept as is.
    """
    required = _normalize(job_skills or [])
    if not required:
        return 100.0
    have = _normalize(candidate_skills or [])
    if not have:
        return 0.0

    have_set = set(have)
    matched = 0.0
    for skill in required:
        if skill in have_set:
            matched += EXACT_SKILL_WEIGHT
        elif any(skill in h or h in skill for h in have):
            matched += PARTIAL_SKILL_WEIGHT

    return min(100.0, (matched / len(required)) * 100)


def experience_match(
    candidate_years: Optional[float],
    experience_min: Optional[float],
    experience_max: Optional[float],
) -> float:
    years = candidate_years or 0
    low = experience_min if experience_min is not None else 0
    high = experience_max if experience_max is not None else DEFAULT_EXPERIENCE_MAX

    if low <= years <= high:
        return 100.0
    if years < low:
        return float(max(0, 100 - (low - years) * UNDER_EXPERIENCE_PENALTY))
    return float(max(OVER_EXPERIENCE_FLOOR, 100 - (years - high) * OVER_EXPERIENCE_PENALTY))


def _location_parts(location: str) -> List[str]:
    return [p.strip() for p in location.lower().split(",") if p.strip()]


def location_match(
    job_location: Optional[str],
    current_location: Optional[str],
    preferred_locations: Optional[List[str]] = None,
) -> float:
    wanted = (job_location or "").lower().strip()
    if not wanted:
        return 100.0

    current = (current_location or "").lower()
    if current and wanted in current:
        return float(LOCATION_EXACT)

    for loc in preferred_locations or []:
        if isinstance(loc, str) and wanted in loc.lower():
            return float(LOCATION_PREFERRED)

    if current:
        job_parts = _location_parts(wanted)
        cand_parts = _location_parts(current)
        if any(j in c or c in j for j in job_parts for c in cand_parts):
            return float(LOCATION_SHARED_PART)

    return float(LOCATION_OTHER)


def education_match(education_level: Optional[str]) -> float:
    # TODO: compare required level against the candidate's education entries
    # once structured degree data is stored on CandidateProfile.
    if not (education_level or "").strip():
        return 100.0
    return float(EDUCATION_NEUTRAL)


def parse_semantic_score(response: str) -> int:
    """First number in the response if within [0, 100], else the neutral default."""
    found = _NUMBER_RE.search(response or "")
    if not found:
        logger.warning(f"Semantic score unparsable, using default {SEMANTIC_DEFAULT}: {response!r}")
        return SEMANTIC_DEFAULT
    value = float(found.group(0))
    if not 0 <= value <= 100:
        logger.warning(f"Semantic score {value} out of range, using default {SEMANTIC_DEFAULT}")
        return SEMANTIC_DEFAULT
    return round_half_up(value)


def semantic_match(job: JobPosting, candidate: CandidateProfile, backend: TextGenerationBackend) -> int:
    try:
        response = complete_request(backend, SemanticMatchRequest(job=job, candidate=candidate))
    except Exception as e:
        logger.warning(f"Semantic match calculation failed, using default {SEMANTIC_DEFAULT}: {e}")
        return SEMANTIC_DEFAULT
    return parse_semantic_score(response)


def combine_scores(
    skills: float,
    experience: float,
    semantic: float,
    location: float,
    education: float,
    weights: MatchWeights = WEIGHTS,
) -> MatchResult:
    components = {
        "skills_match": round_half_up(skills),
        "experience_match": round_half_up(experience),
        "semantic_match": round_half_up(semantic),
        "location_match": round_half_up(location),
        "education_match": round_half_up(education),
    }
    total = (
        Decimal(components["skills_match"]) * Decimal(str(weights.skills))
        + Decimal(components["experience_match"]) * Decimal(str(weights.experience))
        + Decimal(components["semantic_match"]) * Decimal(str(weights.semantic))
        + Decimal(components["location_match"]) * Decimal(str(weights.location))
        + Decimal(components["education_match"]) * Decimal(str(weights.education))
    )
    return MatchResult(total_score=round_half_up(total), weights=weights, **components)


def _deterministic_scores(job: JobPosting, candidate: CandidateProfile) -> Tuple[float, float, float, float]:
    """Each sub-scorer falls back to its neutral value instead of failing the whole score."""
    def guarded(name, fn, default):
        try:
            return fn()
        except Exception as e:
            logger.warning(f"{name} scoring failed, using {default}: {e}")
            return default

    return (
        guarded("skills", lambda: skills_match(job.skills_required, candidate.skills), 0.0),
        guarded("experience", lambda: experience_match(
            candidate.experience_years, job.experience_min, job.experience_max), 50.0),
        guarded("location", lambda: location_match(
            job.location, candidate.current_location, candidate.preferred_locations), float(LOCATION_OTHER)),
        guarded("education", lambda: education_match(job.education_level), float(EDUCATION_NEUTRAL)),
    )


class MatchScorer:
    """Scores one job against one candidate and logs the result for training"""

    def __init__(self, backend: TextGenerationBackend, analytics_sink=None):
        self.backend = backend
        self.analytics_sink = analytics_sink

    async def score_with_record(
        self, job: JobPosting, candidate: CandidateProfile
    ) -> Tuple[MatchResult, Optional[str]]:
        skills, experience, location, education = _deterministic_scores(job, candidate)
        loop = asyncio.get_running_loop()
        semantic = await loop.run_in_executor(None, semantic_match, job, candidate, self.backend)
        result = combine_scores(skills, experience, semantic, location, education)
        logger.debug(
            f"Match job={job.id} candidate={candidate.id}: total={result.total_score} "
            f"skills={result.skills_match} exp={result.experience_match} sem={result.semantic_match} "
            f"loc={result.location_match} edu={result.education_match}"
        )
        record_id = await self._store_match_data(job, candidate, result)
        return result, record_id

    async def score(self, job: JobPosting, candidate: CandidateProfile) -> MatchResult:
        result, _ = await self.score_with_record(job, candidate)
        return result

    async def _store_match_data(
        self, job: JobPosting, candidate: CandidateProfile, result: MatchResult
    ) -> Optional[str]:
        if self.analytics_sink is None:
            return None
        try:
            return await self.analytics_sink.append_training_record(
                TRAINING_RECORD_TYPE,
                {"job_id": job.id, "job_seeker_profile_id": candidate.id},
                result.model_dump(),
            )
        except Exception as e:
            logger.warning(f"Failed to store match data for training: {e}")
            return None
