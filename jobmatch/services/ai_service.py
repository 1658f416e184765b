"""
AI matching service: the operations the REST layer exposes
"""
import asyncio
from datetime import datetime, timedelta
from functools import lru_cache
from typing import List, Optional, Tuple

from jobmatch.config import get_settings
from jobmatch.helpers.parsing import supported_extension, extract_text
from jobmatch.helpers.prompts import ResumeAnalysisRequest, SearchSuggestionRequest, complete_request
from jobmatch.models.models import FeedbackAck, MatchResult, RankedRecommendation, StructuredProfile
from jobmatch.models.response import (
    ResumeAnalysis, SearchSuggestions, SkillSuggestion, TrainingStats,
)
from jobmatch.services import insights
from jobmatch.services.feedback import FeedbackStore
from jobmatch.services.graph import run_resume_pipeline
from jobmatch.services.matching import MatchScorer
from jobmatch.services.ranking import RecommendationRanker
from jobmatch.services.resume_structurer import ExternalResumeParser
from jobmatch.services.store import AnalyticsSink, ProfileStore
from jobmatch.utils.exceptions import MissingRequiredField
from jobmatch.utils.llm import OllamaBackend, TextGenerationBackend, safe_json
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_SEARCH_SUGGESTIONS = SearchSuggestions(
    keywords=["software engineer", "developer", "programmer"],
    job_titles=["Software Engineer", "Full Stack Developer", "Backend Developer"],
)

DEFAULT_RESUME_ANALYSIS = ResumeAnalysis(
    score=70,
    strengths=["Clear format", "Relevant experience"],
    weaknesses=["Missing keywords", "Lacks metrics"],
    suggestions=["Add quantifiable achievements", "Include industry keywords"],
)

SKILL_TREND_WINDOW = timedelta(days=90)


class AIMatchingService:
    def __init__(
        self,
        store: ProfileStore,
        analytics: AnalyticsSink,
        feedback: FeedbackStore,
        backend: TextGenerationBackend,
        external_parser: Optional[ExternalResumeParser] = None,
        ranker: Optional[RecommendationRanker] = None,
    ):
        self.store = store
        self.analytics = analytics
        self.feedback = feedback
        self.backend = backend
        self.external_parser = external_parser
        self.scorer = MatchScorer(backend, analytics)
        self.ranker = ranker or RecommendationRanker(store, self.scorer)

    # ---------- Résumés ----------
    async def parse_resume(
        self,
        file_bytes: bytes,
        filename: str,
        update_profile: bool = False,
        candidate_id: Optional[str] = None,
    ) -> StructuredProfile:
        supported_extension(filename)
        if update_profile and not candidate_id:
            raise MissingRequiredField("candidate_id is required to update the profile", field="candidate_id")

        loop = asyncio.get_running_loop()
        profile = await loop.run_in_executor(
            None, run_resume_pipeline, file_bytes, filename, self.backend, self.external_parser
        )

        if update_profile:
            await self.store.save_structured_profile(candidate_id, profile)
        logger.info(f"Resume {filename} parsed (profile updated: {update_profile})")
        return profile

    async def analyze_resume(
        self, resume_text: Optional[str] = None, file_bytes: Optional[bytes] = None, filename: Optional[str] = None
    ) -> ResumeAnalysis:
        if file_bytes is not None:
            loop = asyncio.get_running_loop()
            resume_text = await loop.run_in_executor(None, extract_text, file_bytes, filename)
        if not resume_text:
            raise MissingRequiredField("Resume file or text is required", field="resume")

        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(
                None, complete_request, self.backend, ResumeAnalysisRequest(resume_text=resume_text)
            )
            data = safe_json(response, fallback=None)
            if data is None:
                raise ValueError("analysis response is not a JSON object")
            return ResumeAnalysis(**data)
        except Exception as e:
            logger.warning(f"Resume analysis failed, returning default analysis: {e}")
            return DEFAULT_RESUME_ANALYSIS.model_copy(deep=True)

    # ---------- Matching ----------
    async def compute_match_score(self, job_id, candidate_id) -> Tuple[MatchResult, Optional[str]]:
        if not job_id or not candidate_id:
            raise MissingRequiredField("job_id and job_seeker_profile_id are required")
        job = await self.store.get_job_posting(job_id)
        candidate = await self.store.get_candidate_profile(candidate_id)
        return await self.scorer.score_with_record(job, candidate)

    async def get_job_recommendations(
        self, candidate_id, limit: Optional[int] = None, min_score: Optional[int] = None
    ) -> List[RankedRecommendation]:
        settings = get_settings()
        return await self.ranker.rank_jobs_for_candidate(
            candidate_id,
            limit=settings.default_limit if limit is None else limit,
            min_score=settings.default_min_score if min_score is None else min_score,
        )

    async def get_candidate_recommendations(
        self, job_id, limit: Optional[int] = None, min_score: Optional[int] = None
    ) -> List[RankedRecommendation]:
        settings = get_settings()
        return await self.ranker.rank_candidates_for_job(
            job_id,
            limit=settings.default_limit if limit is None else limit,
            min_score=settings.default_min_score if min_score is None else min_score,
        )

    async def record_match_feedback(self, match_id, feedback_score, comments: Optional[str] = None) -> FeedbackAck:
        return await self.feedback.record_feedback(match_id, feedback_score, comments)

    # ---------- Career guidance ----------
    async def generate_search_suggestions(self, candidate_id) -> SearchSuggestions:
        candidate = await self.store.get_candidate_profile(candidate_id)
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(
                None, complete_request, self.backend, SearchSuggestionRequest(candidate=candidate)
            )
            data = safe_json(response, fallback=None)
            if data is None:
                raise ValueError("suggestion response is not a JSON object")
            return SearchSuggestions(**data)
        except Exception as e:
            logger.warning(f"Job search suggestions failed, returning defaults: {e}")
            return DEFAULT_SEARCH_SUGGESTIONS.model_copy(deep=True)

    async def training_stats(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> TrainingStats:
        total, type_counts, buckets = await asyncio.gather(
            self.analytics.count_records(start, end),
            self.analytics.type_counts(start, end),
            self.feedback.score_distribution(start, end),
        )
        return insights.training_stats(type_counts, total, buckets, start, end)

    async def skill_suggestions(self, current_skills: List[str]) -> List[SkillSuggestion]:
        jobs = await self.store.jobs_posted_since(datetime.utcnow() - SKILL_TREND_WINDOW)
        return insights.skill_suggestions(jobs, current_skills)


@lru_cache()
def get_ai_service() -> AIMatchingService:
    """Process-wide service wired to Mongo and Ollama"""
    return AIMatchingService(
        store=ProfileStore(),
        analytics=AnalyticsSink(),
        feedback=FeedbackStore(),
        backend=OllamaBackend(),
        external_parser=ExternalResumeParser(),
    )
