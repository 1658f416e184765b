"""
Recommendation ranking: score a bounded pool against one pivot entity
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from jobmatch.config import get_settings
from jobmatch.models.models import CandidateProfile, JobPosting, MatchResult, RankedRecommendation
from jobmatch.services.matching import MatchScorer
from jobmatch.utils.logging_config import get_logger, PerformanceMonitor

logger = get_logger(__name__)


class RecommendationRanker:
    def __init__(
        self,
        store,
        scorer: MatchScorer,
        pool_size: int = None,
        max_concurrent: int = None,
    ):
        settings = get_settings()
        self.store = store
        self.scorer = scorer
        self.pool_size = pool_size or settings.recommendation_pool_size
        self.max_concurrent = max_concurrent or settings.max_concurrent_scoring

    async def rank_jobs_for_candidate(self, candidate_id, limit: int, min_score: int) -> List[RankedRecommendation]:
        candidate = await self.store.get_candidate_profile(candidate_id)
        pool = await self.store.recent_jobs(self.pool_size)
        logger.info(f"Ranking {len(pool)} jobs for candidate {candidate_id}")

        async def score_member(doc):
            return await self.scorer.score(JobPosting(**doc), candidate)

        with PerformanceMonitor(f"rank_jobs_for_candidate[{candidate_id}]", logger, threshold_ms=10000):
            return await self._rank(pool, score_member, limit, min_score, "job")

    async def rank_candidates_for_job(self, job_id, limit: int, min_score: int) -> List[RankedRecommendation]:
        job = await self.store.get_job_posting(job_id)
        pool = await self.store.active_candidates(self.pool_size)
        logger.info(f"Ranking {len(pool)} candidates for job {job_id}")

        async def score_member(doc):
            return await self.scorer.score(job, CandidateProfile(**doc))

        with PerformanceMonitor(f"rank_candidates_for_job[{job_id}]", logger, threshold_ms=10000):
            return await self._rank(pool, score_member, limit, min_score, "candidate")

    async def _rank(
        self,
        pool: List[Dict[str, Any]],
        score_member: Callable[[Dict[str, Any]], Awaitable[MatchResult]],
        limit: int,
        min_score: int,
        kind: str,
    ) -> List[RankedRecommendation]:
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def guarded(doc) -> Optional[MatchResult]:
            async with semaphore:
                try:
                    return await score_member(doc)
                except Exception as e:
                    logger.warning(f"Failed to calculate match for {kind} {doc.get('id')}: {e}")
                    return None

        # gather preserves pool order, so the stable sort below keeps ties in pool order
        results = await asyncio.gather(*(guarded(doc) for doc in pool))

        recommendations = [
            RankedRecommendation(entity=doc, match_score=result.total_score, match_details=result)
            for doc, result in zip(pool, results)
            if result is not None and result.total_score >= min_score
        ]
        recommendations.sort(key=lambda r: r.match_score, reverse=True)
        return recommendations[:max(limit, 0)]
