from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile

from jobmatch.config import get_settings
from jobmatch.models.models import FeedbackAck
from jobmatch.models.response import (
    FeedbackRequest, MatchScoreRequest, MatchScoreResponse, ParseResumeResponse,
    RecommendationParameters, RecommendationsResponse, ResumeAnalysisResponse,
    SearchSuggestionsResponse, SkillSuggestionsResponse, TrainingStats,
)
from jobmatch.services.ai_service import AIMatchingService, get_ai_service
from jobmatch.utils.logging_config import get_logger

router = APIRouter(prefix="/ai", tags=["ai"])
logger = get_logger(__name__)


async def _read_upload(upload: UploadFile) -> bytes:
    data = await upload.read()
    limit = get_settings().max_upload_bytes
    if len(data) > limit:
        raise HTTPException(status_code=413, detail=f"Resume file exceeds {limit} bytes")
    return data


@router.post("/parse-resume", response_model=ParseResumeResponse)
async def parse_resume(
    request: Request,
    resume: Optional[UploadFile] = File(None),
    update_profile: bool = Form(False),
    candidate_id: Optional[str] = Form(None),
    service: AIMatchingService = Depends(get_ai_service),
):
    """Parse an uploaded résumé into a structured profile"""
    if resume is None:
        raise HTTPException(status_code=400, detail="Resume file is required")

    data = await _read_upload(resume)
    profile = await service.parse_resume(data, resume.filename, update_profile, candidate_id)

    logger.info(
        f"Resume parsed successfully: {resume.filename}",
        extra={"request_id": getattr(request.state, "request_id", "unknown")},
    )
    return ParseResumeResponse(profile_updated=update_profile, data=profile)


@router.get("/job-recommendations", response_model=RecommendationsResponse)
async def job_recommendations(
    candidate_id: str = Query(..., description="Job seeker profile id"),
    limit: int = Query(10, ge=1, le=100),
    min_score: int = Query(60, ge=0, le=101),
    service: AIMatchingService = Depends(get_ai_service),
):
    """Rank recent active jobs for a job seeker"""
    recommendations = await service.get_job_recommendations(candidate_id, limit=limit, min_score=min_score)
    return RecommendationsResponse(
        candidate_id=candidate_id,
        recommendations=recommendations,
        total=len(recommendations),
        parameters=RecommendationParameters(limit=limit, min_score=min_score),
    )


@router.get("/candidate-recommendations/{job_id}", response_model=RecommendationsResponse)
async def candidate_recommendations(
    job_id: str,
    limit: int = Query(10, ge=1, le=100),
    min_score: int = Query(60, ge=0, le=101),
    service: AIMatchingService = Depends(get_ai_service),
):
    """Rank recently active job seekers for a job"""
    recommendations = await service.get_candidate_recommendations(job_id, limit=limit, min_score=min_score)
    return RecommendationsResponse(
        job_id=job_id,
        recommendations=recommendations,
        total=len(recommendations),
        parameters=RecommendationParameters(limit=limit, min_score=min_score),
    )


@router.post("/match-score", response_model=MatchScoreResponse)
async def match_score(payload: MatchScoreRequest, service: AIMatchingService = Depends(get_ai_service)):
    """Score a single job against a single job seeker"""
    result, match_id = await service.compute_match_score(payload.job_id, payload.job_seeker_profile_id)
    return MatchScoreResponse(
        job_id=payload.job_id,
        job_seeker_profile_id=payload.job_seeker_profile_id,
        match_id=match_id,
        match_score=result,
    )


@router.post("/feedback", response_model=FeedbackAck)
async def feedback(payload: FeedbackRequest, service: AIMatchingService = Depends(get_ai_service)):
    """Record human feedback on a computed match"""
    return await service.record_match_feedback(
        payload.match_id, payload.feedback_score, payload.feedback_comments
    )


@router.get("/search-suggestions", response_model=SearchSuggestionsResponse)
async def search_suggestions(
    candidate_id: str = Query(..., description="Job seeker profile id"),
    service: AIMatchingService = Depends(get_ai_service),
):
    suggestions = await service.generate_search_suggestions(candidate_id)
    return SearchSuggestionsResponse(suggestions=suggestions)


@router.post("/analyze-resume", response_model=ResumeAnalysisResponse)
async def analyze_resume(
    resume: Optional[UploadFile] = File(None),
    resume_text: Optional[str] = Form(None),
    service: AIMatchingService = Depends(get_ai_service),
):
    if resume is not None:
        data = await _read_upload(resume)
        analysis = await service.analyze_resume(file_bytes=data, filename=resume.filename)
    elif resume_text:
        analysis = await service.analyze_resume(resume_text=resume_text)
    else:
        raise HTTPException(status_code=400, detail="Resume file or text is required")
    return ResumeAnalysisResponse(analysis=analysis)


@router.get("/training-stats", response_model=TrainingStats)
async def training_stats(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    service: AIMatchingService = Depends(get_ai_service),
):
    return await service.training_stats(start_date, end_date)


@router.get("/skill-suggestions", response_model=SkillSuggestionsResponse)
async def skill_suggestions(
    current_skills: Optional[str] = Query(None, description="Comma-separated skills"),
    service: AIMatchingService = Depends(get_ai_service),
):
    skills = [s.strip() for s in current_skills.split(",")] if current_skills else []
    suggestions = await service.skill_suggestions(skills)
    return SkillSuggestionsResponse(current_skills=skills, suggestions=suggestions)
