# models/response.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from jobmatch.models.models import MatchResult, RankedRecommendation, StructuredProfile


class ParseResumeResponse(BaseModel):
    message: str = "Resume parsed successfully"
    profile_updated: bool = False
    data: StructuredProfile


class RecommendationParameters(BaseModel):
    limit: int
    min_score: int


class RecommendationsResponse(BaseModel):
    job_id: Optional[str] = None
    candidate_id: Optional[str] = None
    recommendations: List[RankedRecommendation]
    total: int
    parameters: RecommendationParameters


class MatchScoreRequest(BaseModel):
    job_id: Optional[str] = None
    job_seeker_profile_id: Optional[str] = None


class MatchScoreResponse(BaseModel):
    job_id: str
    job_seeker_profile_id: str
    match_id: Optional[str] = None
    match_score: MatchResult


class FeedbackRequest(BaseModel):
    match_id: Optional[str] = None
    feedback_score: Optional[Any] = None
    feedback_comments: Optional[str] = None


class SearchSuggestions(BaseModel):
    keywords: List[str] = Field(default_factory=list)
    job_titles: List[str] = Field(default_factory=list)


class SearchSuggestionsResponse(BaseModel):
    suggestions: SearchSuggestions
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class ResumeAnalysis(BaseModel):
    score: int = Field(default=70, ge=0, le=100)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class ResumeAnalysisResponse(BaseModel):
    analysis: ResumeAnalysis
    analyzed_at: datetime = Field(default_factory=datetime.utcnow)


class TrainingStats(BaseModel):
    total: int
    by_type: List[Dict[str, Any]]
    feedback_distribution: List[Dict[str, Any]]
    period: Dict[str, Optional[str]]


class SkillSuggestion(BaseModel):
    skill: str
    demand: int
    average_salary: Optional[int] = None


class SkillSuggestionsResponse(BaseModel):
    current_skills: List[str]
    suggestions: List[SkillSuggestion]
    generated_at: datetime = Field(default_factory=datetime.utcnow)
