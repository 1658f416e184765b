from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

# -------- Structured résumé --------
class PersonalInfo(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    linkedin: str = ""
    github: str = ""

class ExperienceEntry(BaseModel):
    company: str = ""
    position: str = ""
    location: str = ""
    start_date: str = ""
    end_date: str = ""
    is_current: bool = False
    description: str = ""
    achievements: List[str] = Field(default_factory=list)

class EducationEntry(BaseModel):
    institution: str = ""
    degree: str = ""
    field_of_study: str = ""
    start_date: str = ""
    end_date: str = ""
    grade: str = ""

class SkillSet(BaseModel):
    technical: List[str] = Field(default_factory=list)
    soft: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)

class ProjectEntry(BaseModel):
    name: str = ""
    description: str = ""
    technologies: List[str] = Field(default_factory=list)
    url: str = ""

class StructuredProfile(BaseModel):
    """Normalized résumé; every field has a zero value, never None"""
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    summary: str = ""
    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    skills: SkillSet = Field(default_factory=SkillSet)
    projects: List[ProjectEntry] = Field(default_factory=list)

# -------- External records (read-only) --------
class JobPosting(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    title: str = ""
    description: str = ""
    skills_required: List[str] = Field(default_factory=list)
    experience_min: Optional[int] = None
    experience_max: Optional[int] = None
    location: Optional[str] = None
    employment_type: Optional[str] = None
    education_level: Optional[str] = None
    industry: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _null_lists(cls, data: Any):
        if isinstance(data, dict) and data.get("skills_required") is None:
            data = {**data, "skills_required": []}
        return data

class CandidateProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience_years: int = 0
    current_location: Optional[str] = None
    preferred_locations: List[str] = Field(default_factory=list)
    current_position: Optional[str] = None
    current_company: Optional[str] = None
    summary: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _null_defaults(cls, data: Any):
        if isinstance(data, dict):
            data = dict(data)
            for key in ("skills", "preferred_locations"):
                if data.get(key) is None:
                    data[key] = []
            if data.get("experience_years") is None:
                data["experience_years"] = 0
        return data

# -------- Matching --------
class MatchWeights(BaseModel):
    skills: float = 0.35
    experience: float = 0.25
    semantic: float = 0.20
    location: float = 0.10
    education: float = 0.10

class MatchResult(BaseModel):
    total_score: int = Field(ge=0, le=100)
    skills_match: int = Field(ge=0, le=100)
    experience_match: int = Field(ge=0, le=100)
    semantic_match: int = Field(ge=0, le=100)
    location_match: int = Field(ge=0, le=100)
    education_match: int = Field(ge=0, le=100)
    weights: MatchWeights = Field(default_factory=MatchWeights)

class RankedRecommendation(BaseModel):
    entity: Dict[str, Any]
    match_score: int
    match_details: MatchResult

# -------- Feedback / training --------
class MatchFeedback(BaseModel):
    match_id: str
    feedback_score: float = Field(ge=0.0, le=1.0)
    feedback_comments: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)

class FeedbackAck(BaseModel):
    message: str = "Feedback recorded successfully"
    feedback_id: Optional[str] = None
    match_id: str
    feedback_score: float

class TrainingRecord(BaseModel):
    data_type: str
    input_data: Dict[str, Any] = Field(default_factory=dict)
    output_data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)
