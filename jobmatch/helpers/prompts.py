import json
from dataclasses import dataclass, field

from jobmatch.models.models import CandidateProfile, JobPosting, StructuredProfile

RESUME_PARSER_SYSTEM = "You are a professional resume parser. Extract information accurately and return only valid JSON."
SEMANTIC_MATCH_SYSTEM = "You are an expert career counselor analyzing job-candidate fit. Return only the numeric score."
SEARCH_SUGGESTION_SYSTEM = "You are a career advisor providing job search suggestions. Return only valid JSON."
RESUME_ANALYSIS_SYSTEM = "You are a professional resume reviewer. Provide constructive feedback in JSON format."


def _structured_profile_schema() -> str:
    skeleton = StructuredProfile(
        experience=[{}],
        education=[{}],
        projects=[{}],
    ).model_dump()
    return json.dumps(skeleton, indent=2)


RESUME_SCHEMA = _structured_profile_schema()

RESUME_EXTRACT_PROMPT = """Parse the following resume and extract structured information.
Return a JSON object with exactly this structure:
{schema}

- Use empty strings or empty lists for anything the resume does not mention.
- Dates stay as written in the resume.
- is_current is true only for a role the candidate still holds.

Resume text:
{resume_text}

Return only valid JSON, no additional text.
"""

SEMANTIC_MATCH_PROMPT = """Analyze the semantic similarity between this job posting and candidate profile.
Return a match score from 0-100 based on job responsibilities vs candidate experience,
industry alignment, role progression, and overall career fit.

Job:
Title: {title}
Description: {description}
Industry: {industry}

Candidate:
Current Position: {position}
Current Company: {company}
Summary: {summary}
Experience Years: {experience_years}

Return only a number between 0 and 100.
"""

SEARCH_SUGGESTION_PROMPT = """Based on this candidate profile, suggest 10 job search keywords and 5 job titles they should search for.
Return a JSON object with "keywords" and "job_titles" arrays.

Profile:
Current Position: {position}
Skills: {skills}
Experience: {experience_years} years
Summary: {summary}

Return only valid JSON.
"""

RESUME_ANALYSIS_PROMPT = """Analyze this resume and provide specific improvement suggestions.
Return a JSON object with "score" (0-100), "strengths", "weaknesses", and "suggestions" arrays.

Resume:
{resume_text}

Return only valid JSON.
"""


@dataclass
class ResumeExtractionRequest:
    resume_text: str
    system: str = RESUME_PARSER_SYSTEM
    schema: str = field(default=RESUME_SCHEMA)
    max_tokens: int = 2000
    temperature: float = 0.1

    def build(self) -> str:
        return RESUME_EXTRACT_PROMPT.format(schema=self.schema, resume_text=self.resume_text)


@dataclass
class SemanticMatchRequest:
    job: JobPosting
    candidate: CandidateProfile
    system: str = SEMANTIC_MATCH_SYSTEM
    max_tokens: int = 10
    temperature: float = 0.1

    def build(self) -> str:
        return SEMANTIC_MATCH_PROMPT.format(
            title=self.job.title,
            description=self.job.description,
            industry=self.job.industry or "Not specified",
            position=self.candidate.current_position or "Not specified",
            company=self.candidate.current_company or "Not specified",
            summary=self.candidate.summary or "Not provided",
            experience_years=self.candidate.experience_years or 0,
        )


@dataclass
class SearchSuggestionRequest:
    candidate: CandidateProfile
    system: str = SEARCH_SUGGESTION_SYSTEM
    max_tokens: int = 300
    temperature: float = 0.3

    def build(self) -> str:
        return SEARCH_SUGGESTION_PROMPT.format(
            position=self.candidate.current_position or "Not specified",
            skills=", ".join(self.candidate.skills) or "Not specified",
            experience_years=self.candidate.experience_years or 0,
            summary=self.candidate.summary or "Not provided",
        )


@dataclass
class ResumeAnalysisRequest:
    resume_text: str
    system: str = RESUME_ANALYSIS_SYSTEM
    max_tokens: int = 500
    temperature: float = 0.2

    def build(self) -> str:
        return RESUME_ANALYSIS_PROMPT.format(resume_text=self.resume_text)


def complete_request(backend, request) -> str:
    """Send a built request through a TextGenerationBackend."""
    return backend.complete(
        request.build(),
        max_tokens=request.max_tokens,
        temperature=request.temperature,
        system=request.system,
    )
