"""
Résumé structuring: raw text -> StructuredProfile
"""
from typing import Any, Dict, List, Optional

import requests

from jobmatch.config import get_settings
from jobmatch.helpers.prompts import ResumeExtractionRequest, complete_request
from jobmatch.models.models import StructuredProfile
from jobmatch.utils.exceptions import ExternalServiceError, MalformedModelOutput
from jobmatch.utils.llm import TextGenerationBackend, extract_json_object
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

PROFILE_SECTIONS = frozenset(StructuredProfile.model_fields)


def _as_text(x: Any) -> str:
    if x is None:
        return ""
    if isinstance(x, list):
        return " ".join([str(t).strip() for t in x if str(t).strip()])
    return str(x).strip()


def _as_list(x: Any) -> List[str]:
    if x is None:
        return []
    if isinstance(x, str):
        parts = [p.strip() for p in x.replace(";", ",").split(",")]
        return [p for p in parts if p]
    if isinstance(x, list):
        return [_as_text(t) for t in x if _as_text(t)]
    return []


def _as_bool(x: Any) -> bool:
    if isinstance(x, str):
        return x.strip().lower() in ("true", "yes", "1", "present", "current")
    return bool(x)


def _as_dict(x: Any) -> Dict[str, Any]:
    return x if isinstance(x, dict) else {}


def _entries(x: Any) -> List[Dict[str, Any]]:
    if not isinstance(x, list):
        return []
    return [e for e in x if isinstance(e, dict)]


def normalize_resume_data(data: Dict[str, Any]) -> StructuredProfile:
    """Coerce a loosely-shaped parser payload into a fully populated profile."""
    personal = _as_dict(data.get("personal_info"))
    skills = _as_dict(data.get("skills"))

    return StructuredProfile(
        personal_info={
            "name": _as_text(personal.get("name")),
            "email": _as_text(personal.get("email")),
            "phone": _as_text(personal.get("phone")),
            "location": _as_text(personal.get("location")),
            "linkedin": _as_text(personal.get("linkedin")),
            "github": _as_text(personal.get("github")),
        },
        summary=_as_text(data.get("summary")),
        experience=[
            {
                "company": _as_text(exp.get("company")),
                "position": _as_text(exp.get("position")),
                "location": _as_text(exp.get("location")),
                "start_date": _as_text(exp.get("start_date")),
                "end_date": _as_text(exp.get("end_date")),
                "is_current": _as_bool(exp.get("is_current")),
                "description": _as_text(exp.get("description")),
                "achievements": _as_list(exp.get("achievements")),
            }
            for exp in _entries(data.get("experience"))
        ],
        education=[
            {
                "institution": _as_text(edu.get("institution")),
                "degree": _as_text(edu.get("degree")),
                "field_of_study": _as_text(edu.get("field_of_study")),
                "start_date": _as_text(edu.get("start_date")),
                "end_date": _as_text(edu.get("end_date")),
                "grade": _as_text(edu.get("grade")),
            }
            for edu in _entries(data.get("education"))
        ],
        skills={
            "technical": _as_list(skills.get("technical")),
            "soft": _as_list(skills.get("soft")),
            "languages": _as_list(skills.get("languages")),
            "certifications": _as_list(skills.get("certifications")),
        },
        projects=[
            {
                "name": _as_text(proj.get("name")),
                "description": _as_text(proj.get("description")),
                "technologies": _as_list(proj.get("technologies")),
                "url": _as_text(proj.get("url")),
            }
            for proj in _entries(data.get("projects"))
        ],
    )


def structure_resume(raw_text: str, backend: TextGenerationBackend) -> StructuredProfile:
    """Turn résumé text into a StructuredProfile with a single model call.

    The call is not retried. A response that is not a JSON object raises
    MalformedModelOutput with the raw text attached.
    """
    request = ResumeExtractionRequest(resume_text=raw_text)
    response = complete_request(backend, request)

    try:
        data = extract_json_object(response)
    except ValueError as e:
        logger.error(f"Resume structuring returned unparsable output: {e}")
        raise MalformedModelOutput(
            "Language model returned output that is not a resume JSON object",
            raw_response=response,
            cause=e,
        ) from e

    return normalize_resume_data(data)


class ExternalResumeParser:
    """Client for a third-party résumé parsing service"""

    SERVICE_NAME = "resume_parser"

    def __init__(self, url: str = None, api_key: Optional[str] = None, timeout: int = None):
        settings = get_settings()
        self.url = (url or settings.resume_parser_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.resume_parser_api_key
        self.timeout = timeout or settings.resume_parser_timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def parse(self, file_bytes: bytes, filename: str) -> StructuredProfile:
        try:
            resp = requests.post(
                f"{self.url}/parse",
                files={"file": (filename, file_bytes, "application/octet-stream")},
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ExternalServiceError(
                f"Resume parser returned HTTP {status}",
                service_name=self.SERVICE_NAME,
                status_code=status,
                cause=e,
            ) from e
        except (requests.RequestException, ValueError) as e:
            raise ExternalServiceError(
                f"Resume parser request failed: {e}",
                service_name=self.SERVICE_NAME,
                cause=e,
            ) from e

        if not isinstance(payload, dict):
            raise ExternalServiceError(
                "Resume parser returned a non-object payload",
                service_name=self.SERVICE_NAME,
            )
        if not PROFILE_SECTIONS.intersection(payload):
            # e.g. {"error": "quota exceeded"} with a 200 status
            raise ExternalServiceError(
                f"Resume parser returned no resume sections (keys: {sorted(payload)[:5]})",
                service_name=self.SERVICE_NAME,
            )
        return normalize_resume_data(payload)
