from typing import Optional, TypedDict

from langgraph.graph import StateGraph, END

from jobmatch.helpers.parsing import extract_text
from jobmatch.models.models import StructuredProfile
from jobmatch.services.resume_structurer import ExternalResumeParser, structure_resume
from jobmatch.utils.exceptions import ExternalServiceError
from jobmatch.utils.llm import TextGenerationBackend
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)


# LangGraph state for one résumé upload
class ResumeState(TypedDict, total=False):
    file_bytes: bytes
    filename: str
    backend: TextGenerationBackend
    external_parser: Optional[ExternalResumeParser]
    raw_text: str
    profile: Optional[StructuredProfile]
    source: str


def node_external_parse(state: ResumeState):
    parser = state.get("external_parser")
    if parser is None or not parser.enabled:
        return {"profile": None}
    try:
        profile = parser.parse(state["file_bytes"], state["filename"])
    except ExternalServiceError as e:
        logger.warning(f"External resume parser failed, falling back to LLM: {e.message}")
        return {"profile": None}
    logger.info(f"Resume {state['filename']} parsed by external service")
    return {"profile": profile, "source": "external"}


def node_extract_text(state: ResumeState):
    text = extract_text(state["file_bytes"], state["filename"])
    logger.debug(f"Extracted {len(text)} characters from {state['filename']}")
    return {"raw_text": text}


def node_structure(state: ResumeState):
    profile = structure_resume(state["raw_text"], state["backend"])
    return {"profile": profile, "source": "llm"}


def route_after_external(state: ResumeState) -> str:
    return "done" if state.get("profile") is not None else "fallback"


def build_resume_graph():
    g = StateGraph(ResumeState)
    g.add_node("external_parse", node_external_parse)
    g.add_node("extract_text", node_extract_text)
    g.add_node("structure", node_structure)
    g.set_entry_point("external_parse")
    g.add_conditional_edges(
        "external_parse",
        route_after_external,
        {"done": END, "fallback": "extract_text"},
    )
    g.add_edge("extract_text", "structure")
    g.add_edge("structure", END)
    return g.compile()


_resume_graph = None


def get_resume_graph():
    global _resume_graph
    if _resume_graph is None:
        _resume_graph = build_resume_graph()
    return _resume_graph


def run_resume_pipeline(
    file_bytes: bytes,
    filename: str,
    backend: TextGenerationBackend,
    external_parser: Optional[ExternalResumeParser] = None,
) -> StructuredProfile:
    """External parser first, then text extraction + LLM structuring."""
    final = get_resume_graph().invoke({
        "file_bytes": file_bytes,
        "filename": filename,
        "backend": backend,
        "external_parser": external_parser,
    })
    return final["profile"]
