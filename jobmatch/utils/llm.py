import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from jobmatch.config import get_settings
from jobmatch.utils.exceptions import ModelError
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


class TextGenerationBackend(ABC):
    """Opaque text-generation capability used by the structurer and scorer"""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: float = 0.2,
        system: Optional[str] = None,
    ) -> str:
        ...


class OllamaBackend(TextGenerationBackend):
    """Single-attempt completion against an Ollama server"""

    def __init__(self, base_url: str = None, model: str = None, timeout: int = None):
        settings = get_settings()
        self.base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self.model = model or settings.llm_model
        self.timeout = timeout or settings.llm_timeout

    def complete(self, prompt, max_tokens=None, temperature=0.2, system=None) -> str:
        options: Dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            options["num_predict"] = max_tokens
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "options": options,
            "stream": False,
        }
        if system:
            payload["system"] = system

        try:
            resp = requests.post(f"{self.base_url}/api/generate", json=payload, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json().get("response", "") or ""
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Ollama generate failed for model {self.model}: {e}")
            raise ModelError(
                f"Text generation failed: {e}",
                model_name=self.model,
                cause=e,
            ) from e


def extract_json_object(text: str) -> Dict[str, Any]:
    """Pull the outermost JSON object out of a model response.

    Raises ValueError when no object can be decoded.
    """
    if not text or not text.strip():
        raise ValueError("empty response")

    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)

    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise ValueError("no JSON object found")

    data = json.loads(text[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("JSON payload is not an object")
    return data


def safe_json(s: str, fallback: dict):
    try:
        return extract_json_object(s)
    except ValueError:
        return fallback
