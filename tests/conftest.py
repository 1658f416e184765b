import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest

from jobmatch.utils.llm import TextGenerationBackend


class StubBackend(TextGenerationBackend):
    """Deterministic text-generation backend returning canned replies"""

    def __init__(self, reply="50"):
        self.reply = reply
        self.calls = []

    def complete(self, prompt, max_tokens=None, temperature=0.2, system=None) -> str:
        self.calls.append({
            "prompt": prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system,
        })
        if isinstance(self.reply, Exception):
            raise self.reply
        if callable(self.reply):
            return self.reply(prompt)
        return self.reply


@pytest.fixture
def stub_backend():
    """Factory for stub backends: stub_backend(reply) -> StubBackend"""
    return StubBackend
