"""Completion service client built on DSPy's LM wrapper."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import dspy

from datamapper.config import LLMConfig, get_config

logger = logging.getLogger(__name__)


class CompletionClient(ABC):
    """Sends a chat-style prompt to one named model and returns the raw text."""

    @abstractmethod
    def complete(self, model: str, messages: List[Dict[str, str]], temperature: float) -> str:
        """Return the completion text. Raises on transport or provider errors."""
        pass


class DSPyCompletionClient(CompletionClient):
    """CompletionClient backed by dspy.LM (LiteLLM model strings such as 'groq/...')."""

    def __init__(self, llm_config: Optional[LLMConfig] = None):
        self.llm_config = llm_config or get_config().llm
        self._lms: Dict[tuple, dspy.LM] = {}

    def _get_lm(self, model: str, temperature: float) -> dspy.LM:
        key = (model, temperature)
        if key not in self._lms:
            lm_kwargs = {
                "model": model,
                "api_key": self.llm_config.api_key,
                "temperature": temperature,
                "num_retries": 0,
                "cache": False,
            }
            if self.llm_config.max_tokens:
                lm_kwargs["max_tokens"] = self.llm_config.max_tokens
            if self.llm_config.base_url:
                lm_kwargs["api_base"] = self.llm_config.base_url
            if self.llm_config.timeout:
                lm_kwargs["timeout"] = self.llm_config.timeout
            self._lms[key] = dspy.LM(**lm_kwargs)
        return self._lms[key]

    def complete(self, model: str, messages: List[Dict[str, str]], temperature: float) -> str:
        lm = self._get_lm(model, temperature)
        outputs = lm(messages=messages)
        if not outputs:
            return ""
        first = outputs[0]
        if isinstance(first, dict):
            return first.get("text") or ""
        return str(first)


def create_completion_client() -> CompletionClient:
    """Create the default completion client from configuration."""
    return DSPyCompletionClient(get_config().llm)
