"""
llm_utils.py - LLM provider selection and invocation

Scorers talk to DeepSeek, Ollama, or any OpenAI-compatible endpoint through
the langchain chat model wrappers configured here. Scoring always wants a
single JSON object back, so providers can be asked for JSON output directly.
"""

import logging
import os
import re
from typing import List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_deepseek import ChatDeepSeek
from langchain_deepseek.chat_models import DEFAULT_API_BASE as DEEPSEEK_DEFAULT_API_BASE
from langchain_ollama import OllamaLLM
from langchain_openai import ChatOpenAI

_LOG = logging.getLogger("llm_utils")

DEFAULT_LLM_PROVIDER = "deepseek"  # "deepseek", "ollama", or "openai"
SUPPORTED_PROVIDERS = ("deepseek", "ollama", "openai")

# provider -> (env var for base url, default base url, env var for model, default model)
PROVIDER_DEFAULTS = {
    "deepseek": (None, None, None, "deepseek-chat"),
    "openai": ("OPENAI_API_BASE", "https://api.openai.com/v1", "OPENAI_MODEL", "gpt-4o-mini"),
    "ollama": ("OLLAMA_BASE_URL", "http://localhost:11434", "OLLAMA_MODEL", "qwen3:8b"),
}

API_KEY_ENV = {
    "deepseek": "DEEPSEEK_API_KEY",
    "openai": "OPENAI_API_KEY",
}

JSON_RESPONSE_FORMAT = {"type": "json_object"}


class LLMProvider:
    """Builds the langchain model for one provider and invokes it."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        provider: str = DEFAULT_LLM_PROVIDER,
        model: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: Optional[int] = None,
        timeout: int = 60,
        max_retries: int = 1,
        json_mode: bool = False,
    ):
        self.provider = (provider or DEFAULT_LLM_PROVIDER).lower()
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported LLM provider: {provider}")

        base_url_env, default_base_url, model_env, default_model = PROVIDER_DEFAULTS[self.provider]
        self.base_url = base_url or (os.getenv(base_url_env, default_base_url) if base_url_env else None)
        self.model = model or (os.getenv(model_env, default_model) if model_env else default_model)
        self.api_key = api_key or (os.getenv(API_KEY_ENV[self.provider]) if self.provider in API_KEY_ENV else None)

        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries
        self.json_mode = json_mode

    @classmethod
    def from_config(cls, llm_config, json_mode: bool = False, timeout: int = 60) -> "LLMProvider":
        """Create a provider from an ``LLMConfig``."""
        return cls(
            api_key=llm_config.api_key or None,
            base_url=llm_config.base_url or None,
            provider=llm_config.provider,
            model=llm_config.model or None,
            temperature=llm_config.temperature,
            max_tokens=llm_config.max_tokens,
            timeout=timeout,
            json_mode=json_mode,
        )

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise ValueError(
                f"{self.provider} API key required. Set {API_KEY_ENV[self.provider]} or pass api_key"
            )
        return self.api_key

    def get_llm(self):
        """Build the configured langchain model."""
        if self.provider == "ollama":
            _LOG.debug("Using Ollama provider: %s at %s", self.model, self.base_url)
            return OllamaLLM(
                model=self.model,
                base_url=self.base_url,
                temperature=self.temperature,
                num_predict=self.max_tokens,
                format="json" if self.json_mode else "",
                client_kwargs={"timeout": self.timeout},
            )

        if self.provider == "openai":
            _LOG.debug("Using OpenAI-compatible provider: %s at %s", self.model, self.base_url)
            llm = ChatOpenAI(
                model=self.model,
                api_key=self._require_api_key(),
                base_url=self.base_url,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        else:
            _LOG.debug("Using DeepSeek provider: %s", self.model)
            llm = ChatDeepSeek(
                model=self.model,
                api_key=self._require_api_key(),
                api_base=self.base_url or DEEPSEEK_DEFAULT_API_BASE,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )

        if self.json_mode:
            return llm.bind(response_format=JSON_RESPONSE_FORMAT)
        return llm

    def invoke(self, messages: List[BaseMessage]) -> AIMessage:
        """Invoke the model and always hand back an AIMessage."""
        llm = self.get_llm()

        if self.provider == "ollama":
            # OllamaLLM is a completion model, so flatten the conversation
            prompt = "\n\n".join(
                f"{'User' if isinstance(m, HumanMessage) else 'Assistant'}: {m.content}"
                if len(messages) > 1 else m.content
                for m in messages
            )
            return AIMessage(content=clean_ollama_response(llm.invoke(prompt)))

        return llm.invoke(messages)


def clean_ollama_response(content: str) -> str:
    """Remove <think> blocks some Ollama models emit."""
    return re.sub(r"<think>.*?</think>", "", content, flags=re.DOTALL)


def extract_json_from_response(content: str, provider: str = DEFAULT_LLM_PROVIDER) -> str:
    """Extract the JSON payload from a model response."""
    raw = content.strip()

    if provider.lower() == "ollama":
        raw = clean_ollama_response(raw)

    # Strip fenced code blocks, e.g. ```json ... ```
    fenced_match = re.search(r"```(?:json|\w+)?\s*([\s\S]*?)\s*```", raw, re.IGNORECASE)
    if fenced_match:
        return fenced_match.group(1).strip()

    # Otherwise take the outermost object, ignoring any chatter around it
    start, end = raw.find("{"), raw.rfind("}")
    if start != -1 and end > start:
        return raw[start:end + 1]
    return raw
