"""
OpenAI-compatible chat model

Works against api.openai.com and any self-hosted gateway that implements
POST /v1/chat/completions with bearer-token auth.
"""

from typing import Dict, Optional

from .base import ChatCompletionsLLM


DEFAULT_OPENAI_BASE_URL = "https://api.openai.com"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class OpenAICompatibleLLM(ChatCompletionsLLM):
    """Chat model for OpenAI and OpenAI-compatible endpoints."""

    def __init__(self, api_key: str, base_url: str = DEFAULT_OPENAI_BASE_URL,
                 model: Optional[str] = None, provider_name: str = "openai", **kwargs):
        # Set before super().__init__ so the logger gets the right name
        self._provider_name = provider_name
        super().__init__(api_key=api_key, base_url=base_url,
                         model=model or DEFAULT_OPENAI_MODEL, **kwargs)

    @property
    def llm_type(self) -> str:
        return self._provider_name

    @property
    def endpoint(self) -> str:
        if self.base_url.endswith("/v1"):
            return f"{self.base_url}/chat/completions"
        return f"{self.base_url}/v1/chat/completions"

    def auth_headers(self) -> Dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}
