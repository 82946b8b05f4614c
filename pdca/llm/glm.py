"""
Zhipu GLM chat model

API docs: https://bigmodel.cn/dev/api/normal-model/glm-4
GLM takes the raw API key in the Authorization header (no "Bearer" prefix).
"""

from typing import Dict, Optional

from .base import ChatCompletionsLLM


DEFAULT_GLM_BASE_URL = "https://open.bigmodel.cn"
DEFAULT_GLM_MODEL = "glm-4"


class GLMLLM(ChatCompletionsLLM):
    """Chat model backed by the GLM chat-completions API."""

    def __init__(self, api_key: str, base_url: str = DEFAULT_GLM_BASE_URL,
                 model: Optional[str] = None, **kwargs):
        super().__init__(api_key=api_key, base_url=base_url,
                         model=model or DEFAULT_GLM_MODEL, **kwargs)

    @property
    def llm_type(self) -> str:
        return "glm"

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/api/paas/v4/chat/completions"

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": self.api_key}
