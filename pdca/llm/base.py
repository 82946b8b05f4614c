"""
Base classes for LLM provider adapters

Every provider exposes the same small interface: take a list of chat
messages ({"role": ..., "content": ...}) and return the reply text.
Callers never see provider-specific response shapes.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging
import time

import requests


class LLMError(Exception):
    """Raised when a provider call fails or returns an unusable response."""


class LLMConfigError(LLMError):
    """Raised when a provider cannot be created from the given configuration."""


class BaseLLM(ABC):
    """
    Abstract chat model.

    Subclasses implement invoke(); everything else (prompting, goal
    extraction) only depends on this interface.
    """

    def __init__(self, model: str, temperature: float = 0.7,
                 max_tokens: Optional[int] = None):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.logger = logging.getLogger(f"pdca.llm.{self.llm_type}")

    @property
    @abstractmethod
    def llm_type(self) -> str:
        """Short provider name, e.g. "glm" or "openai"."""
        pass

    @abstractmethod
    def invoke(self, messages: List[Dict[str, str]]) -> str:
        """
        Send a chat conversation and return the assistant's reply.

        Args:
            messages: Chat messages, each with 'role' and 'content'

        Returns:
            Reply text

        Raises:
            LLMError: If the call fails or the response has no text
        """
        pass


class ChatCompletionsLLM(BaseLLM):
    """
    Shared HTTP plumbing for providers speaking a chat-completions API.

    Handles the session, payload, retry with exponential backoff on
    timeouts and connection errors, and reply extraction. Subclasses
    supply the endpoint URL and auth headers.
    """

    def __init__(self, api_key: str, base_url: str, model: str,
                 temperature: float = 0.7, max_tokens: Optional[int] = None,
                 timeout: int = 60, max_retries: int = 3,
                 headers: Optional[Dict[str, str]] = None,
                 top_p: Optional[float] = None):
        super().__init__(model, temperature, max_tokens)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.top_p = top_p

        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self.session.headers.update(self.auth_headers())
        if headers:
            self.session.headers.update(headers)

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """Full URL of the chat-completions endpoint."""
        pass

    @abstractmethod
    def auth_headers(self) -> Dict[str, str]:
        """Headers carrying the API key."""
        pass

    def build_payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if self.max_tokens:
            payload["max_tokens"] = self.max_tokens
        if self.top_p:
            payload["top_p"] = self.top_p
        return payload

    def invoke(self, messages: List[Dict[str, str]]) -> str:
        payload = self.build_payload(messages)

        for attempt in range(self.max_retries):
            try:
                self.logger.info(
                    f"Calling {self.llm_type} API model={self.model} "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                response = self.session.post(self.endpoint, json=payload, timeout=self.timeout)
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                self.logger.warning(f"{self.llm_type} API unreachable (attempt {attempt + 1}): {e}")
                if attempt < self.max_retries - 1:
                    time.sleep(2 ** attempt)
                    continue
                raise LLMError(f"{self.llm_type} API unreachable after {self.max_retries} attempts: {e}") from e
            except requests.exceptions.RequestException as e:
                raise LLMError(f"{self.llm_type} API request failed: {e}") from e

            if not response.ok:
                raise LLMError(
                    f"{self.llm_type} API request failed: "
                    f"HTTP {response.status_code} - {self._error_message(response)}"
                )

            try:
                data = response.json()
            except ValueError as e:
                raise LLMError(f"Failed to parse {self.llm_type} API response: {e}") from e

            text = self.extract_text(data)
            self.logger.info(f"{self.llm_type} API call successful. Response length: {len(text)} chars")
            return text

        raise LLMError(f"{self.llm_type} API call failed")

    def extract_text(self, data: Any) -> str:
        """
        Pull the reply text out of a response body.

        Understands the chat-completions shape plus the flat
        result/output/generated_text/response shapes some gateways return.
        """
        if isinstance(data, str):
            return data

        if isinstance(data, dict):
            choices = data.get("choices") or []
            if choices:
                message = choices[0].get("message") or {}
                if message.get("content"):
                    return message["content"]

            for key in ("result", "output", "generated_text", "response"):
                if isinstance(data.get(key), str) and data[key]:
                    return data[key]

        raise LLMError(f"Could not extract text from {self.llm_type} API response")

    @staticmethod
    def _error_message(response: "requests.Response") -> str:
        try:
            body = response.json()
        except ValueError:
            return response.reason or "unknown error"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        return response.reason or "unknown error"
