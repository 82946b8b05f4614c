"""
LLM factory

Builds a chat model from an LLMConfig, or from environment variables:

    LLM_PROVIDER        openai | glm | custom (anthropic is not supported)
    LLM_MODEL           model name override
    LLM_TEMPERATURE     float
    LLM_MAX_TOKENS      int
    OPENAI_API_KEY
    GLM_API_KEY, GLM_BASE_URL, GLM_MODEL
    CUSTOM_LLM_API_KEY, CUSTOM_LLM_BASE_URL, CUSTOM_LLM_MODEL,
    CUSTOM_LLM_HEADERS  JSON object of extra request headers
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional
import json
import logging
import os

from .base import BaseLLM, LLMConfigError
from .glm import GLMLLM, DEFAULT_GLM_BASE_URL, DEFAULT_GLM_MODEL
from .openai_compat import OpenAICompatibleLLM


logger = logging.getLogger("pdca.llm.factory")

SUPPORTED_PROVIDERS = ("openai", "glm", "custom")


@dataclass
class LLMConfig:
    """Settings for creating a chat model"""
    provider: str = "openai"
    api_key: Optional[str] = None
    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    base_url: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: int = 60


def create_llm(config: LLMConfig) -> BaseLLM:
    """
    Create a chat model for the configured provider.

    Raises:
        LLMConfigError: Unknown/unsupported provider, or a custom provider
            without a base URL
    """
    provider = (config.provider or "").lower()
    logger.info(f"Creating LLM instance, provider: {provider}, model: {config.model or 'default'}")

    common = {
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
        "timeout": config.timeout,
        "headers": config.headers or None,
    }

    if provider == "openai":
        return OpenAICompatibleLLM(
            api_key=config.api_key or os.environ.get("OPENAI_API_KEY", ""),
            model=config.model,
            **common,
        )

    if provider == "glm":
        return GLMLLM(
            api_key=config.api_key or os.environ.get("GLM_API_KEY", ""),
            base_url=config.base_url or DEFAULT_GLM_BASE_URL,
            model=config.model or DEFAULT_GLM_MODEL,
            **common,
        )

    if provider == "custom":
        if not config.base_url:
            raise LLMConfigError("A base URL is required for the custom LLM provider")
        return OpenAICompatibleLLM(
            api_key=config.api_key or "",
            base_url=config.base_url,
            model=config.model,
            provider_name="custom",
            **common,
        )

    if provider == "anthropic":
        raise LLMConfigError("The anthropic provider is not supported in this build")

    raise LLMConfigError(f"Unsupported LLM provider: {config.provider}")


def config_from_env(environ: Optional[Mapping[str, str]] = None,
                    default_provider: str = "openai",
                    default_temperature: float = 0.7,
                    default_timeout: int = 60) -> LLMConfig:
    """
    Read an LLMConfig from environment variables.

    The defaults apply when the matching variable is unset; there is no
    variable for the timeout.
    """
    env = os.environ if environ is None else environ

    provider = (env.get("LLM_PROVIDER") or default_provider).lower()
    config = LLMConfig(
        provider=provider,
        model=env.get("LLM_MODEL") or None,
        temperature=default_temperature,
        timeout=default_timeout,
    )

    if env.get("LLM_TEMPERATURE"):
        try:
            config.temperature = float(env["LLM_TEMPERATURE"])
        except ValueError:
            logger.warning(f"Ignoring invalid LLM_TEMPERATURE: {env['LLM_TEMPERATURE']!r}")
    if env.get("LLM_MAX_TOKENS"):
        try:
            config.max_tokens = int(env["LLM_MAX_TOKENS"])
        except ValueError:
            logger.warning(f"Ignoring invalid LLM_MAX_TOKENS: {env['LLM_MAX_TOKENS']!r}")

    if provider == "openai":
        config.api_key = env.get("OPENAI_API_KEY")
    elif provider == "glm":
        config.api_key = env.get("GLM_API_KEY")
        config.base_url = env.get("GLM_BASE_URL") or DEFAULT_GLM_BASE_URL
        config.model = env.get("GLM_MODEL") or config.model or DEFAULT_GLM_MODEL
    elif provider == "custom":
        config.api_key = env.get("CUSTOM_LLM_API_KEY")
        config.base_url = env.get("CUSTOM_LLM_BASE_URL")
        config.model = env.get("CUSTOM_LLM_MODEL") or config.model
        raw_headers = env.get("CUSTOM_LLM_HEADERS")
        if raw_headers:
            try:
                headers = json.loads(raw_headers)
                if isinstance(headers, dict):
                    config.headers = {str(k): str(v) for k, v in headers.items()}
                else:
                    logger.warning("CUSTOM_LLM_HEADERS is not a JSON object, ignoring")
            except json.JSONDecodeError as e:
                logger.warning(f"Failed to parse CUSTOM_LLM_HEADERS: {e}")

    logger.info(
        f"LLM env config: provider={config.provider}, model={config.model or 'default'}, "
        f"api_key_length={len(config.api_key) if config.api_key else 0}"
    )
    return config


def create_llm_from_env(environ: Optional[Mapping[str, str]] = None,
                        default_provider: str = "openai", **defaults) -> BaseLLM:
    """Create a chat model from environment variables."""
    return create_llm(config_from_env(environ, default_provider, **defaults))


def create_llm_from_config(settings, environ: Optional[Mapping[str, str]] = None) -> BaseLLM:
    """
    Create a chat model from environment variables, with fallbacks taken
    from the planner settings (llm_provider, llm_temperature, llm_timeout).

    Args:
        settings: Config instance (anything with get(key, default=...))
        environ: Environment mapping (defaults to os.environ)
    """
    return create_llm_from_env(
        environ,
        default_provider=settings.get("llm_provider", default="openai"),
        default_temperature=float(settings.get("llm_temperature", default=0.7)),
        default_timeout=int(settings.get("llm_timeout", default=60)),
    )
