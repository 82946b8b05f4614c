"""
Unit tests for the LLM factory.
Tests provider selection and reading settings from environment variables.
"""

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from pdca.core.config import Config
from pdca.llm import (
    GLMLLM,
    LLMConfig,
    LLMConfigError,
    OpenAICompatibleLLM,
    config_from_env,
    create_llm,
    create_llm_from_config,
    create_llm_from_env,
)


class TestCreateLLM:
    """Tests for create_llm()."""

    def test_openai(self):
        llm = create_llm(LLMConfig(provider="openai", api_key="sk-test", model="gpt-4o"))

        assert isinstance(llm, OpenAICompatibleLLM)
        assert llm.llm_type == "openai"
        assert llm.model == "gpt-4o"
        assert llm.endpoint == "https://api.openai.com/v1/chat/completions"
        assert llm.session.headers["Authorization"] == "Bearer sk-test"

    def test_glm_defaults(self):
        llm = create_llm(LLMConfig(provider="GLM", api_key="glm-key"))

        assert isinstance(llm, GLMLLM)
        assert llm.model == "glm-4"
        assert llm.endpoint == "https://open.bigmodel.cn/api/paas/v4/chat/completions"
        assert llm.session.headers["Authorization"] == "glm-key"

    def test_custom_provider(self):
        llm = create_llm(LLMConfig(
            provider="custom",
            api_key="k",
            base_url="http://localhost:8080/v1/",
            model="qwen",
            headers={"X-Team": "pdca"},
            temperature=0.2,
        ))

        assert isinstance(llm, OpenAICompatibleLLM)
        assert llm.llm_type == "custom"
        assert llm.endpoint == "http://localhost:8080/v1/chat/completions"
        assert llm.session.headers["X-Team"] == "pdca"
        assert llm.temperature == 0.2

    def test_custom_provider_requires_base_url(self):
        with pytest.raises(LLMConfigError, match="base URL"):
            create_llm(LLMConfig(provider="custom"))

    def test_anthropic_not_supported(self):
        with pytest.raises(LLMConfigError, match="not supported"):
            create_llm(LLMConfig(provider="anthropic"))

    def test_unknown_provider(self):
        with pytest.raises(LLMConfigError, match="Unsupported LLM provider: mystery"):
            create_llm(LLMConfig(provider="mystery"))


class TestConfigFromEnv:
    """Tests for config_from_env() and create_llm_from_env()."""

    def test_default_provider(self):
        config = config_from_env({}, default_provider="glm")

        assert config.provider == "glm"
        assert config.model == "glm-4"
        assert config.base_url == "https://open.bigmodel.cn"

    def test_glm_env(self):
        config = config_from_env({
            "LLM_PROVIDER": "glm",
            "GLM_API_KEY": "abc",
            "GLM_BASE_URL": "https://glm.example.com",
            "GLM_MODEL": "glm-4-flash",
            "LLM_TEMPERATURE": "0.3",
            "LLM_MAX_TOKENS": "512",
        })

        assert config.api_key == "abc"
        assert config.base_url == "https://glm.example.com"
        assert config.model == "glm-4-flash"
        assert config.temperature == 0.3
        assert config.max_tokens == 512

    def test_invalid_numbers_are_ignored(self):
        config = config_from_env({"LLM_TEMPERATURE": "warm", "LLM_MAX_TOKENS": "many"})

        assert config.temperature == 0.7
        assert config.max_tokens is None

    def test_custom_headers_json(self):
        config = config_from_env({
            "LLM_PROVIDER": "custom",
            "CUSTOM_LLM_BASE_URL": "http://localhost:8080",
            "CUSTOM_LLM_HEADERS": '{"X-Team": "pdca", "X-Retries": 2}',
        })

        assert config.headers == {"X-Team": "pdca", "X-Retries": "2"}

    def test_invalid_custom_headers_are_ignored(self, caplog):
        with caplog.at_level("WARNING", logger="pdca.llm.factory"):
            config = config_from_env({
                "LLM_PROVIDER": "custom",
                "CUSTOM_LLM_BASE_URL": "http://localhost:8080",
                "CUSTOM_LLM_HEADERS": "{not json",
            })

        assert config.headers == {}
        assert "CUSTOM_LLM_HEADERS" in caplog.text

    def test_create_from_env(self):
        llm = create_llm_from_env({"LLM_PROVIDER": "openai", "OPENAI_API_KEY": "sk-env"})

        assert isinstance(llm, OpenAICompatibleLLM)
        assert llm.session.headers["Authorization"] == "Bearer sk-env"

    def test_create_from_env_unknown_provider(self):
        with pytest.raises(LLMConfigError):
            create_llm_from_env({"LLM_PROVIDER": "anthropic"})


class TestCreateFromConfig:
    """Tests for create_llm_from_config()."""

    def test_settings_supply_defaults(self, tmp_path):
        config = Config(config_dir=tmp_path)
        config.set("llm_provider", "glm")
        config.set("llm_temperature", 0.2)
        config.set("llm_timeout", 15)

        llm = create_llm_from_config(config, environ={"GLM_API_KEY": "abc"})

        assert isinstance(llm, GLMLLM)
        assert llm.temperature == 0.2
        assert llm.timeout == 15

    def test_environment_overrides_settings(self, tmp_path):
        config = Config(config_dir=tmp_path)
        config.set("llm_temperature", 0.2)

        llm = create_llm_from_config(config, environ={
            "LLM_PROVIDER": "openai",
            "LLM_TEMPERATURE": "0.9",
        })

        assert isinstance(llm, OpenAICompatibleLLM)
        assert llm.temperature == 0.9
        assert llm.timeout == 60

    def test_default_settings(self, tmp_path):
        llm = create_llm_from_config(Config(config_dir=tmp_path), environ={})

        assert isinstance(llm, OpenAICompatibleLLM)
        assert llm.temperature == 0.7
